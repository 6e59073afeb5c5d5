"""
Upstream Data Source Abstraction
================================

Interface to whatever serves the raw telemetry of a Search.

BOUNDARY ENFORCEMENT:
- Sources are stateless request handlers
- Transport failures raise SourceUnavailableError, never return partial data
- Payload shape is validated by the catalog layer, not here
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Mapping

from ..contracts.base import TimeWindow


class SourceUnavailableError(Exception):
    """Raised when the upstream cannot be reached or answers with an error."""
    pass


@dataclass(frozen=True)
class DataAvailability:
    """Overall time bounds of the data the upstream can serve."""
    start_ms: int
    end_ms: int

    def as_window(self) -> TimeWindow:
        return TimeWindow(self.start_ms, self.end_ms)


class AnalysisDataSource(ABC):
    """Provider of analysis data for a requested range."""

    @abstractmethod
    def data_availability(self) -> DataAvailability:
        """Bounds used to clamp the Search pickers."""
        ...

    @abstractmethod
    def analysis_data(self, start_ms: int, end_ms: int) -> Mapping[str, Any]:
        """
        Entities and raw events for [start_ms, end_ms].

        Returns the `analysisData` object: ports, processes, files,
        endpoints, fileVersions, networkActivities.
        """
        ...
