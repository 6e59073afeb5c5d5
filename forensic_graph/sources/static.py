"""
Static Data Sources
===================

Serve analysis data from memory or from a JSON dataset file.

The file layout mirrors the upstream GraphQL response:

    {
      "dataAvailability": {"startTime": ..., "endTime": ...},
      "analysisData": {"ports": [...], ..., "networkActivities": [...]}
    }

When `dataAvailability` is absent it is derived from the event
timestamps (end bound exclusive, hence +1 ms).
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from ..contracts.base import MalformedPayloadError
from .base import AnalysisDataSource, DataAvailability, SourceUnavailableError


EVENT_COLLECTIONS = ("fileVersions", "networkActivities")


def _derive_availability(payload: Mapping[str, Any]) -> DataAvailability:
    timestamps = [
        record["timestamp"]
        for collection in EVENT_COLLECTIONS
        for record in payload.get(collection, ())
        if isinstance(record, Mapping) and isinstance(record.get("timestamp"), (int, float))
    ]
    if not timestamps:
        return DataAvailability(start_ms=0, end_ms=0)
    return DataAvailability(start_ms=int(min(timestamps)), end_ms=int(max(timestamps)) + 1)


class InMemoryDataSource(AnalysisDataSource):
    """Serves one fixed payload, restricting events to the requested range."""

    def __init__(self, payload: Mapping[str, Any], availability: Optional[DataAvailability] = None):
        if not isinstance(payload, Mapping):
            raise MalformedPayloadError("analysis data must be an object")
        self._payload = payload
        self._availability = availability or _derive_availability(payload)

    def data_availability(self) -> DataAvailability:
        return self._availability

    def analysis_data(self, start_ms: int, end_ms: int) -> Mapping[str, Any]:
        result: Dict[str, Any] = dict(self._payload)
        for collection in EVENT_COLLECTIONS:
            records = self._payload.get(collection)
            if isinstance(records, list):
                result[collection] = [
                    r for r in records
                    if isinstance(r, Mapping) and start_ms <= r.get("timestamp", start_ms - 1) <= end_ms
                ]
        return result


class JsonFileDataSource(InMemoryDataSource):
    """InMemoryDataSource loaded from a dataset file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        try:
            with open(self._path, 'r', encoding='utf-8') as f:
                document = json.load(f)
        except OSError as exc:
            raise SourceUnavailableError(f"Cannot read dataset file {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise MalformedPayloadError(f"Dataset file {self._path} is not valid JSON: {exc}") from exc

        if not isinstance(document, Mapping):
            raise MalformedPayloadError(f"Dataset file {self._path} must contain an object")

        payload = document.get("analysisData", document)
        availability = None
        bounds = document.get("dataAvailability")
        if isinstance(bounds, Mapping):
            availability = DataAvailability(
                start_ms=int(bounds["startTime"]),
                end_ms=int(bounds["endTime"])
            )
        super().__init__(payload, availability)

    @property
    def path(self) -> Path:
        return self._path
