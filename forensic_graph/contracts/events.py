"""
Event Contracts

Raw telemetry events (immutable, append-only within a Search) and the
audit/metric records produced by the observability layer.

IMMUTABILITY:
=============
Raw events are never edited. Everything derived from them (aggregate
links, bucket indices, color scales) is recomputed instead.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from .base import Timestamp


# =============================================================================
# RAW TELEMETRY EVENTS
# =============================================================================

class EventKind(Enum):
    """Raw event collections delivered by the upstream query."""
    FILE_VERSION = "FileVersion"
    NETWORK_ACTIVITY = "NetworkActivity"


@dataclass(frozen=True)
class FileVersionEvent:
    """A process wrote a new version of a file."""
    id: str
    timestamp: int  # epoch milliseconds
    source: str     # process id
    target: str     # file id
    size: int
    action: str = ""

    event_kind: ClassVar[EventKind] = EventKind.FILE_VERSION


@dataclass(frozen=True)
class NetworkActivityEvent:
    """A packet observed between two ports."""
    id: str
    timestamp: int  # epoch milliseconds
    source: str     # port id
    target: str     # port id
    size: int
    protocol: str = ""

    event_kind: ClassVar[EventKind] = EventKind.NETWORK_ACTIVITY


RawEvent = Union[FileVersionEvent, NetworkActivityEvent]


# =============================================================================
# AUDIT AND METRICS
# =============================================================================

class AuditEventType(Enum):
    """Explicit audit event types."""
    SEARCH = "search"
    AGGREGATION = "aggregation"
    INDEX = "index"
    QUERY = "query"
    FILTER = "filter"
    ERROR = "error"
    SYSTEM = "system"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str  # Which layer generated this
    action: str
    entity_id: Optional[str] = None
    entity_type: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
