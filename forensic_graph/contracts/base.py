"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior, no side effects, no dependencies.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple
from enum import Enum, auto
import hashlib


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.
    No silent fallbacks - every error state is enumerated.
    """
    # Data-integrity errors
    UNKNOWN_ENTITY_REFERENCE = auto()
    DUPLICATE_RECORD = auto()
    MALFORMED_PAYLOAD = auto()

    # Input-validation errors
    INVALID_TIME_WINDOW = auto()
    WINDOW_OUT_OF_RANGE = auto()
    WINDOW_CLAMPED = auto()
    INVALID_GRANULARITY = auto()
    INVALID_FILTER_TARGET = auto()

    # Degenerate statistics
    DEGENERATE_BYTE_TOTAL = auto()
    DEGENERATE_QUANTILE_DOMAIN = auto()

    # Search lifecycle
    STALE_SEARCH_RESPONSE = auto()
    SOURCE_UNREACHABLE = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: Timestamp
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    @staticmethod
    def create(code: ErrorCode, message: str, **context: object) -> Error:
        """Build an error stamped with the current time."""
        return Error(
            code=code,
            message=message,
            timestamp=Timestamp.now(),
            context=tuple(sorted((k, str(v)) for k, v in context.items()))
        )


class MalformedPayloadError(ValueError):
    """
    Raised when an upstream payload does not have the agreed shape.

    This is the only exception the core raises: it signals a programmer
    or integration error, never a data-quality problem.
    """
    pass


# =============================================================================
# TEMPORAL TYPES (Immutable, explicit semantics)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()


@dataclass(frozen=True)
class TimeWindow:
    """
    Immutable time window in absolute epoch milliseconds.

    Telemetry timestamps are integer milliseconds end to end, so windows
    are kept in the same unit. Unlike query ranges, a window may be
    degenerate (start == end); validation is left to the query layer
    so that a bad brush never raises.
    """
    start_ms: int
    end_ms: int

    @property
    def is_empty(self) -> bool:
        return self.start_ms >= self.end_ms

    @property
    def duration_ms(self) -> int:
        return max(0, self.end_ms - self.start_ms)

    def contains_half_open(self, timestamp_ms: int) -> bool:
        """Search windows exclude their upper bound."""
        return self.start_ms <= timestamp_ms < self.end_ms

    def overlaps(self, other: TimeWindow) -> bool:
        return self.start_ms <= other.end_ms and other.start_ms <= self.end_ms

    def clamp_to(self, bounds: TimeWindow) -> TimeWindow:
        """Return this window clipped to `bounds` (may become empty)."""
        return TimeWindow(
            start_ms=max(self.start_ms, bounds.start_ms),
            end_ms=min(self.end_ms, bounds.end_ms)
        )


def bucket_of(timestamp_ms: int, granularity_ms: int) -> int:
    """Time bucket index of a timestamp: floor(timestamp / granularity)."""
    return timestamp_ms // granularity_ms


# =============================================================================
# IDENTITY HELPERS
# =============================================================================

def link_id_for(source_id: str, target_id: str) -> str:
    """Aggregate link identity: one link per directed (source, target) pair."""
    return f"{source_id}->{target_id}"


def content_hash(*parts: str) -> str:
    """Deterministic short hash used for derived identifiers."""
    joined = "|".join(parts)
    return hashlib.sha256(joined.encode('utf-8')).hexdigest()[:16]
