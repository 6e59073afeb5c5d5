"""
Event Timeline Histogram
========================

Event counts per time bucket for the timeline the analyst brushes on.

- Overview: one bucket per granularity step from the Search start up to
  (excluding) the Search end, keyed by floor(bucket_start / g); every
  event of the Search falls into the bucket with its key.
- Brushed: only buckets whose start lies strictly inside the brush,
  counting only events strictly inside the brush.

Timestamps are sorted once per Search; each histogram is a handful of
vectorized numpy operations.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np

from ..contracts.base import TimeWindow


@dataclass(frozen=True)
class HistogramBucket:
    """One bar of the timeline."""
    bucket: int
    start_ms: int
    count: int


@dataclass(frozen=True)
class TimelineHistogram:
    """Immutable histogram at one granularity."""
    granularity_ms: int
    buckets: Tuple[HistogramBucket, ...]

    @property
    def max_count(self) -> int:
        return max((b.count for b in self.buckets), default=0)

    @property
    def total(self) -> int:
        return sum(b.count for b in self.buckets)


def _count_by_key(keys: np.ndarray, bucket_keys: np.ndarray) -> np.ndarray:
    """Counts of `keys` per entry of the strictly increasing `bucket_keys`."""
    counts = np.zeros(len(bucket_keys), dtype=np.int64)
    if keys.size == 0 or bucket_keys.size == 0:
        return counts
    unique, occurrences = np.unique(keys, return_counts=True)
    positions = np.searchsorted(bucket_keys, unique)
    in_range = positions < len(bucket_keys)
    matched = in_range.copy()
    matched[in_range] = bucket_keys[positions[in_range]] == unique[in_range]
    np.add.at(counts, positions[matched], occurrences[matched])
    return counts


class EventTimeline:
    """Histogram source over the raw event timestamps of one Search."""

    def __init__(self, timestamps: Iterable[int]):
        self._timestamps = np.sort(np.fromiter(timestamps, dtype=np.int64))

    @property
    def event_count(self) -> int:
        return int(self._timestamps.size)

    def _between(self, start_ms: int, end_ms: int, inclusive_start: bool) -> np.ndarray:
        side = 'left' if inclusive_start else 'right'
        lo = np.searchsorted(self._timestamps, start_ms, side=side)
        hi = np.searchsorted(self._timestamps, end_ms, side='left')
        return self._timestamps[lo:hi]

    def overview(self, search_window: TimeWindow, granularity_ms: int) -> TimelineHistogram:
        if granularity_ms <= 0:
            raise ValueError(f"granularity must be positive, got {granularity_ms}")
        if search_window.is_empty:
            return TimelineHistogram(granularity_ms=granularity_ms, buckets=())

        starts = np.arange(search_window.start_ms, search_window.end_ms, granularity_ms, dtype=np.int64)
        bucket_keys = np.floor_divide(starts, granularity_ms)
        events = self._between(search_window.start_ms, search_window.end_ms, inclusive_start=True)
        counts = _count_by_key(np.floor_divide(events, granularity_ms), bucket_keys)
        return TimelineHistogram(
            granularity_ms=granularity_ms,
            buckets=tuple(
                HistogramBucket(bucket=int(k), start_ms=int(s), count=int(c))
                for k, s, c in zip(bucket_keys.tolist(), starts.tolist(), counts.tolist())
            )
        )

    def brushed(self, search_window: TimeWindow, granularity_ms: int, brush: TimeWindow) -> TimelineHistogram:
        overview = self.overview(search_window, granularity_ms)
        inside = [b for b in overview.buckets if brush.start_ms < b.start_ms < brush.end_ms]
        if not inside or brush.is_empty:
            return TimelineHistogram(granularity_ms=granularity_ms, buckets=())

        bucket_keys = np.array([b.bucket for b in inside], dtype=np.int64)
        events = self._between(brush.start_ms, brush.end_ms, inclusive_start=False)
        counts = _count_by_key(np.floor_divide(events, granularity_ms), bucket_keys)
        return TimelineHistogram(
            granularity_ms=granularity_ms,
            buckets=tuple(
                HistogramBucket(bucket=b.bucket, start_ms=b.start_ms, count=int(c))
                for b, c in zip(inside, counts.tolist())
            )
        )
