"""
Temporal Index
==============

Secondary index from aggregate link to the time buckets it is active in.

bucket(event) = floor(event.timestamp / granularity)

A link is active in window [t0, t1] iff one of its buckets lies in
[floor(t0 / g), floor(t1 / g)]. Each link keeps its buckets sorted and
duplicate-free, so a membership test is a pair of binary searches and
never touches raw events.

RECOMPUTATION:
- Rebuilt on granularity change and on every new Search
- Never rebuilt on brush or filter changes
"""

from __future__ import annotations
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from ..catalog import RawEventStore
from ..contracts.base import bucket_of
from ..contracts.events import RawEvent
from ..contracts.links import LinkKind, TRAFFIC_KINDS, TrafficLink
from .aggregation import AggregationResult


DEFAULT_GRANULARITY_MS = 60000

# Timeline granularities offered to analysts: 1s, 1m, 1h, 12h, 24h.
GRANULARITY_OPTIONS_MS: Tuple[int, ...] = (1000, 60000, 3600000, 43200000, 86400000)


@dataclass
class TemporalIndexConfig:
    """Configuration for the temporal index."""
    granularity_ms: int = DEFAULT_GRANULARITY_MS
    granularity_options: Tuple[int, ...] = GRANULARITY_OPTIONS_MS


@dataclass(frozen=True)
class LinkBuckets:
    """
    Bucket activity of one aggregate link.

    `cumulative_bytes[i]` is the byte total of buckets[:i], so the bytes
    of any bucket range are one subtraction away.
    """
    buckets: Tuple[int, ...]
    cumulative_bytes: Tuple[int, ...]
    members: Tuple[Tuple[str, ...], ...]

    def span(self, bucket_lo: int, bucket_hi: int) -> Tuple[int, int]:
        """Positions [i, j) of the buckets inside [bucket_lo, bucket_hi]."""
        return bisect_left(self.buckets, bucket_lo), bisect_right(self.buckets, bucket_hi)

    def is_active(self, bucket_lo: int, bucket_hi: int) -> bool:
        i, j = self.span(bucket_lo, bucket_hi)
        return i < j

    def bytes_in(self, bucket_lo: int, bucket_hi: int) -> int:
        i, j = self.span(bucket_lo, bucket_hi)
        return self.cumulative_bytes[j] - self.cumulative_bytes[i]

    def members_in(self, bucket_lo: int, bucket_hi: int) -> Tuple[str, ...]:
        i, j = self.span(bucket_lo, bucket_hi)
        out: List[str] = []
        for group in self.members[i:j]:
            out.extend(group)
        return tuple(out)


@dataclass(frozen=True)
class TimeBucketIndex:
    """Link id -> bucket activity, for one granularity."""
    granularity_ms: int
    links: Mapping[str, LinkBuckets] = field(default_factory=dict)

    def buckets_of(self, link_id: str) -> Tuple[int, ...]:
        entry = self.links.get(link_id)
        return entry.buckets if entry else ()

    def bucket_range(self, start_ms: int, end_ms: int) -> Tuple[int, int]:
        return bucket_of(start_ms, self.granularity_ms), bucket_of(end_ms, self.granularity_ms)

    def is_active(self, link_id: str, bucket_lo: int, bucket_hi: int) -> bool:
        entry = self.links.get(link_id)
        return entry is not None and entry.is_active(bucket_lo, bucket_hi)


def index_link(
    events: Iterable[RawEvent],
    granularity_ms: int
) -> LinkBuckets:
    """Bucket activity of the events backing one link."""
    ordered = sorted(events, key=lambda e: (e.timestamp, e.id))
    if not ordered:
        return LinkBuckets(buckets=(), cumulative_bytes=(0,), members=())

    timestamps = np.fromiter((e.timestamp for e in ordered), dtype=np.int64, count=len(ordered))
    sizes = np.fromiter((e.size for e in ordered), dtype=np.int64, count=len(ordered))
    buckets, inverse = np.unique(np.floor_divide(timestamps, granularity_ms), return_inverse=True)
    bucket_bytes = np.zeros(len(buckets), dtype=np.int64)
    np.add.at(bucket_bytes, inverse, sizes)

    groups: List[List[str]] = [[] for _ in range(len(buckets))]
    for position, event in zip(inverse.tolist(), ordered):
        groups[position].append(event.id)

    cumulative = np.concatenate(([0], np.cumsum(bucket_bytes)))
    return LinkBuckets(
        buckets=tuple(int(b) for b in buckets.tolist()),
        cumulative_bytes=tuple(int(c) for c in cumulative.tolist()),
        members=tuple(tuple(g) for g in groups)
    )


class TemporalIndexBuilder:
    """
    Builds a TimeBucketIndex over Search-time aggregates.

    The builder resolves each link's member ids against the raw event
    store once; the resulting index is read-only.
    """

    def __init__(self, config: Optional[TemporalIndexConfig] = None):
        self._config = config or TemporalIndexConfig()

    @property
    def default_granularity_ms(self) -> int:
        return self._config.granularity_ms

    def build(
        self,
        aggregation: AggregationResult,
        events: RawEventStore,
        granularity_ms: Optional[int] = None
    ) -> TimeBucketIndex:
        granularity = granularity_ms or self._config.granularity_ms
        if granularity <= 0:
            raise ValueError(f"granularity must be positive, got {granularity}")

        links: Dict[str, LinkBuckets] = {}
        for kind in TRAFFIC_KINDS:
            store = events.file_versions if kind is LinkKind.FILE_VERSION else events.network_activities
            for link in aggregation.traffic_links(kind):
                links[link.id] = self._index_one(link, store, granularity)

        return TimeBucketIndex(granularity_ms=granularity, links=links)

    @staticmethod
    def _index_one(link: TrafficLink, store: Mapping[str, RawEvent], granularity: int) -> LinkBuckets:
        # Aggregation only keeps resolvable members, so every id is present.
        return index_link((store[event_id] for event_id in link.member_event_ids), granularity)
