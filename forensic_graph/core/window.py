"""
Window Query Engine
===================

Answers "what is active in window [t0, t1]" from the temporal index.

HOT PATH:
=========
Runs on every brush movement. Cost is one pair of binary searches per
aggregate link plus the matched buckets; raw events are never scanned.

ALGORITHM:
==========
1. Validate and clamp the window to the Search range
2. Convert to bucket bounds [bLo, bHi]
3. Per traffic kind, select links whose buckets intersect [bLo, bHi]
   and re-derive their window byte totals and proportions
4. Active ids = endpoints of the selected traffic links
5. Ports/Files/Endpoints in the active set, plus every process-owning Port
6. Port links of the selected ports pull owners into the active set
7. Processes/Endpoints in the expanded set

A window with no active traffic yields an empty graph; structural port
links alone never populate a view.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Set, Tuple

from ..contracts.base import Error, ErrorCode, TimeWindow
from ..contracts.entities import Entity
from ..contracts.links import ActiveGraph, LinkKind, PortLink, TrafficLink
from .model import AnalysisModel


@dataclass(frozen=True)
class WindowQueryResult:
    """Active graph for one window plus any validation findings."""
    requested: TimeWindow
    window: Optional[TimeWindow]            # effective window after clamping
    bucket_range: Optional[Tuple[int, int]]
    graph: ActiveGraph
    errors: Tuple[Error, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return self.graph.is_empty


def _validate(requested: TimeWindow, bounds: TimeWindow, errors: List[Error]) -> Optional[TimeWindow]:
    """Return the effective window, or None when the result must be empty."""
    if requested.start_ms > requested.end_ms:
        errors.append(Error.create(
            ErrorCode.INVALID_TIME_WINDOW,
            "Window start is after its end",
            start_ms=requested.start_ms,
            end_ms=requested.end_ms
        ))
        return None
    if requested.start_ms == requested.end_ms:
        return None
    effective = requested.clamp_to(bounds)
    # A window touching only the exclusive end of the Search range clamps to empty.
    if bounds.is_empty or not requested.overlaps(bounds) or effective.is_empty:
        errors.append(Error.create(
            ErrorCode.WINDOW_OUT_OF_RANGE,
            "Window lies outside the Search range",
            start_ms=requested.start_ms,
            end_ms=requested.end_ms
        ))
        return None

    if effective != requested:
        errors.append(Error.create(
            ErrorCode.WINDOW_CLAMPED,
            "Window clamped to the Search range",
            start_ms=effective.start_ms,
            end_ms=effective.end_ms
        ))
    return effective


def select_active_links(
    model: AnalysisModel,
    kind: LinkKind,
    bucket_lo: int,
    bucket_hi: int,
    errors: Optional[List[Error]] = None
) -> Tuple[TrafficLink, ...]:
    """
    Links of one kind active in [bucket_lo, bucket_hi].

    Returned links carry their window byte totals, members and
    proportions; Search-time aggregates are left untouched.
    """
    index = model.index
    selected: List[Tuple[TrafficLink, int, Tuple[str, ...]]] = []
    for link in model.aggregation.traffic_links(kind):
        entry = index.links.get(link.id)
        if entry is None:
            continue
        i, j = entry.span(bucket_lo, bucket_hi)
        if i >= j:
            continue
        window_bytes = entry.cumulative_bytes[j] - entry.cumulative_bytes[i]
        selected.append((link, window_bytes, entry.members_in(bucket_lo, bucket_hi)))

    overall = sum(window_bytes for _, window_bytes, _ in selected)
    if selected and overall == 0 and errors is not None:
        errors.append(Error.create(
            ErrorCode.DEGENERATE_BYTE_TOTAL,
            f"Active {kind.value} links carry zero bytes; proportions default to 0",
            kind=kind.value
        ))

    return tuple(
        replace(
            link,
            total_bytes=window_bytes,
            byte_proportion=(window_bytes / overall) if overall > 0 else 0.0,
            member_event_ids=members
        )
        for link, window_bytes, members in selected
    )


class WindowQueryEngine:
    """Stateless window queries over an AnalysisModel."""

    def query(self, model: AnalysisModel, requested: TimeWindow) -> WindowQueryResult:
        errors: List[Error] = []
        effective = _validate(requested, model.search_window, errors)
        if effective is None:
            return WindowQueryResult(
                requested=requested,
                window=None,
                bucket_range=None,
                graph=ActiveGraph.empty(),
                errors=tuple(errors)
            )

        bucket_lo, bucket_hi = model.index.bucket_range(effective.start_ms, effective.end_ms)
        file_version_links = select_active_links(model, LinkKind.FILE_VERSION, bucket_lo, bucket_hi, errors)
        network_activity_links = select_active_links(model, LinkKind.NETWORK_ACTIVITY, bucket_lo, bucket_hi, errors)

        graph = self._project(model, file_version_links, network_activity_links)
        return WindowQueryResult(
            requested=requested,
            window=effective,
            bucket_range=(bucket_lo, bucket_hi),
            graph=graph,
            errors=tuple(errors)
        )

    @staticmethod
    def _project(
        model: AnalysisModel,
        file_version_links: Tuple[TrafficLink, ...],
        network_activity_links: Tuple[TrafficLink, ...]
    ) -> ActiveGraph:
        catalog = model.dataset.catalog

        active: Set[str] = set()
        for link in file_version_links + network_activity_links:
            active.add(link.source)
            active.add(link.target)
        if not active:
            return ActiveGraph.empty()

        ports = [p for p in catalog.ports.values() if p.id in active or p.owns_process]
        files = [f for f in catalog.files.values() if f.id in active]

        port_links: List[PortLink] = []
        for port in ports:
            for port_link in model.aggregation.port_links_by_port.get(port.id, ()):
                port_links.append(port_link)
                active.add(port_link.target)

        processes = [p for p in catalog.processes.values() if p.id in active]
        endpoints = [e for e in catalog.endpoints.values() if e.id in active]

        entities: Dict[str, Entity] = {}
        for entity in [*endpoints, *files, *ports, *processes]:
            entities[entity.id] = entity

        return ActiveGraph(
            entities=entities,
            port_links=tuple(sorted(port_links, key=lambda l: l.id)),
            file_version_links=file_version_links,
            network_activity_links=network_activity_links
        )
