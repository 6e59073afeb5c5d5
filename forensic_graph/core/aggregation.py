"""
Link Aggregator
===============

Collapses raw events sharing a (source, target) pair into one aggregate
link and synthesizes the structural port links.

GUARANTEES:
- Pure: same Dataset -> same AggregationResult
- Never divides by zero: an empty kind produces no links
- Events referencing unknown entities are dropped, never fatal
- Output links are ordered by link id
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Type, TypeVar

from ..catalog import Dataset, EntityCatalog
from ..contracts.base import Error, ErrorCode, TimeWindow, link_id_for
from ..contracts.entities import NodeType, Port
from ..contracts.events import RawEvent
from ..contracts.links import FileVersionLink, LinkKind, NetworkActivityLink, PortLink, TrafficLink


L = TypeVar('L', bound=TrafficLink)


@dataclass
class AggregationConfig:
    """Configuration for the link aggregator."""
    # Only meaningful for debugging inconsistent datasets; the default
    # matches the interactive contract.
    drop_unresolved_events: bool = True


@dataclass(frozen=True)
class AggregationResult:
    """
    Search-time aggregates.

    `port_links_by_port` maps every port id to its structural links so
    that window queries can pick them up without recomputation.
    """
    file_version_links: Tuple[FileVersionLink, ...]
    network_activity_links: Tuple[NetworkActivityLink, ...]
    port_links_by_port: Dict[str, Tuple[PortLink, ...]]
    diagnostics: Tuple[Error, ...] = field(default_factory=tuple)

    @staticmethod
    def empty() -> AggregationResult:
        return AggregationResult(
            file_version_links=(),
            network_activity_links=(),
            port_links_by_port={},
        )

    def traffic_links(self, kind: LinkKind) -> Tuple[TrafficLink, ...]:
        if kind is LinkKind.FILE_VERSION:
            return self.file_version_links
        if kind is LinkKind.NETWORK_ACTIVITY:
            return self.network_activity_links
        raise ValueError(f"{kind} is not a traffic link kind")

    @property
    def port_links(self) -> Tuple[PortLink, ...]:
        links: List[PortLink] = []
        for port_links in self.port_links_by_port.values():
            links.extend(port_links)
        return tuple(links)

    @property
    def link_count(self) -> int:
        return len(self.file_version_links) + len(self.network_activity_links) + len(self.port_links)


def aggregate_events(
    events: Iterable[RawEvent],
    link_type: Type[L],
    resolve_source: Callable[[str], bool],
    resolve_target: Callable[[str], bool],
    window: Optional[TimeWindow] = None,
    diagnostics: Optional[List[Error]] = None
) -> Tuple[L, ...]:
    """
    Group events by (source, target) into aggregate links of one kind.

    Only events inside the half-open `window` are considered. Each link's
    byte proportion is its share of the bytes of all links produced here.
    """
    totals: Dict[str, int] = {}
    members: Dict[str, List[str]] = {}
    endpoints: Dict[str, Tuple[str, str]] = {}

    # Stable member order regardless of payload order.
    ordered = sorted(events, key=lambda e: (e.timestamp, e.id))
    for event in ordered:
        if window is not None and not window.contains_half_open(event.timestamp):
            continue
        if not resolve_source(event.source) or not resolve_target(event.target):
            if diagnostics is not None:
                diagnostics.append(Error.create(
                    ErrorCode.UNKNOWN_ENTITY_REFERENCE,
                    f"{event.event_kind.value} event '{event.id}' references an unknown entity",
                    event_id=event.id,
                    source=event.source,
                    target=event.target
                ))
            continue

        link_id = link_id_for(event.source, event.target)
        if link_id not in totals:
            totals[link_id] = 0
            members[link_id] = []
            endpoints[link_id] = (event.source, event.target)
        totals[link_id] += event.size
        members[link_id].append(event.id)

    overall = sum(totals.values())
    if not totals:
        return ()
    if overall == 0 and diagnostics is not None:
        diagnostics.append(Error.create(
            ErrorCode.DEGENERATE_BYTE_TOTAL,
            f"{link_type.kind.value} links carry zero bytes; proportions default to 0",
            kind=link_type.kind.value
        ))

    links = []
    for link_id in sorted(totals):
        source, target = endpoints[link_id]
        links.append(link_type(
            id=link_id,
            source=source,
            target=target,
            total_bytes=totals[link_id],
            byte_proportion=(totals[link_id] / overall) if overall > 0 else 0.0,
            member_event_ids=tuple(members[link_id])
        ))
    return tuple(links)


def synthesize_port_links(
    ports: Iterable[Port],
    catalog: EntityCatalog,
    diagnostics: Optional[List[Error]] = None
) -> Dict[str, Tuple[PortLink, ...]]:
    """
    Structural links from each port to its owner.

    A port with process ids links to each known process; any other port
    links to the endpoint of its host. Unresolvable owners are recorded
    and skipped.
    """
    by_port: Dict[str, Tuple[PortLink, ...]] = {}
    for port in ports:
        links: List[PortLink] = []
        if port.owns_process:
            for process_id in port.process_ids:
                if process_id not in catalog.processes:
                    if diagnostics is not None:
                        diagnostics.append(Error.create(
                            ErrorCode.UNKNOWN_ENTITY_REFERENCE,
                            f"Port '{port.id}' references unknown process '{process_id}'",
                            port_id=port.id,
                            process_id=process_id
                        ))
                    continue
                links.append(PortLink(
                    id=link_id_for(port.id, process_id),
                    source=port.id,
                    target=process_id,
                    target_type=NodeType.PROCESS
                ))
        else:
            endpoint = catalog.endpoint_for_host(port.host_name)
            if endpoint is None:
                if diagnostics is not None:
                    diagnostics.append(Error.create(
                        ErrorCode.UNKNOWN_ENTITY_REFERENCE,
                        f"Port '{port.id}' has no endpoint on host '{port.host_name}'",
                        port_id=port.id,
                        host_name=port.host_name
                    ))
            else:
                links.append(PortLink(
                    id=link_id_for(port.id, endpoint.id),
                    source=port.id,
                    target=endpoint.id,
                    target_type=NodeType.ENDPOINT
                ))
        by_port[port.id] = tuple(links)
    return by_port


class LinkAggregator:
    """
    Builds the Search-time aggregates of a Dataset.

    Stateless; the aggregation window is the Dataset's Search window.
    """

    def __init__(self, config: Optional[AggregationConfig] = None):
        self._config = config or AggregationConfig()

    def aggregate(self, dataset: Dataset) -> AggregationResult:
        catalog = dataset.catalog
        diagnostics: List[Error] = []

        def accept(collection: Mapping[str, object]) -> Callable[[str], bool]:
            if not self._config.drop_unresolved_events:
                return lambda entity_id: True
            return lambda entity_id: entity_id in collection

        file_version_links = aggregate_events(
            dataset.events.file_versions.values(),
            FileVersionLink,
            resolve_source=accept(catalog.processes),
            resolve_target=accept(catalog.files),
            window=dataset.search_window,
            diagnostics=diagnostics
        )
        network_activity_links = aggregate_events(
            dataset.events.network_activities.values(),
            NetworkActivityLink,
            resolve_source=accept(catalog.ports),
            resolve_target=accept(catalog.ports),
            window=dataset.search_window,
            diagnostics=diagnostics
        )
        port_links_by_port = synthesize_port_links(catalog.ports.values(), catalog, diagnostics)

        return AggregationResult(
            file_version_links=file_version_links,
            network_activity_links=network_activity_links,
            port_links_by_port=port_links_by_port,
            diagnostics=tuple(diagnostics)
        )
