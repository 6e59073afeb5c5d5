"""
Link and Graph Contracts

Aggregate links are a tagged union over three variants, discriminated
by `kind`. Traffic links (file versions, network activity) summarize
raw events; port links express ownership and carry no traffic.

INVARIANTS:
===========
- Traffic link identity is "{source}->{target}"
- For one kind and one window, byte proportions sum to 1 (or no links)
- DisplayedGraph: every link endpoint is a node, every node touches a link
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, FrozenSet, Optional, Tuple, Union

from .entities import Entity, NodeType


class LinkKind(Enum):
    """Discriminator of the aggregate link union."""
    PORT = "PortLink"
    FILE_VERSION = "FileVersionLink"
    NETWORK_ACTIVITY = "NetworkActivityLink"

    @property
    def is_traffic(self) -> bool:
        return self is not LinkKind.PORT


TRAFFIC_KINDS: Tuple[LinkKind, ...] = (LinkKind.FILE_VERSION, LinkKind.NETWORK_ACTIVITY)


@dataclass(frozen=True)
class TrafficLink:
    """
    Directed summary of all raw events between one source/target pair.

    `byte_proportion` is this link's share of the bytes of every link
    of the same kind; it is 0.0 when that total is zero.
    """
    id: str
    source: str
    target: str
    total_bytes: int
    byte_proportion: float
    member_event_ids: Tuple[str, ...] = field(default_factory=tuple)

    kind: ClassVar[LinkKind]


@dataclass(frozen=True)
class FileVersionLink(TrafficLink):
    """Process -> File."""
    kind: ClassVar[LinkKind] = LinkKind.FILE_VERSION


@dataclass(frozen=True)
class NetworkActivityLink(TrafficLink):
    """Port -> Port."""
    kind: ClassVar[LinkKind] = LinkKind.NETWORK_ACTIVITY


@dataclass(frozen=True)
class PortLink:
    """Port -> owning Process, or Port -> Endpoint of its host."""
    id: str
    source: str
    target: str
    target_type: NodeType

    kind: ClassVar[LinkKind] = LinkKind.PORT


AggregateLink = Union[FileVersionLink, NetworkActivityLink, PortLink]


# =============================================================================
# GRAPHS
# =============================================================================

@dataclass(frozen=True)
class ActiveGraph:
    """
    Pre-filter output of the window query.

    Entities are keyed by id; link arrays are per kind and ordered by
    link id for deterministic downstream output.
    """
    entities: Dict[str, Entity]
    port_links: Tuple[PortLink, ...]
    file_version_links: Tuple[FileVersionLink, ...]
    network_activity_links: Tuple[NetworkActivityLink, ...]

    @staticmethod
    def empty() -> ActiveGraph:
        return ActiveGraph(entities={}, port_links=(), file_version_links=(), network_activity_links=())

    @property
    def is_empty(self) -> bool:
        return not self.entities and not self.all_links()

    def all_links(self) -> Tuple[AggregateLink, ...]:
        return self.port_links + self.file_version_links + self.network_activity_links

    def links_of(self, kind: LinkKind) -> Tuple[AggregateLink, ...]:
        if kind is LinkKind.PORT:
            return self.port_links
        if kind is LinkKind.FILE_VERSION:
            return self.file_version_links
        return self.network_activity_links


@dataclass(frozen=True)
class DisplayedGraph:
    """
    Final graph handed to renderers.

    Renderers receive this value read-only; any rewriting (e.g. numeric
    edge endpoints) must happen on a copy.
    """
    nodes: Tuple[Entity, ...]
    links: Tuple[AggregateLink, ...]

    @staticmethod
    def empty() -> DisplayedGraph:
        return DisplayedGraph(nodes=(), links=())

    @property
    def node_ids(self) -> FrozenSet[str]:
        return frozenset(node.id for node in self.nodes)

    def find_node(self, node_id: str) -> Optional[Entity]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def find_link(self, link_id: str) -> Optional[AggregateLink]:
        for link in self.links:
            if link.id == link_id:
                return link
        return None

    def is_closed(self) -> bool:
        """Check the visibility closure invariant."""
        node_ids = self.node_ids
        touched = set()
        for link in self.links:
            if link.source not in node_ids or link.target not in node_ids:
                return False
            touched.add(link.source)
            touched.add(link.target)
        return touched == set(node_ids)
