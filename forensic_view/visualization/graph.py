"""
Graph Visualization Contracts

Responsibility:
Deterministic transformation of a DisplayedGraph into a renderable
force-graph view.

Force-layout renderers address link endpoints by node position rather
than by id. That rewriting happens here, on new values; the
DisplayedGraph handed in is never modified.
"""

from dataclasses import dataclass
from typing import AbstractSet, Dict, Mapping, Optional, Sequence, Tuple

from forensic_graph.contracts import (
    DisplayedGraph, Endpoint, Entity, File, LinkKind, NodeType, Port, Process, TrafficLink
)
from forensic_graph.core import QuantileScale

NODE_SHAPES: Dict[NodeType, str] = {
    NodeType.FILE: "triangle",
    NodeType.ENDPOINT: "square",
    NodeType.PORT: "diamond",
    NodeType.PROCESS: "circle",
}

# None renders solid.
LINK_DASHES: Dict[LinkKind, Optional[str]] = {
    LinkKind.PORT: "2 1",
    LinkKind.NETWORK_ACTIVITY: "5 3",
    LinkKind.FILE_VERSION: None,
}

NEUTRAL_LINK_COLOR = "#999"


@dataclass(frozen=True)
class RenderNode:
    """Renderable graph node."""
    index: int
    node_id: str
    label: str
    shape: str
    entity_type: str
    host_name: str
    is_focused: bool
    is_highlighted: bool


@dataclass(frozen=True)
class RenderEdge:
    """Renderable graph edge; source/target are node indices."""
    edge_id: str
    kind: str
    source: int
    target: int
    color: str
    dash: Optional[str]
    byte_proportion: Optional[float]
    is_highlighted: bool


@dataclass(frozen=True)
class HostGroup:
    """Nodes of one host drawn inside a shared hull."""
    host_name: str
    node_indices: Tuple[int, ...]


@dataclass(frozen=True)
class ForceGraphView:
    """
    Index-addressed graph for force-layout renderers.

    DETERMINISTIC:
    Same displayed graph + same scales = identical view.
    """
    nodes: Tuple[RenderNode, ...]
    edges: Tuple[RenderEdge, ...]
    groups: Tuple[HostGroup, ...]

    def to_dict(self) -> dict:
        return {
            "nodes": [
                {
                    "index": n.index,
                    "id": n.node_id,
                    "label": n.label,
                    "shape": n.shape,
                    "type": n.entity_type,
                    "host_name": n.host_name,
                    "focused": n.is_focused,
                    "highlighted": n.is_highlighted,
                }
                for n in self.nodes
            ],
            "links": [
                {
                    "id": e.edge_id,
                    "kind": e.kind,
                    "source": e.source,
                    "target": e.target,
                    "color": e.color,
                    "dash": e.dash,
                    "byte_proportion": e.byte_proportion,
                    "highlighted": e.is_highlighted,
                }
                for e in self.edges
            ],
            "groups": [
                {"host_name": g.host_name, "nodes": list(g.node_indices)}
                for g in self.groups
            ],
        }


def node_label(entity: Entity) -> str:
    if isinstance(entity, File):
        return f".{entity.type}"
    if isinstance(entity, Endpoint):
        return entity.host_ip
    if isinstance(entity, Port):
        return f":{entity.port_number}"
    if isinstance(entity, Process):
        return entity.name
    return entity.id


def link_color(link, scales: Mapping[LinkKind, QuantileScale]) -> str:
    """Intensity color of a traffic link; port and unclassified links are neutral."""
    if not isinstance(link, TrafficLink):
        return NEUTRAL_LINK_COLOR
    scale = scales.get(link.kind)
    color = scale.classify(link.byte_proportion) if scale is not None else None
    return color or NEUTRAL_LINK_COLOR


def build_force_graph(
    displayed: DisplayedGraph,
    scales: Mapping[LinkKind, QuantileScale],
    host_groups: Sequence[str] = (),
    focused_id: Optional[str] = None,
    highlighted_ids: AbstractSet[str] = frozenset()
) -> ForceGraphView:
    """
    Build the renderer view.

    `highlighted_ids` may mix node and link ids (a hovered element and
    its neighborhood).
    """
    positions = {node.id: index for index, node in enumerate(displayed.nodes)}

    nodes = tuple(
        RenderNode(
            index=positions[node.id],
            node_id=node.id,
            label=node_label(node),
            shape=NODE_SHAPES[node.node_type],
            entity_type=node.node_type.value,
            host_name=node.host_name,
            is_focused=node.id == focused_id,
            is_highlighted=node.id in highlighted_ids,
        )
        for node in displayed.nodes
    )

    edges = tuple(
        RenderEdge(
            edge_id=link.id,
            kind=link.kind.value,
            source=positions[link.source],
            target=positions[link.target],
            color=link_color(link, scales),
            dash=LINK_DASHES[link.kind],
            byte_proportion=link.byte_proportion if isinstance(link, TrafficLink) else None,
            is_highlighted=link.id in highlighted_ids,
        )
        for link in displayed.links
    )

    groups = tuple(
        HostGroup(
            host_name=host,
            node_indices=tuple(n.index for n in nodes if n.host_name == host)
        )
        for host in host_groups
    )

    return ForceGraphView(nodes=nodes, edges=edges, groups=groups)
