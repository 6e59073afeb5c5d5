"""
Topology Engine
===============

Structural lookups over the displayed graph, backing hover/focus
highlighting and host grouping in renderers.

SCOPE:
======
This engine answers adjacency questions only (neighbors, link
endpoints, host groups, components). It does not rank nodes; traffic
intensity is the quantile classifier's concern.
"""

from __future__ import annotations
from typing import Dict, List, Optional, Set, Tuple
from dataclasses import dataclass
import networkx as nx

from ..contracts.links import DisplayedGraph


# A host forms a group once it has more than this many displayed nodes.
HOST_GROUP_MIN_EXCLUSIVE = 2


@dataclass(frozen=True)
class GraphMetrics:
    """Immutable structural metrics for a displayed graph."""
    node_count: int
    edge_count: int
    density: float
    connected_components_count: int


class TopologyEngine:
    """
    Wraps NetworkX for lookups over one DisplayedGraph.

    The graph is directed (links are source -> target); neighborhood
    queries ignore direction.
    """

    def __init__(self):
        self._graph = nx.MultiDiGraph()

    def build_graph(self, displayed: DisplayedGraph) -> None:
        """
        Build graph from displayed nodes and links.

        Replaces internal graph state.
        """
        self._graph = nx.MultiDiGraph()
        for node in displayed.nodes:
            self._graph.add_node(node.id, host_name=node.host_name, node_type=node.node_type.value)
        for link in displayed.links:
            self._graph.add_edge(link.source, link.target, key=link.id, kind=link.kind.value)

    def neighbors(self, node_id: str) -> Set[str]:
        """Ids of nodes sharing a link with `node_id` (either direction)."""
        if node_id not in self._graph:
            return set()
        return set(self._graph.successors(node_id)) | set(self._graph.predecessors(node_id))

    def incident_links(self, node_id: str) -> Set[str]:
        if node_id not in self._graph:
            return set()
        out_keys = {key for _, _, key in self._graph.out_edges(node_id, keys=True)}
        in_keys = {key for _, _, key in self._graph.in_edges(node_id, keys=True)}
        return out_keys | in_keys

    def link_endpoints(self, link_id: str) -> Optional[Tuple[str, str]]:
        for source, target, key in self._graph.edges(keys=True):
            if key == link_id:
                return source, target
        return None

    def host_groups(self) -> List[str]:
        """
        Host names with more than two displayed nodes, in first-seen order.
        """
        counts: Dict[str, int] = {}
        for _, host_name in self._graph.nodes(data="host_name"):
            counts[host_name] = counts.get(host_name, 0) + 1
        return [host for host, count in counts.items() if count > HOST_GROUP_MIN_EXCLUSIVE]

    def get_connected_components(self) -> List[Set[str]]:
        """Weakly connected components, as sets of node ids."""
        if not self._graph:
            return []
        return [set(c) for c in nx.weakly_connected_components(self._graph)]

    def compute_metrics(self) -> GraphMetrics:
        if not self._graph:
            return GraphMetrics(0, 0, 0.0, 0)
        return GraphMetrics(
            node_count=self._graph.number_of_nodes(),
            edge_count=self._graph.number_of_edges(),
            density=nx.density(self._graph),
            connected_components_count=nx.number_weakly_connected_components(self._graph)
        )

    def clear(self):
        self._graph.clear()
