"""
Filter Composer
===============

Applies the four independent visibility filters to an active graph and
enforces the closure rule.

ORDER (fixed; the closure depends on it):
1. Drop links whose kind is hidden
2. Drop traffic links whose color bucket is hidden for their kind
3. Drop nodes whose host or node type is hidden
4. Drop links touching a dropped node
5. Drop nodes touching no surviving link

PURITY:
=======
compose() has no hidden state: identical inputs give identical output.
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, List, Mapping, Tuple

from ..contracts.entities import Entity, NodeType
from ..contracts.links import ActiveGraph, AggregateLink, DisplayedGraph, LinkKind, TrafficLink
from .quantile import QuantileScale


def _toggled(values: FrozenSet, value) -> FrozenSet:
    return values - {value} if value in values else values | {value}


@dataclass(frozen=True)
class FilterState:
    """
    Hidden-value sets of every filter dimension.

    Toggles return a new state; nothing is mutated in place.
    """
    hidden_node_types: FrozenSet[NodeType] = field(default_factory=frozenset)
    hidden_link_kinds: FrozenSet[LinkKind] = field(default_factory=frozenset)
    hidden_hosts: FrozenSet[str] = field(default_factory=frozenset)
    hidden_color_buckets: FrozenSet[Tuple[LinkKind, str]] = field(default_factory=frozenset)

    def toggle_node_type(self, node_type: NodeType) -> FilterState:
        return replace(self, hidden_node_types=_toggled(self.hidden_node_types, node_type))

    def toggle_link_kind(self, kind: LinkKind) -> FilterState:
        return replace(self, hidden_link_kinds=_toggled(self.hidden_link_kinds, kind))

    def toggle_host(self, host_name: str) -> FilterState:
        return replace(self, hidden_hosts=_toggled(self.hidden_hosts, host_name))

    def toggle_color_bucket(self, kind: LinkKind, color: str) -> FilterState:
        if not kind.is_traffic:
            raise ValueError(f"{kind.value} links are not intensity-classified")
        return replace(self, hidden_color_buckets=_toggled(self.hidden_color_buckets, (kind, color)))

    def hidden_colors(self, kind: LinkKind) -> FrozenSet[str]:
        return frozenset(color for k, color in self.hidden_color_buckets if k is kind)

    @property
    def is_empty(self) -> bool:
        return not (self.hidden_node_types or self.hidden_link_kinds or self.hidden_hosts or self.hidden_color_buckets)


class FilterComposer:
    """Turns an active graph into the displayed graph."""

    def compose(
        self,
        graph: ActiveGraph,
        scales: Mapping[LinkKind, QuantileScale],
        filters: FilterState
    ) -> DisplayedGraph:
        # 1. hidden link kinds
        links: List[AggregateLink] = [
            link for link in graph.all_links()
            if link.kind not in filters.hidden_link_kinds
        ]

        # 2. hidden intensity buckets
        if filters.hidden_color_buckets:
            links = [link for link in links if not self._color_hidden(link, scales, filters)]

        # 3. hidden hosts and node types
        nodes: Dict[str, Entity] = {
            entity_id: entity for entity_id, entity in graph.entities.items()
            if entity.host_name not in filters.hidden_hosts
            and entity.node_type not in filters.hidden_node_types
        }

        # 4. referential consistency
        links = [link for link in links if link.source in nodes and link.target in nodes]

        # 5. closure
        touched = set()
        for link in links:
            touched.add(link.source)
            touched.add(link.target)

        return DisplayedGraph(
            nodes=tuple(entity for entity_id, entity in nodes.items() if entity_id in touched),
            links=tuple(links)
        )

    @staticmethod
    def _color_hidden(
        link: AggregateLink,
        scales: Mapping[LinkKind, QuantileScale],
        filters: FilterState
    ) -> bool:
        if not isinstance(link, TrafficLink):
            return False
        scale = scales.get(link.kind)
        if scale is None:
            return False
        color = scale.classify(link.byte_proportion)
        # Unclassified (zero-byte) links cannot be hidden by intensity.
        return color is not None and (link.kind, color) in filters.hidden_color_buckets
