"""
Topology Engine Tests
=====================

Adjacency lookups over the displayed graph.

These tests verify that the topology engine:
1. Mirrors the displayed nodes and links exactly
2. Answers neighborhood queries in both directions
3. Groups hosts with more than two displayed nodes
"""

import pytest

from forensic_graph.contracts import DisplayedGraph, Endpoint, NetworkActivityLink, Port, PortLink, NodeType
from forensic_graph.core import TopologyEngine, GraphMetrics, FilterComposer, FilterState, WindowQueryEngine
from tests.fixtures import STANDARD_WINDOW, standard_model


def _standard_displayed() -> DisplayedGraph:
    graph = WindowQueryEngine().query(standard_model(), STANDARD_WINDOW).graph
    return FilterComposer().compose(graph, {}, FilterState())


class TestTopologyEngine:

    def test_build_graph_correctness(self):
        """Graph should accurately reflect nodes and edges."""
        engine = TopologyEngine()
        engine.build_graph(_standard_displayed())

        metrics = engine.compute_metrics()
        assert metrics.node_count == 8
        assert metrics.edge_count == 7

    def test_neighbors_ignore_direction(self):
        engine = TopologyEngine()
        engine.build_graph(_standard_displayed())

        assert engine.neighbors("port1") == {"p1", "port2"}
        assert engine.neighbors("p1") == {"port1", "port3", "f1"}
        assert engine.neighbors("unknown") == set()

    def test_incident_links_and_endpoints(self):
        engine = TopologyEngine()
        engine.build_graph(_standard_displayed())

        assert engine.incident_links("port2") == {"port2->e2", "port1->port2", "port2->port1"}
        assert engine.link_endpoints("p2->f2") == ("p2", "f2")
        assert engine.link_endpoints("missing") is None

    def test_host_groups(self):
        """localhost has six displayed nodes; remote only two."""
        engine = TopologyEngine()
        engine.build_graph(_standard_displayed())
        assert engine.host_groups() == ["localhost"]

    def test_connected_components(self):
        """Disjoint sub-graphs appear as separate components."""
        displayed = DisplayedGraph(
            nodes=(
                Port(id="a", port_number=1, host_name="h"),
                Endpoint(id="e", host_name="h", host_ip="1.1.1.1"),
                Port(id="b", port_number=2, host_name="h"),
                Port(id="c", port_number=3, host_name="h"),
            ),
            links=(
                PortLink(id="a->e", source="a", target="e", target_type=NodeType.ENDPOINT),
                NetworkActivityLink(id="b->c", source="b", target="c", total_bytes=1, byte_proportion=1.0),
            )
        )
        engine = TopologyEngine()
        engine.build_graph(displayed)

        components = engine.get_connected_components()
        assert len(components) == 2
        assert {"a", "e"} in components
        assert engine.compute_metrics().connected_components_count == 2

    def test_empty_graph(self):
        engine = TopologyEngine()
        engine.build_graph(DisplayedGraph.empty())

        assert engine.compute_metrics() == GraphMetrics(0, 0, 0.0, 0)
        assert engine.get_connected_components() == []
        assert engine.host_groups() == []

    def test_rebuild_replaces_state(self):
        engine = TopologyEngine()
        engine.build_graph(_standard_displayed())
        engine.build_graph(DisplayedGraph.empty())
        assert engine.compute_metrics().node_count == 0
