"""
Window Query Tests
==================

INVARIANTS:
===========
- Index answers match a naive scan of the raw events
- Shrinking a window never activates new links
- Window proportions are re-derived per kind and sum to 1
- Bad windows yield an empty graph plus a recorded error
"""

import pytest
from hypothesis import given, settings, strategies as st
from hypothesis.strategies import composite

from forensic_graph.catalog import parse_analysis_data
from forensic_graph.contracts import ErrorCode, LinkKind, TimeWindow
from forensic_graph.core import AnalysisModel, WindowQueryEngine, build_model
from tests.fixtures import (
    MINUTE_MS, STANDARD_WINDOW, empty_payload, endpoint, network_activity, port,
    standard_model
)


def _codes(result):
    return [e.code for e in result.errors]


class TestWindowValidation:

    def test_inverted_window(self):
        result = WindowQueryEngine().query(standard_model(), TimeWindow(100, 50))
        assert result.is_empty
        assert _codes(result) == [ErrorCode.INVALID_TIME_WINDOW]

    def test_zero_length_window_is_empty_without_error(self):
        result = WindowQueryEngine().query(standard_model(), TimeWindow(100, 100))
        assert result.is_empty
        assert result.errors == ()

    def test_window_outside_search_range(self):
        result = WindowQueryEngine().query(standard_model(), TimeWindow(500000, 600000))
        assert result.is_empty
        assert _codes(result) == [ErrorCode.WINDOW_OUT_OF_RANGE]

    def test_window_starting_at_exclusive_search_end(self):
        """The Search range excludes its end, so nothing is left to clamp to."""
        end = STANDARD_WINDOW.end_ms
        result = WindowQueryEngine().query(standard_model(), TimeWindow(end, end + 1000))

        assert result.is_empty
        assert _codes(result) == [ErrorCode.WINDOW_OUT_OF_RANGE]

    def test_partial_overlap_is_clamped(self):
        result = WindowQueryEngine().query(standard_model(), TimeWindow(-1000, 30000))

        assert result.window == TimeWindow(0, 30000)
        assert _codes(result) == [ErrorCode.WINDOW_CLAMPED]
        assert not result.is_empty

    def test_empty_model(self):
        """No Search yet: every window is empty."""
        result = WindowQueryEngine().query(AnalysisModel.empty(MINUTE_MS), TimeWindow(0, 1000))
        assert result.is_empty


class TestProjection:

    def test_full_window(self):
        result = WindowQueryEngine().query(standard_model(), STANDARD_WINDOW)
        graph = result.graph

        assert list(graph.entities) == ["e2", "f1", "f2", "port1", "port2", "port3", "p1", "p2"]
        assert [l.id for l in graph.port_links] == ["port1->p1", "port2->e2", "port3->p1"]
        assert [l.id for l in graph.file_version_links] == ["p1->f1", "p2->f2"]
        assert result.bucket_range == (0, 3)

    def test_first_bucket_only(self):
        """Proportions are re-derived over the active subset."""
        result = WindowQueryEngine().query(standard_model(), TimeWindow(0, 59999))
        graph = result.graph

        (fv,) = graph.file_version_links
        assert fv.id == "p1->f1"
        assert fv.total_bytes == 100
        assert fv.member_event_ids == ("fv1",)
        assert fv.byte_proportion == 1.0
        assert [l.id for l in graph.network_activity_links] == ["port1->port2"]
        assert "p2" not in graph.entities
        assert "f2" not in graph.entities

    def test_process_owning_ports_are_always_present(self):
        """port3 carries no traffic but owns p1."""
        result = WindowQueryEngine().query(standard_model(), TimeWindow(0, 59999))
        assert "port3" in result.graph.entities
        assert "port3->p1" in [l.id for l in result.graph.port_links]

    def test_untouched_endpoint_is_absent(self):
        result = WindowQueryEngine().query(standard_model(), STANDARD_WINDOW)
        assert "e1" not in result.graph.entities

    def test_window_without_traffic_is_empty(self):
        """Structural port links alone never populate a view."""
        payload = empty_payload()
        payload["endpoints"] = [endpoint("e", "h", "1.1.1.1")]
        payload["ports"] = [port("a", 1, "h"), port("b", 2, "h")]
        payload["networkActivities"] = [network_activity("n", 1000, "a", "b", 10)]
        model = build_model(parse_analysis_data(payload, STANDARD_WINDOW), MINUTE_MS)

        result = WindowQueryEngine().query(model, TimeWindow(120000, 179999))

        assert result.is_empty
        assert result.errors == ()

    def test_search_aggregates_are_untouched(self):
        model = standard_model()
        WindowQueryEngine().query(model, TimeWindow(0, 59999))

        links = {l.id: l for l in model.aggregation.file_version_links}
        assert links["p1->f1"].total_bytes == 200
        assert links["p1->f1"].byte_proportion == pytest.approx(0.4)


# =============================================================================
# PROPERTY TESTS
# =============================================================================

PORTS = ("a", "b", "c", "d")
SEARCH = TimeWindow(0, 600_000)


@composite
def traffic_models(draw):
    """Random network traffic between four ports, with its raw events."""
    events = draw(st.lists(
        st.tuples(
            st.sampled_from(PORTS),
            st.sampled_from(PORTS),
            st.integers(min_value=1, max_value=5000),
            st.integers(min_value=SEARCH.start_ms, max_value=SEARCH.end_ms - 1),
        ),
        min_size=1,
        max_size=30
    ))
    granularity = draw(st.sampled_from([1000, 60000, 3600000]))

    payload = empty_payload()
    payload["endpoints"] = [endpoint("e", "h", "1.1.1.1")]
    payload["ports"] = [port(p, i, "h") for i, p in enumerate(PORTS)]
    payload["networkActivities"] = [
        network_activity(f"n{i}", ts, s, t, size) for i, (s, t, size, ts) in enumerate(events)
    ]
    model = build_model(parse_analysis_data(payload, SEARCH), granularity)
    return model, payload["networkActivities"]


@composite
def nested_windows(draw):
    a, b, c, d = sorted(draw(st.lists(
        st.integers(min_value=SEARCH.start_ms, max_value=SEARCH.end_ms),
        min_size=4, max_size=4
    )))
    return TimeWindow(a, d), TimeWindow(b, c)


def _naive_active(raw_events, window, granularity):
    """Byte totals per link from a direct scan of the raw events."""
    lo, hi = window.start_ms // granularity, window.end_ms // granularity
    totals = {}
    for e in raw_events:
        if lo <= e["timestamp"] // granularity <= hi:
            link_id = f"{e['source']}->{e['target']}"
            totals[link_id] = totals.get(link_id, 0) + e["length"]
    return totals


@settings(max_examples=75)
@given(traffic_models(), nested_windows())
def test_index_matches_naive_scan(model_and_events, windows):
    model, raw_events = model_and_events
    window, _ = windows
    if window.is_empty:
        return

    result = WindowQueryEngine().query(model, window)
    got = {l.id: l.total_bytes for l in result.graph.network_activity_links}

    assert got == _naive_active(raw_events, window, model.granularity_ms)


@settings(max_examples=75)
@given(traffic_models(), nested_windows())
def test_window_shrink_is_monotonic(model_and_events, windows):
    model, _ = model_and_events
    outer, inner = windows
    engine = WindowQueryEngine()

    outer_ids = {l.id for l in engine.query(model, outer).graph.all_links()}
    inner_ids = {l.id for l in engine.query(model, inner).graph.all_links()}

    assert inner_ids <= outer_ids


@settings(max_examples=75)
@given(traffic_models(), nested_windows())
def test_window_proportions_close(model_and_events, windows):
    model, _ = model_and_events
    window, _ = windows

    links = WindowQueryEngine().query(model, window).graph.links_of(LinkKind.NETWORK_ACTIVITY)

    if links:
        assert sum(l.byte_proportion for l in links) == pytest.approx(1.0)
