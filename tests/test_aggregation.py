"""
Link Aggregator Tests
=====================

INVARIANTS:
===========
- One link per directed (source, target) pair
- Byte proportions of one kind sum to 1 (or there are no links)
- Unknown references are dropped and recorded, never fatal
"""

import pytest
from hypothesis import given, strategies as st

from forensic_graph.catalog import parse_analysis_data
from forensic_graph.contracts import ErrorCode, LinkKind, NodeType, TimeWindow
from forensic_graph.core import AggregationConfig, LinkAggregator
from tests.fixtures import (
    STANDARD_WINDOW, empty_payload, endpoint, file, file_version,
    network_activity, port, process, standard_dataset
)


def _links_by_id(links):
    return {link.id: link for link in links}


class TestTrafficAggregation:

    def test_pairs_collapse_into_links(self):
        result = LinkAggregator().aggregate(standard_dataset())

        fv = _links_by_id(result.file_version_links)
        assert set(fv) == {"p1->f1", "p2->f2"}
        assert fv["p1->f1"].total_bytes == 200
        assert fv["p1->f1"].member_event_ids == ("fv1", "fv3")
        assert fv["p1->f1"].byte_proportion == pytest.approx(0.4)
        assert fv["p2->f2"].byte_proportion == pytest.approx(0.6)

        na = _links_by_id(result.network_activity_links)
        assert na["port1->port2"].byte_proportion == pytest.approx(0.8)
        assert na["port2->port1"].byte_proportion == pytest.approx(0.2)

    def test_direction_matters(self):
        """A->B and B->A are distinct links."""
        result = LinkAggregator().aggregate(standard_dataset())
        assert len(result.network_activity_links) == 2

    def test_links_are_ordered_by_id(self):
        result = LinkAggregator().aggregate(standard_dataset())
        ids = [link.id for link in result.file_version_links]
        assert ids == sorted(ids)

    def test_single_event_has_full_proportion(self):
        payload = empty_payload()
        payload["processes"] = [process("p", "cat")]
        payload["files"] = [file("f", "/tmp/x", "txt")]
        payload["fileVersions"] = [file_version("fv", 10, "p", "f", 7)]

        result = LinkAggregator().aggregate(parse_analysis_data(payload, STANDARD_WINDOW))

        assert len(result.file_version_links) == 1
        assert result.file_version_links[0].byte_proportion == 1.0
        assert result.network_activity_links == ()

    def test_search_window_is_half_open(self):
        """An event exactly at the Search end is excluded."""
        payload = empty_payload()
        payload["processes"] = [process("p", "cat")]
        payload["files"] = [file("f", "/tmp/x", "txt")]
        payload["fileVersions"] = [
            file_version("in", 0, "p", "f", 1),
            file_version("out", 100, "p", "f", 1),
        ]

        result = LinkAggregator().aggregate(parse_analysis_data(payload, TimeWindow(0, 100)))

        assert result.file_version_links[0].member_event_ids == ("in",)

    def test_zero_bytes_do_not_divide(self):
        payload = empty_payload()
        payload["processes"] = [process("p", "cat")]
        payload["files"] = [file("f", "/tmp/x", "txt")]
        payload["fileVersions"] = [file_version("fv", 10, "p", "f", 0)]

        result = LinkAggregator().aggregate(parse_analysis_data(payload, STANDARD_WINDOW))

        assert result.file_version_links[0].byte_proportion == 0.0
        assert ErrorCode.DEGENERATE_BYTE_TOTAL in [e.code for e in result.diagnostics]


class TestUnknownReferences:

    def _payload(self):
        payload = empty_payload()
        payload["processes"] = [process("p", "cat")]
        payload["files"] = [file("f", "/tmp/x", "txt")]
        payload["fileVersions"] = [
            file_version("ok", 10, "p", "f", 5),
            file_version("ghost", 20, "p", "missing", 5),
        ]
        return payload

    def test_unknown_target_is_dropped(self):
        result = LinkAggregator().aggregate(parse_analysis_data(self._payload(), STANDARD_WINDOW))

        assert [l.id for l in result.file_version_links] == ["p->f"]
        assert result.file_version_links[0].byte_proportion == 1.0
        codes = [e.code for e in result.diagnostics]
        assert codes == [ErrorCode.UNKNOWN_ENTITY_REFERENCE]

    def test_dropping_can_be_disabled(self):
        aggregator = LinkAggregator(AggregationConfig(drop_unresolved_events=False))
        result = aggregator.aggregate(parse_analysis_data(self._payload(), STANDARD_WINDOW))
        assert len(result.file_version_links) == 2


class TestPortLinks:

    def test_owner_resolution(self):
        """Ports link to their processes, or to their host endpoint."""
        result = LinkAggregator().aggregate(standard_dataset())

        links = _links_by_id(result.port_links)
        assert set(links) == {"port1->p1", "port2->e2", "port3->p1"}
        assert links["port1->p1"].target_type is NodeType.PROCESS
        assert links["port2->e2"].target_type is NodeType.ENDPOINT
        assert all(l.kind is LinkKind.PORT for l in links.values())

    def test_unresolvable_owner_is_recorded(self):
        payload = empty_payload()
        payload["ports"] = [port("lonely", 22, "nohost"), port("orphan", 23, "localhost", ["ghost"])]

        result = LinkAggregator().aggregate(parse_analysis_data(payload, STANDARD_WINDOW))

        assert result.port_links == ()
        assert [e.code for e in result.diagnostics] == [ErrorCode.UNKNOWN_ENTITY_REFERENCE] * 2

    def test_traffic_links_rejects_port_kind(self):
        with pytest.raises(ValueError):
            LinkAggregator().aggregate(standard_dataset()).traffic_links(LinkKind.PORT)


# =============================================================================
# PROPERTY TESTS
# =============================================================================

@given(st.lists(
    st.tuples(
        st.sampled_from(["a", "b", "c"]),
        st.sampled_from(["a", "b", "c"]),
        st.integers(min_value=0, max_value=10_000),
        st.integers(min_value=0, max_value=179_999),
    ),
    max_size=40
))
def test_proportions_sum_to_one(events):
    """Per kind, proportions sum to 1 whenever any link carries bytes."""
    payload = empty_payload()
    payload["endpoints"] = [endpoint("e", "h", "1.1.1.1")]
    payload["ports"] = [port(p, 1, "h") for p in ("a", "b", "c")]
    payload["networkActivities"] = [
        network_activity(f"n{i}", ts, s, t, size) for i, (s, t, size, ts) in enumerate(events)
    ]

    result = LinkAggregator().aggregate(parse_analysis_data(payload, STANDARD_WINDOW))
    links = result.network_activity_links

    total = sum(l.total_bytes for l in links)
    if total > 0:
        assert sum(l.byte_proportion for l in links) == pytest.approx(1.0)
    else:
        assert all(l.byte_proportion == 0.0 for l in links)
    assert len({l.id for l in links}) == len(links)
    assert sum(len(l.member_event_ids) for l in links) == len(events)
