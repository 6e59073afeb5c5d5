"""
Temporal Index Tests
====================

INVARIANTS:
===========
- A link is active in [bLo, bHi] iff one of its buckets lies in the range
- Window byte totals come from prefix sums, not from raw events
- The index depends on granularity; aggregates do not
"""

import pytest

from forensic_graph.contracts import FileVersionEvent, TimeWindow, bucket_of
from forensic_graph.core import (
    DEFAULT_GRANULARITY_MS, GRANULARITY_OPTIONS_MS, TemporalIndexBuilder, index_link, regranulate
)
from tests.fixtures import MINUTE_MS, standard_model, two_event_model


def _event(id, ts, size):
    return FileVersionEvent(id=id, timestamp=ts, source="p", target="f", size=size)


class TestIndexLink:

    def test_buckets_and_prefix_sums(self):
        entry = index_link([_event("a", 10, 1), _event("b", 70, 2), _event("c", 75, 4)], 60)

        assert entry.buckets == (0, 1)
        assert entry.cumulative_bytes == (0, 1, 7)
        assert entry.members == (("a",), ("b", "c"))

    def test_range_lookups(self):
        entry = index_link([_event("a", 10, 1), _event("b", 130, 2)], 60)

        assert entry.is_active(0, 0)
        assert not entry.is_active(1, 1)
        assert entry.is_active(1, 2)
        assert entry.bytes_in(0, 2) == 3
        assert entry.bytes_in(2, 5) == 2
        assert entry.members_in(1, 2) == ("b",)

    def test_large_byte_totals_are_exact(self):
        entry = index_link([_event("a", 10, 2 ** 53), _event("b", 20, 1)], 60)
        assert entry.bytes_in(0, 0) == 2 ** 53 + 1

    def test_no_events(self):
        entry = index_link([], 60)
        assert entry.buckets == ()
        assert not entry.is_active(-10, 10)


class TestTwoEventScenario:
    """Two 512-byte events at t=1000 and t=61000, g=60000."""

    def test_single_link_with_both_buckets(self):
        model = two_event_model()
        (link,) = model.aggregation.network_activity_links

        assert link.id == "portA->portB"
        assert link.total_bytes == 1024
        assert link.byte_proportion == 1.0
        assert model.index.buckets_of(link.id) == (0, 1)

    def test_first_window_activates(self):
        model = two_event_model()
        lo, hi = model.index.bucket_range(0, 60000)
        assert model.index.is_active("portA->portB", lo, hi)

    def test_bucket_arithmetic_governs(self):
        """[61001, 120000] covers buckets 1..2 and bucket 1 is present."""
        model = two_event_model()
        lo, hi = model.index.bucket_range(61001, 120000)

        assert (lo, hi) == (1, 2)
        assert model.index.is_active("portA->portB", lo, hi)

    def test_later_window_is_inactive(self):
        model = two_event_model()
        lo, hi = model.index.bucket_range(120000, 180000)
        assert not model.index.is_active("portA->portB", lo, hi)


class TestTemporalIndexBuilder:

    def test_defaults(self):
        assert TemporalIndexBuilder().default_granularity_ms == DEFAULT_GRANULARITY_MS == 60000
        assert GRANULARITY_OPTIONS_MS == (1000, 60000, 3600000, 43200000, 86400000)

    def test_every_traffic_link_is_indexed(self):
        model = standard_model()
        traffic = model.aggregation.file_version_links + model.aggregation.network_activity_links
        assert set(model.index.links) == {l.id for l in traffic}
        assert model.index.buckets_of("p1->f1") == (0, 2)

    def test_non_positive_granularity_raises(self):
        model = standard_model()
        with pytest.raises(ValueError):
            TemporalIndexBuilder().build(model.aggregation, model.dataset.events, -5)

    def test_regranulate_keeps_aggregates(self):
        model = standard_model()
        coarse = regranulate(model, 3600000)

        assert coarse.aggregation is model.aggregation
        assert coarse.granularity_ms == 3600000
        assert coarse.index.buckets_of("p1->f1") == (0,)

    def test_regranulate_same_value_is_identity(self):
        model = standard_model()
        assert regranulate(model, MINUTE_MS) is model

    def test_bucket_of_floors(self):
        assert bucket_of(59999, 60000) == 0
        assert bucket_of(60000, 60000) == 1
        assert bucket_of(-1, 60000) == -1
        assert TimeWindow(0, 10).duration_ms == 10
