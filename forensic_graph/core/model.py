"""
Analysis Model

The read-only product of one Search: the Dataset, its aggregates and
the temporal index at the current granularity. Window queries and
filter composition only ever read it.
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Optional, Tuple

from ..catalog import Dataset
from ..contracts.base import Error, TimeWindow
from .aggregation import AggregationResult, LinkAggregator
from .temporal_index import TemporalIndexBuilder, TimeBucketIndex


@dataclass(frozen=True)
class AnalysisModel:
    """Immutable Search-time state."""
    dataset: Dataset
    aggregation: AggregationResult
    index: TimeBucketIndex

    @property
    def search_window(self) -> TimeWindow:
        return self.dataset.search_window

    @property
    def granularity_ms(self) -> int:
        return self.index.granularity_ms

    @property
    def diagnostics(self) -> Tuple[Error, ...]:
        return self.dataset.diagnostics + self.aggregation.diagnostics

    @staticmethod
    def empty(granularity_ms: int, search_window: Optional[TimeWindow] = None) -> AnalysisModel:
        return AnalysisModel(
            dataset=Dataset.empty(search_window or TimeWindow(0, 0)),
            aggregation=AggregationResult.empty(),
            index=TimeBucketIndex(granularity_ms=granularity_ms)
        )


def build_model(
    dataset: Dataset,
    granularity_ms: int,
    aggregator: Optional[LinkAggregator] = None,
    index_builder: Optional[TemporalIndexBuilder] = None
) -> AnalysisModel:
    """Full rebuild: aggregate, then index."""
    aggregator = aggregator or LinkAggregator()
    index_builder = index_builder or TemporalIndexBuilder()
    aggregation = aggregator.aggregate(dataset)
    index = index_builder.build(aggregation, dataset.events, granularity_ms)
    return AnalysisModel(dataset=dataset, aggregation=aggregation, index=index)


def regranulate(
    model: AnalysisModel,
    granularity_ms: int,
    index_builder: Optional[TemporalIndexBuilder] = None
) -> AnalysisModel:
    """Rebuild only the index; aggregates do not depend on granularity."""
    if granularity_ms == model.granularity_ms:
        return model
    index_builder = index_builder or TemporalIndexBuilder()
    return replace(model, index=index_builder.build(model.aggregation, model.dataset.events, granularity_ms))
