"""
Temporal Aggregation & Graph Projection Core

RESPONSIBILITY: Turn a Dataset into the graph visible in a time window
ALLOWED INPUTS: Dataset (catalog layer), windows, filter state
OUTPUTS: AnalysisModel (per Search), ActiveGraph, DisplayedGraph

PIPELINE:
=========
LinkAggregator -> TemporalIndexBuilder  (once per Search / granularity)
WindowQueryEngine -> QuantileClassifier -> FilterComposer  (per interaction)

WHAT THIS LAYER MUST NOT DO:
============================
- Fetch data or hold it across Searches
- Scan raw events on the per-interaction path
- Raise during interactive recomputation (findings are Error values)
"""

from .aggregation import AggregationConfig, AggregationResult, LinkAggregator, aggregate_events, synthesize_port_links
from .temporal_index import (
    DEFAULT_GRANULARITY_MS, GRANULARITY_OPTIONS_MS, TemporalIndexConfig,
    LinkBuckets, TimeBucketIndex, TemporalIndexBuilder, index_link
)
from .model import AnalysisModel, build_model, regranulate
from .window import WindowQueryEngine, WindowQueryResult, select_active_links
from .quantile import QUANTILE_COLORS, QuantileConfig, QuantileScale, QuantileClassifier, quantile_scale
from .filters import FilterState, FilterComposer
from .topology import TopologyEngine, GraphMetrics
from .histogram import EventTimeline, TimelineHistogram, HistogramBucket

__all__ = [
    'AggregationConfig', 'AggregationResult', 'LinkAggregator', 'aggregate_events', 'synthesize_port_links',
    'DEFAULT_GRANULARITY_MS', 'GRANULARITY_OPTIONS_MS', 'TemporalIndexConfig',
    'LinkBuckets', 'TimeBucketIndex', 'TemporalIndexBuilder', 'index_link',
    'AnalysisModel', 'build_model', 'regranulate',
    'WindowQueryEngine', 'WindowQueryResult', 'select_active_links',
    'QUANTILE_COLORS', 'QuantileConfig', 'QuantileScale', 'QuantileClassifier', 'quantile_scale',
    'FilterState', 'FilterComposer',
    'TopologyEngine', 'GraphMetrics',
    'EventTimeline', 'TimelineHistogram', 'HistogramBucket',
]
