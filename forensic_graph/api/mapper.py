"""
API Mapper
==========

Transforms engine outputs into JSON-ready DTOs.

Nodes keep every entity attribute plus `node_type`; links carry their kind, endpoints
and (for traffic links) window byte totals, proportion and color.
"""
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..contracts.base import Error, TimeWindow
from ..contracts.entities import Entity
from ..contracts.links import AggregateLink, DisplayedGraph, LinkKind, TrafficLink
from ..core.histogram import TimelineHistogram
from ..core.quantile import QuantileScale
from ..observability import MetricsCollector


def map_node(entity: Entity) -> Dict[str, Any]:
    dto = asdict(entity)
    dto["node_type"] = entity.node_type.value
    if dto.get("process_ids") is not None:
        dto["process_ids"] = list(dto["process_ids"])
    return dto


def map_link(link: AggregateLink, scales: Mapping[LinkKind, QuantileScale]) -> Dict[str, Any]:
    dto: Dict[str, Any] = {
        "id": link.id,
        "kind": link.kind.value,
        "source": link.source,
        "target": link.target,
    }
    if isinstance(link, TrafficLink):
        scale = scales.get(link.kind)
        dto["total_bytes"] = link.total_bytes
        dto["byte_proportion"] = link.byte_proportion
        dto["event_count"] = len(link.member_event_ids)
        dto["color"] = scale.classify(link.byte_proportion) if scale is not None else None
    else:
        dto["target_type"] = link.target_type.value
    return dto


def map_displayed_graph(
    graph: DisplayedGraph,
    scales: Mapping[LinkKind, QuantileScale]
) -> Dict[str, Any]:
    return {
        "nodes": [map_node(n) for n in graph.nodes],
        "links": [map_link(l, scales) for l in graph.links],
    }


def map_scales(scales: Mapping[LinkKind, QuantileScale]) -> Dict[str, Any]:
    return {
        kind.value: {
            "domain": list(scale.domain) if scale.domain is not None else None,
            "thresholds": list(scale.thresholds),
            "colors": list(scale.colors),
        }
        for kind, scale in scales.items()
    }


def map_window(window: Optional[TimeWindow]) -> Optional[Dict[str, int]]:
    if window is None:
        return None
    return {"start_ms": window.start_ms, "end_ms": window.end_ms}


def map_error(error: Error) -> Dict[str, Any]:
    return {
        "code": error.code.name,
        "message": error.message,
        "timestamp": error.timestamp.to_iso(),
        "context": dict(error.context),
    }


def map_errors(errors: Iterable[Error]) -> List[Dict[str, Any]]:
    return [map_error(e) for e in errors]


def map_histogram(histogram: TimelineHistogram) -> Dict[str, Any]:
    return {
        "granularity_ms": histogram.granularity_ms,
        "max_count": histogram.max_count,
        "total": histogram.total,
        "buckets": [
            {"bucket": b.bucket, "start_ms": b.start_ms, "count": b.count}
            for b in histogram.buckets
        ],
    }


def map_metrics(metrics: Optional[MetricsCollector], names: Iterable[str]) -> Dict[str, Dict[str, float]]:
    if metrics is None:
        return {}
    return {name: metrics.compute_aggregates(name) for name in names}
