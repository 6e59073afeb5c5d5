"""
Observability & Audit Layer

RESPONSIBILITY: Audit logging, diagnostics and metrics for the pipeline
ALLOWED INPUTS: Audit entries, Error values and metric points from any layer
OUTPUTS: Unified audit log, per-layer logs, metric aggregates, reports

WHAT THIS LAYER MUST NOT DO:
============================
- Modify system behavior
- Filter or interpret events (only record them)
- Block or delay the interactive path

BOUNDARY ENFORCEMENT:
=====================
- Receives immutable entries (never references to mutable state)
- Collectors are append-only and bounded; the oldest entries roll off
- Provides read-only access to logs and metrics
"""

from __future__ import annotations
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterable, List, Optional, Tuple
from enum import Enum
import itertools

from ..contracts.base import Error, Timestamp, content_hash
from ..contracts.events import AuditEventType, AuditLogEntry, MetricPoint


LAYERS: Tuple[str, ...] = ('catalog', 'aggregation', 'index', 'query', 'filter', 'engine')


# =============================================================================
# LOG COLLECTORS (One per layer)
# =============================================================================

class LogCollector:
    """
    Append-only audit collector for one layer.

    Bounded: once `max_entries` is reached the oldest entries are dropped.
    """

    def __init__(self, layer_name: str, max_entries: int = 10000):
        self._layer_name = layer_name
        self._entries: Deque[AuditLogEntry] = deque(maxlen=max_entries)

    def collect(self, entry: AuditLogEntry):
        """Collect an audit entry (append-only)."""
        self._entries.append(entry)

    def get_entries(self, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        """Get entries, optionally filtered by type."""
        if event_type is None:
            return list(self._entries)
        return [e for e in self._entries if e.event_type == event_type]

    @property
    def layer_name(self) -> str:
        return self._layer_name

    @property
    def entry_count(self) -> int:
        return len(self._entries)


# =============================================================================
# METRICS COLLECTOR
# =============================================================================

class MetricType(Enum):
    """Types of metrics collected."""
    COUNTER = "counter"
    GAUGE = "gauge"
    TIMING = "timing"


@dataclass
class MetricDefinition:
    """Definition of a metric to collect."""
    name: str
    metric_type: MetricType
    description: str
    labels: Tuple[str, ...] = field(default_factory=tuple)


class MetricsCollector:
    """
    Collect metric points from all layers.

    Points are kept per metric in a bounded window; aggregates are
    computed over what is retained.
    """

    def __init__(self, max_points: int = 10000):
        self._max_points = max_points
        self._metrics: Dict[str, Deque[MetricPoint]] = {}
        self._definitions: Dict[str, MetricDefinition] = {}
        self._register_default_metrics()

    def _register_default_metrics(self):
        """Register standard metrics."""
        defaults = [
            MetricDefinition(
                name="search_total",
                metric_type=MetricType.COUNTER,
                description="Searches applied to the pipeline"
            ),
            MetricDefinition(
                name="stale_responses_total",
                metric_type=MetricType.COUNTER,
                description="Search responses discarded because a newer Search was issued"
            ),
            MetricDefinition(
                name="events_dropped_total",
                metric_type=MetricType.COUNTER,
                description="Raw events dropped for referencing unknown entities"
            ),
            MetricDefinition(
                name="aggregate_links",
                metric_type=MetricType.GAUGE,
                description="Aggregate links produced by the last Search",
                labels=("kind",)
            ),
            MetricDefinition(
                name="index_build_ms",
                metric_type=MetricType.TIMING,
                description="Temporal index build time in milliseconds"
            ),
            MetricDefinition(
                name="window_query_ms",
                metric_type=MetricType.TIMING,
                description="Window query time in milliseconds"
            ),
            MetricDefinition(
                name="filter_compose_ms",
                metric_type=MetricType.TIMING,
                description="Filter composition time in milliseconds"
            ),
        ]

        for definition in defaults:
            self.register_metric(definition)

    def register_metric(self, definition: MetricDefinition):
        """Register a new metric definition."""
        self._definitions[definition.name] = definition
        if definition.name not in self._metrics:
            self._metrics[definition.name] = deque(maxlen=self._max_points)

    def record(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Record a metric data point."""
        if metric_name not in self._metrics:
            self._metrics[metric_name] = deque(maxlen=self._max_points)

        label_tuple = tuple(sorted(labels.items())) if labels else ()

        point = MetricPoint(
            metric_name=metric_name,
            value=value,
            timestamp=Timestamp.now(),
            labels=label_tuple
        )
        self._metrics[metric_name].append(point)

    def get_metric(self, metric_name: str) -> List[MetricPoint]:
        return list(self._metrics.get(metric_name, ()))

    def get_latest(self, metric_name: str) -> Optional[MetricPoint]:
        """Get the latest value for a metric."""
        points = self._metrics.get(metric_name)
        return points[-1] if points else None

    def definition(self, metric_name: str) -> Optional[MetricDefinition]:
        return self._definitions.get(metric_name)

    def metric_names(self) -> List[str]:
        return list(self._metrics.keys())

    def compute_aggregates(self, metric_name: str) -> Dict[str, float]:
        """Compute aggregate statistics for a metric."""
        points = self.get_metric(metric_name)

        if not points:
            return {}

        values = [p.value for p in points]

        return {
            'count': len(values),
            'sum': sum(values),
            'min': min(values),
            'max': max(values),
            'avg': sum(values) / len(values),
        }


# =============================================================================
# OBSERVABILITY ENGINE
# =============================================================================

@dataclass
class ObservabilityConfig:
    """Configuration for observability engine."""
    max_entries: int = 10000
    record_metrics: bool = True


class ObservabilityEngine:
    """
    Central Observability Engine.

    BOUNDARY ENFORCEMENT:
    - ONLY observes, never modifies
    - Provides read-only access to collected data
    """

    def __init__(self, config: Optional[ObservabilityConfig] = None):
        self._config = config or ObservabilityConfig()
        self._collectors: Dict[str, LogCollector] = {
            layer: LogCollector(layer, self._config.max_entries) for layer in LAYERS
        }
        self._metrics = MetricsCollector(self._config.max_entries) if self._config.record_metrics else None
        self._counter = itertools.count(1)

    def _entry_id(self, layer: str, action: str) -> str:
        return f"audit_{content_hash(layer, action, str(next(self._counter)))}"

    def collect_audit(self, entry: AuditLogEntry):
        """Collect an audit log entry from any layer."""
        collector = self._collectors.get(entry.layer)
        if collector:
            collector.collect(entry)

    def log_audit(
        self,
        layer: str,
        action: str,
        event_type: AuditEventType = AuditEventType.SYSTEM,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
        **metadata: object
    ):
        """Helper to log audit entry directly."""
        self.collect_audit(AuditLogEntry(
            entry_id=self._entry_id(layer, action),
            event_type=event_type,
            timestamp=Timestamp.now(),
            layer=layer,
            action=action,
            entity_id=entity_id,
            entity_type=entity_type,
            metadata=tuple(sorted((k, str(v)) for k, v in metadata.items()))
        ))

    def record_error(self, layer: str, error: Error):
        """Record a handled error as an ERROR audit entry."""
        self.collect_audit(AuditLogEntry(
            entry_id=self._entry_id(layer, error.code.name),
            event_type=AuditEventType.ERROR,
            timestamp=error.timestamp,
            layer=layer,
            action=error.code.name,
            metadata=(("message", error.message),) + error.context
        ))

    def record_errors(self, layer: str, errors: Iterable[Error]):
        for error in errors:
            self.record_error(layer, error)

    def collect_metric(
        self,
        metric_name: str,
        value: float,
        labels: Optional[Dict[str, str]] = None
    ):
        """Collect a metric data point."""
        if self._metrics:
            self._metrics.record(metric_name, value, labels)

    def get_unified_log(self, layers: Optional[List[str]] = None) -> List[AuditLogEntry]:
        """Get unified log from all or specified layers."""
        target_layers = layers or list(self._collectors.keys())

        all_entries = []
        for layer_name in target_layers:
            collector = self._collectors.get(layer_name)
            if collector:
                all_entries.extend(collector.get_entries())

        all_entries.sort(key=lambda e: e.timestamp.value)
        return all_entries

    def get_layer_log(self, layer_name: str, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        collector = self._collectors.get(layer_name)
        if not collector:
            return []
        return collector.get_entries(event_type=event_type)

    def get_errors(self) -> List[AuditLogEntry]:
        return [e for e in self.get_unified_log() if e.event_type == AuditEventType.ERROR]

    def get_metrics(self) -> Optional[MetricsCollector]:
        """Get metrics collector (read-only access)."""
        return self._metrics

    def generate_audit_report(self) -> Dict:
        """Generate audit report."""
        entries = self.get_unified_log()

        by_layer: Dict[str, int] = {}
        by_type: Dict[str, int] = {}
        by_error: Dict[str, int] = {}

        for entry in entries:
            by_layer[entry.layer] = by_layer.get(entry.layer, 0) + 1
            by_type[entry.event_type.value] = by_type.get(entry.event_type.value, 0) + 1
            if entry.event_type == AuditEventType.ERROR:
                by_error[entry.action] = by_error.get(entry.action, 0) + 1

        return {
            'total_entries': len(entries),
            'by_layer': by_layer,
            'by_event_type': by_type,
            'by_error_code': by_error,
            'time_range': {
                'start': entries[0].timestamp.to_iso() if entries else None,
                'end': entries[-1].timestamp.to_iso() if entries else None,
            },
            'generated_at': Timestamp.now().to_iso()
        }


__all__ = [
    'LAYERS', 'LogCollector', 'MetricType', 'MetricDefinition', 'MetricsCollector',
    'ObservabilityConfig', 'ObservabilityEngine',
]
