"""
Contracts Module

This module defines the explicit interfaces and data transfer objects
that form the contracts between layers. All inter-layer communication
MUST use these contracts. No layer may import implementation details
from another layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Handled errors are values (Error), never exceptions
3. Link variants are a tagged union discriminated by LinkKind
4. All telemetry timestamps are integer epoch milliseconds
"""

from .base import (
    ErrorCode, Error, MalformedPayloadError, Timestamp, TimeWindow,
    bucket_of, link_id_for, content_hash
)
from .entities import NodeType, Port, Process, File, Endpoint, Entity
from .events import (
    EventKind, FileVersionEvent, NetworkActivityEvent, RawEvent,
    AuditEventType, AuditLogEntry, MetricPoint
)
from .links import (
    LinkKind, TRAFFIC_KINDS, TrafficLink, FileVersionLink, NetworkActivityLink,
    PortLink, AggregateLink, ActiveGraph, DisplayedGraph
)

__all__ = [
    'ErrorCode', 'Error', 'MalformedPayloadError', 'Timestamp', 'TimeWindow',
    'bucket_of', 'link_id_for', 'content_hash',
    'NodeType', 'Port', 'Process', 'File', 'Endpoint', 'Entity',
    'EventKind', 'FileVersionEvent', 'NetworkActivityEvent', 'RawEvent',
    'AuditEventType', 'AuditLogEntry', 'MetricPoint',
    'LinkKind', 'TRAFFIC_KINDS', 'TrafficLink', 'FileVersionLink',
    'NetworkActivityLink', 'PortLink', 'AggregateLink', 'ActiveGraph',
    'DisplayedGraph',
]
