"""
Visualization Contracts

Responsibility:
Renderer-ready views of the engine's outputs. Views are built as new
values; engine outputs are never modified.
"""

from .graph import (
    NODE_SHAPES, LINK_DASHES, NEUTRAL_LINK_COLOR,
    RenderNode, RenderEdge, HostGroup, ForceGraphView,
    node_label, link_color, build_force_graph
)
from .timeline import TimelineBar, TimelineView, build_timeline_view

__all__ = [
    'NODE_SHAPES', 'LINK_DASHES', 'NEUTRAL_LINK_COLOR',
    'RenderNode', 'RenderEdge', 'HostGroup', 'ForceGraphView',
    'node_label', 'link_color', 'build_force_graph',
    'TimelineBar', 'TimelineView', 'build_timeline_view',
]
