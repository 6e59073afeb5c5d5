"""
Forensic View Layer

Responsibility:
Turn engine state into what a renderer draws.

PRINCIPLES:
1. Immutable (Frozen) views
2. No business logic: classification and filtering stay in the engine
3. Index rewriting for force layouts happens on copies
"""

from forensic_graph.engine import AnalysisEngine

from .visualization import ForceGraphView, TimelineView, build_force_graph, build_timeline_view


def render_graph(engine: AnalysisEngine) -> ForceGraphView:
    """Force-graph view of the engine's current displayed graph."""
    focused = engine.focused_element
    return build_force_graph(
        engine.displayed_graph,
        engine.scales,
        host_groups=engine.host_groups(),
        focused_id=focused.element_id if focused else None,
        highlighted_ids=engine.highlighted_ids()
    )


def render_timeline(engine: AnalysisEngine) -> TimelineView:
    """Timeline view with the current brush overlay."""
    return build_timeline_view(engine.timeline(), engine.brushed_timeline(), engine.brush)


__all__ = ['render_graph', 'render_timeline']
