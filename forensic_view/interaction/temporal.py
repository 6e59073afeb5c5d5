"""
Interaction Contracts

Responsibility:
Define valid analyst actions and route them to the engine.
Each request maps to exactly one engine interaction.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Tuple

from forensic_graph.contracts import DisplayedGraph, LinkKind, NodeType
from forensic_graph.engine import AnalysisEngine


class ActionType(Enum):
    """Types of analyst interaction."""
    # Temporal
    RUN_SEARCH = "run_search"
    SET_WINDOW = "set_window"
    CLEAR_WINDOW = "clear_window"
    SET_GRANULARITY = "set_granularity"

    # Filters
    TOGGLE_NODE_TYPE = "toggle_node_type"
    TOGGLE_LINK_KIND = "toggle_link_kind"
    TOGGLE_HOST = "toggle_host"
    TOGGLE_COLOR_BUCKET = "toggle_color_bucket"

    # Selection
    FOCUS_ELEMENT = "focus_element"
    RESET_FOCUS = "reset_focus"
    HOVER_ELEMENT = "hover_element"
    RESET_HOVER = "reset_hover"
    TOGGLE_GROUPING = "toggle_grouping"


@dataclass(frozen=True)
class GranularityOption:
    """A bucket size offered by the timeline controls."""
    label: str
    granularity_ms: int


GRANULARITY_OPTIONS: Tuple[GranularityOption, ...] = (
    GranularityOption("1s", 1000),
    GranularityOption("1m", 60000),
    GranularityOption("1h", 3600000),
    GranularityOption("12h", 43200000),
    GranularityOption("24h", 86400000),
)


@dataclass(frozen=True)
class InteractionRequest:
    """A specific analyst intent."""
    request_id: str
    action: ActionType
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    source_component: str = "unknown"


def dispatch(engine: AnalysisEngine, request: InteractionRequest) -> DisplayedGraph:
    """
    Apply one request to the engine and return the resulting view.

    Raises KeyError for a missing payload field and ValueError for an
    unknown enum value.
    """
    action = request.action
    p = request.payload

    if action is ActionType.RUN_SEARCH:
        return engine.run_search(int(p["start_ms"]), int(p["end_ms"]))
    if action is ActionType.SET_WINDOW:
        return engine.set_window(int(p["start_ms"]), int(p["end_ms"]))
    if action is ActionType.CLEAR_WINDOW:
        return engine.clear_window()
    if action is ActionType.SET_GRANULARITY:
        return engine.set_granularity(p["granularity_ms"])

    if action is ActionType.TOGGLE_NODE_TYPE:
        return engine.toggle_hidden_node_type(NodeType(p["node_type"]))
    if action is ActionType.TOGGLE_LINK_KIND:
        return engine.toggle_hidden_link_kind(LinkKind(p["link_kind"]))
    if action is ActionType.TOGGLE_HOST:
        return engine.toggle_hidden_host(p["host"])
    if action is ActionType.TOGGLE_COLOR_BUCKET:
        return engine.toggle_hidden_color_bucket(LinkKind(p["link_kind"]), p["color"])

    # Selection changes never alter the displayed graph.
    if action is ActionType.FOCUS_ELEMENT:
        engine.set_focused_element(p["element_id"])
    elif action is ActionType.RESET_FOCUS:
        engine.reset_focused_element()
    elif action is ActionType.HOVER_ELEMENT:
        engine.set_hovered_element(p["element_id"])
    elif action is ActionType.RESET_HOVER:
        engine.reset_hovered_element()
    elif action is ActionType.TOGGLE_GROUPING:
        engine.toggle_grouping()
    return engine.displayed_graph
