"""
Engine Orchestration Module

The interaction controller: owns the per-session state and drives the
pipeline on every analyst interaction.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. A Search rebuilds aggregates and index; everything else reads them
3. Every interaction returns the new DisplayedGraph
4. All findings are recorded through observability, nothing is raised
   on the interactive path

STATE:
======
- AnalysisModel of the latest applied Search
- current window (brush), granularity and FilterState
- Search generation counter (stale response detection)
- derived: active graph, per-kind quantile scales, displayed graph
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple
import time

from .catalog import parse_analysis_data
from .contracts.base import Error, ErrorCode, MalformedPayloadError, TimeWindow
from .contracts.entities import NodeType
from .contracts.events import AuditEventType
from .contracts.links import ActiveGraph, DisplayedGraph, LinkKind, TRAFFIC_KINDS
from .core import (
    AggregationConfig, AnalysisModel, EventTimeline, FilterComposer, FilterState,
    LinkAggregator, QuantileClassifier, QuantileConfig, QuantileScale,
    TemporalIndexBuilder, TemporalIndexConfig, TimelineHistogram, TopologyEngine,
    WindowQueryEngine, regranulate
)
from .observability import ObservabilityConfig, ObservabilityEngine
from .sources import AnalysisDataSource, DataAvailability, SourceUnavailableError


@dataclass
class EngineConfig:
    """Unified configuration for the whole pipeline."""
    aggregation: AggregationConfig = None
    index: TemporalIndexConfig = None
    quantile: QuantileConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.aggregation = self.aggregation or AggregationConfig()
        self.index = self.index or TemporalIndexConfig()
        self.quantile = self.quantile or QuantileConfig()
        self.observability = self.observability or ObservabilityConfig()


@dataclass(frozen=True)
class SearchTicket:
    """Handle of an issued Search; only the newest ticket may complete."""
    generation: int
    window: TimeWindow


@dataclass(frozen=True)
class ElementRef:
    """A focused or hovered element of the displayed graph."""
    element_id: str
    element_type: str       # "node" | "link"


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000.0


class AnalysisEngine:
    """
    Interaction controller for one analyst session.

    LAYER FLOW:
    ===========
    Search:       source -> catalog -> aggregation -> index
    Interaction:  window query -> quantile scales -> filter composition

    A Search may be run synchronously (`run_search`) or split into
    `begin_search` / `complete_search` when the payload arrives
    asynchronously; a completion for anything but the newest ticket is
    discarded.
    """

    def __init__(
        self,
        source: Optional[AnalysisDataSource] = None,
        config: Optional[EngineConfig] = None
    ):
        self._config = config or EngineConfig()
        self._source = source

        self._aggregator = LinkAggregator(self._config.aggregation)
        self._index_builder = TemporalIndexBuilder(self._config.index)
        self._query = WindowQueryEngine()
        self._classifier = QuantileClassifier(self._config.quantile)
        self._composer = FilterComposer()
        self._topology = TopologyEngine()
        self._topology_stale = True
        self._observability = ObservabilityEngine(self._config.observability)

        self._granularity_ms = self._config.index.granularity_ms
        self._model = AnalysisModel.empty(self._granularity_ms)
        self._timeline = EventTimeline(())
        self._generation = 0
        self._availability: Optional[DataAvailability] = None
        self._search_range: Optional[TimeWindow] = None

        self._window: Optional[TimeWindow] = None
        self._filters = FilterState()
        self._grouping = False
        self._focused: Optional[ElementRef] = None
        self._hovered: Optional[ElementRef] = None

        self._active = ActiveGraph.empty()
        self._scales: Dict[LinkKind, QuantileScale] = {}
        self._errors: Tuple[Error, ...] = ()
        self._displayed = DisplayedGraph.empty()

    # =========================================================================
    # READ-ONLY STATE
    # =========================================================================

    @property
    def model(self) -> AnalysisModel:
        return self._model

    @property
    def displayed_graph(self) -> DisplayedGraph:
        return self._displayed

    @property
    def active_graph(self) -> ActiveGraph:
        return self._active

    @property
    def filters(self) -> FilterState:
        return self._filters

    @property
    def window(self) -> TimeWindow:
        """Current brush, or the whole Search range when nothing is brushed."""
        return self._window or self._model.search_window

    @property
    def brush(self) -> Optional[TimeWindow]:
        """The brushed window, None when the whole Search range is shown."""
        return self._window

    @property
    def granularity_ms(self) -> int:
        return self._granularity_ms

    @property
    def granularity_options(self) -> Tuple[int, ...]:
        return self._config.index.granularity_options

    @property
    def scales(self) -> Dict[LinkKind, QuantileScale]:
        return dict(self._scales)

    @property
    def colors(self) -> Tuple[str, ...]:
        return self._classifier.colors

    @property
    def grouping_enabled(self) -> bool:
        return self._grouping

    @property
    def focused_element(self) -> Optional[ElementRef]:
        return self._focused

    @property
    def hovered_element(self) -> Optional[ElementRef]:
        return self._hovered

    @property
    def availability(self) -> Optional[DataAvailability]:
        return self._availability

    @property
    def search_range(self) -> Optional[TimeWindow]:
        """Bounds of the Search pickers."""
        return self._search_range

    @property
    def search_generation(self) -> int:
        return self._generation

    @property
    def source(self) -> Optional[AnalysisDataSource]:
        return self._source

    @property
    def observability(self) -> ObservabilityEngine:
        return self._observability

    def diagnostics(self) -> Tuple[Error, ...]:
        """Findings of the current Search and of the last recomputation."""
        return self._model.diagnostics + self._errors

    def active_hosts(self) -> Tuple[str, ...]:
        return self._model.dataset.catalog.active_hosts()

    # =========================================================================
    # SEARCH INTERFACE
    # =========================================================================

    def set_availability(self, availability: DataAvailability) -> None:
        """
        Install new picker bounds.

        Like moving the min/max pickers, this resets the Search range to
        the full availability and clears the brush.
        """
        self._availability = availability
        self._search_range = availability.as_window()
        self._window = None
        self._observability.log_audit(
            'engine', 'availability_set', AuditEventType.SEARCH,
            start_ms=availability.start_ms, end_ms=availability.end_ms
        )

    def load_availability(self) -> Optional[DataAvailability]:
        """Fetch availability from the source; None when unreachable."""
        if self._source is None:
            return self._availability
        try:
            availability = self._source.data_availability()
        except SourceUnavailableError as exc:
            self._record('engine', Error.create(ErrorCode.SOURCE_UNREACHABLE, str(exc)))
            return None
        self.set_availability(availability)
        return availability

    def begin_search(self, start_ms: int, end_ms: int) -> SearchTicket:
        """Issue a new Search; any older outstanding ticket becomes stale."""
        self._generation += 1
        ticket = SearchTicket(generation=self._generation, window=TimeWindow(start_ms, end_ms))
        self._search_range = ticket.window
        self._observability.log_audit(
            'engine', 'search_issued', AuditEventType.SEARCH,
            generation=ticket.generation, start_ms=start_ms, end_ms=end_ms
        )
        return ticket

    def complete_search(self, ticket: SearchTicket, payload: Mapping[str, Any]) -> DisplayedGraph:
        """
        Apply a Search response.

        Stale tickets are discarded and the current view is returned
        unchanged. A payload with the wrong shape raises
        MalformedPayloadError after being recorded.
        """
        if ticket.generation != self._generation:
            self._record('engine', Error.create(
                ErrorCode.STALE_SEARCH_RESPONSE,
                "Discarded response of a superseded Search",
                generation=ticket.generation,
                current_generation=self._generation
            ))
            self._observability.collect_metric("stale_responses_total", 1.0)
            return self._displayed

        try:
            dataset = parse_analysis_data(payload, ticket.window)
        except MalformedPayloadError as exc:
            self._record('catalog', Error.create(ErrorCode.MALFORMED_PAYLOAD, str(exc)))
            raise

        self._observability.record_errors('catalog', dataset.diagnostics)
        self._observability.log_audit(
            'catalog', 'dataset_loaded', AuditEventType.SEARCH,
            entities=dataset.catalog.size, events=dataset.events.size
        )

        aggregation = self._aggregator.aggregate(dataset)
        self._observability.record_errors('aggregation', aggregation.diagnostics)
        dropped = sum(
            1 for e in aggregation.diagnostics
            if e.code is ErrorCode.UNKNOWN_ENTITY_REFERENCE and dict(e.context).get("event_id")
        )
        if dropped:
            self._observability.collect_metric("events_dropped_total", float(dropped))
        for kind in LinkKind:
            links = aggregation.port_links if kind is LinkKind.PORT else aggregation.traffic_links(kind)
            self._observability.collect_metric("aggregate_links", float(len(links)), {"kind": kind.value})
        self._observability.log_audit(
            'aggregation', 'links_aggregated', AuditEventType.AGGREGATION,
            link_count=aggregation.link_count
        )

        started = time.perf_counter()
        index = self._index_builder.build(aggregation, dataset.events, self._granularity_ms)
        self._observability.collect_metric("index_build_ms", _elapsed_ms(started))
        self._observability.log_audit(
            'index', 'index_built', AuditEventType.INDEX,
            granularity_ms=self._granularity_ms, links=len(index.links)
        )

        self._model = AnalysisModel(dataset=dataset, aggregation=aggregation, index=index)
        self._timeline = EventTimeline(dataset.events.timestamps())
        self._window = None
        self._observability.collect_metric("search_total", 1.0)
        return self._recompute()

    def run_search(self, start_ms: int, end_ms: int) -> DisplayedGraph:
        """
        Fetch and apply a Search synchronously.

        The range is clamped to the data availability when it is known;
        a range with no overlap, an inverted range or an unreachable
        source leave the current view in place.
        """
        requested = TimeWindow(start_ms, end_ms)
        if start_ms > end_ms:
            self._record('engine', Error.create(
                ErrorCode.INVALID_TIME_WINDOW,
                "Search start is after its end",
                start_ms=start_ms, end_ms=end_ms
            ))
            return self._displayed

        effective = requested
        if self._availability is not None:
            bounds = self._availability.as_window()
            if not requested.overlaps(bounds):
                self._record('engine', Error.create(
                    ErrorCode.WINDOW_OUT_OF_RANGE,
                    "Search range lies outside the data availability",
                    start_ms=start_ms, end_ms=end_ms
                ))
                return self._displayed
            effective = requested.clamp_to(bounds)
            if effective != requested:
                self._record('engine', Error.create(
                    ErrorCode.WINDOW_CLAMPED,
                    "Search range clamped to the data availability",
                    start_ms=effective.start_ms, end_ms=effective.end_ms
                ))

        if self._source is None:
            self._record('engine', Error.create(ErrorCode.SOURCE_UNREACHABLE, "No data source configured"))
            return self._displayed

        ticket = self.begin_search(effective.start_ms, effective.end_ms)
        try:
            payload = self._source.analysis_data(effective.start_ms, effective.end_ms)
        except SourceUnavailableError as exc:
            self._record('engine', Error.create(ErrorCode.SOURCE_UNREACHABLE, str(exc)))
            return self._displayed
        return self.complete_search(ticket, payload)

    # =========================================================================
    # INTERACTION INTERFACE
    # =========================================================================

    def set_window(self, start_ms: int, end_ms: int) -> DisplayedGraph:
        self._window = TimeWindow(start_ms, end_ms)
        return self._recompute()

    def clear_window(self) -> DisplayedGraph:
        """Drop the brush; the whole Search range becomes the window."""
        self._window = None
        return self._recompute()

    def set_granularity(self, granularity_ms: int) -> DisplayedGraph:
        """
        Change the bucket size and rebuild the index.

        Non-positive values are rejected; values outside the offered
        options are accepted but recorded.
        """
        if isinstance(granularity_ms, bool) or not isinstance(granularity_ms, int) or granularity_ms <= 0:
            self._record('index', Error.create(
                ErrorCode.INVALID_GRANULARITY,
                "Granularity must be a positive integer number of milliseconds",
                granularity_ms=granularity_ms
            ))
            return self._displayed

        if granularity_ms not in self._config.index.granularity_options:
            self._observability.log_audit(
                'index', 'granularity_outside_options', AuditEventType.INDEX,
                granularity_ms=granularity_ms
            )

        self._granularity_ms = granularity_ms
        started = time.perf_counter()
        self._model = regranulate(self._model, granularity_ms, self._index_builder)
        self._observability.collect_metric("index_build_ms", _elapsed_ms(started))
        self._observability.log_audit(
            'index', 'index_rebuilt', AuditEventType.INDEX, granularity_ms=granularity_ms
        )
        return self._recompute()

    def toggle_hidden_node_type(self, node_type: NodeType) -> DisplayedGraph:
        return self._apply_filters(self._filters.toggle_node_type(node_type), node_type=node_type.value)

    def toggle_hidden_link_kind(self, kind: LinkKind) -> DisplayedGraph:
        return self._apply_filters(self._filters.toggle_link_kind(kind), link_kind=kind.value)

    def toggle_hidden_host(self, host_name: str) -> DisplayedGraph:
        return self._apply_filters(self._filters.toggle_host(host_name), host=host_name)

    def toggle_hidden_color_bucket(self, kind: LinkKind, color: str) -> DisplayedGraph:
        """PortLinks carry no intensity: the toggle is recorded and ignored."""
        if not kind.is_traffic:
            self._record('filter', Error.create(
                ErrorCode.INVALID_FILTER_TARGET,
                f"{kind.value} links are not intensity-classified",
                link_kind=kind.value,
                color=color
            ))
            return self._displayed
        return self._apply_filters(self._filters.toggle_color_bucket(kind, color), link_kind=kind.value, color=color)

    def toggle_grouping(self) -> bool:
        self._grouping = not self._grouping
        return self._grouping

    def host_groups(self) -> List[str]:
        """Hosts grouped in the current view (empty while grouping is off)."""
        if not self._grouping:
            return []
        return self._topology_view().host_groups()

    def neighbors(self, node_id: str) -> Set[str]:
        return self._topology_view().neighbors(node_id)

    def link_endpoints(self, link_id: str) -> Optional[Tuple[str, str]]:
        return self._topology_view().link_endpoints(link_id)

    def incident_links(self, node_id: str) -> Set[str]:
        return self._topology_view().incident_links(node_id)

    def highlighted_ids(self) -> Set[str]:
        """
        Ids lit up by the hovered element (or the focused one when nothing
        is hovered): the element itself plus its immediate neighborhood.
        """
        element = self._hovered or self._focused
        if element is None:
            return set()
        if element.element_type == "node":
            return {element.element_id} | self.neighbors(element.element_id) | self.incident_links(element.element_id)
        endpoints = self.link_endpoints(element.element_id)
        return {element.element_id, *(endpoints or ())}

    def set_focused_element(self, element_id: str) -> Optional[ElementRef]:
        self._focused = self._resolve_element(element_id)
        return self._focused

    def reset_focused_element(self) -> None:
        self._focused = None

    def set_hovered_element(self, element_id: str) -> Optional[ElementRef]:
        self._hovered = self._resolve_element(element_id)
        return self._hovered

    def reset_hovered_element(self) -> None:
        self._hovered = None

    # =========================================================================
    # TIMELINE
    # =========================================================================

    def timeline(self) -> TimelineHistogram:
        """Event counts per bucket over the whole Search range."""
        return self._timeline.overview(self._model.search_window, self._granularity_ms)

    def brushed_timeline(self) -> TimelineHistogram:
        """Event counts strictly inside the current brush."""
        if self._window is None:
            return TimelineHistogram(granularity_ms=self._granularity_ms, buckets=())
        return self._timeline.brushed(self._model.search_window, self._granularity_ms, self._window)

    # =========================================================================
    # INTERNAL PIPELINE
    # =========================================================================

    def _record(self, layer: str, error: Error):
        self._observability.record_error(layer, error)

    def _topology_view(self) -> TopologyEngine:
        """networkx view of the displayed graph, rebuilt on first lookup after a change."""
        if self._topology_stale:
            self._topology.build_graph(self._displayed)
            self._topology_stale = False
        return self._topology

    def _resolve_element(self, element_id: str) -> Optional[ElementRef]:
        if self._displayed.find_node(element_id) is not None:
            return ElementRef(element_id=element_id, element_type="node")
        if self._displayed.find_link(element_id) is not None:
            return ElementRef(element_id=element_id, element_type="link")
        return None

    def _recompute(self) -> DisplayedGraph:
        """Window query and quantile scales, then filter composition."""
        started = time.perf_counter()
        result = self._query.query(self._model, self.window)
        self._observability.collect_metric("window_query_ms", _elapsed_ms(started))
        self._observability.record_errors('query', result.errors)

        errors: List[Error] = list(result.errors)
        scales: Dict[LinkKind, QuantileScale] = {}
        for kind in TRAFFIC_KINDS:
            links = result.graph.links_of(kind)
            scale = self._classifier.scale_for(links)
            if len(links) > 1 and scale.domain is not None and scale.domain[0] == scale.domain[1]:
                error = Error.create(
                    ErrorCode.DEGENERATE_QUANTILE_DOMAIN,
                    f"All active {kind.value} links share one proportion",
                    kind=kind.value
                )
                errors.append(error)
                self._record('query', error)
            scales[kind] = scale

        self._active = result.graph
        self._scales = scales
        self._errors = tuple(errors)
        self._observability.log_audit(
            'query', 'window_queried', AuditEventType.QUERY,
            start_ms=self.window.start_ms, end_ms=self.window.end_ms,
            entities=len(result.graph.entities)
        )
        return self._compose()

    def _apply_filters(self, filters: FilterState, **metadata: object) -> DisplayedGraph:
        self._filters = filters
        self._observability.log_audit('filter', 'filter_toggled', AuditEventType.FILTER, **metadata)
        return self._compose()

    def _compose(self) -> DisplayedGraph:
        started = time.perf_counter()
        displayed = self._composer.compose(self._active, self._scales, self._filters)
        self._observability.collect_metric("filter_compose_ms", _elapsed_ms(started))

        self._displayed = displayed
        self._topology_stale = True
        if self._focused and self._resolve_element(self._focused.element_id) is None:
            self._focused = None
        if self._hovered and self._resolve_element(self._hovered.element_id) is None:
            self._hovered = None
        return displayed
