"""
Forensic Telemetry Graph: API Server
====================================

HTTP surface over a single analyst session.

Endpoints:
- GET  /health                           -> Status
- GET  /api/v1/availability              -> Data availability bounds
- POST /api/v1/search                    -> Run a Search
- PUT  /api/v1/window                    -> Set or clear the brush
- PUT  /api/v1/granularity               -> Change bucket size
- POST /api/v1/filters/{dimension}/toggle -> Toggle a filter value
- GET  /api/v1/graph                     -> Displayed graph
- GET  /api/v1/graph/render              -> Index-addressed renderer view
- GET  /api/v1/timeline                  -> Event histograms
- GET  /api/v1/diagnostics               -> Errors, audit report, metrics

Environment:
- FTG_DATA_FILE       JSON dataset to serve
- FTG_UPSTREAM_URL    GraphQL endpoint (used when no data file is set)
- FTG_GRANULARITY_MS  initial bucket size

Usage:
    uvicorn forensic_graph.api.server:app --reload
"""
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from forensic_view import render_graph, render_timeline

from ..contracts.base import MalformedPayloadError
from ..contracts.entities import NodeType
from ..contracts.links import LinkKind
from ..core.temporal_index import DEFAULT_GRANULARITY_MS, TemporalIndexConfig
from ..engine import AnalysisEngine, EngineConfig
from ..sources import AnalysisDataSource, GraphQLDataSource, JsonFileDataSource, SourceUnavailableError
from .mapper import (
    map_displayed_graph, map_errors, map_histogram, map_metrics, map_scales, map_window
)

# =============================================================================
# INFRASTRUCTURE SETUP
# =============================================================================

# Global engine instance (one analyst session per process)
engine_instance: Optional[AnalysisEngine] = None


def _source_from_env() -> Optional[AnalysisDataSource]:
    data_file = os.environ.get("FTG_DATA_FILE")
    if data_file:
        print(f"[*] Serving dataset file: {data_file}")
        return JsonFileDataSource(data_file)
    upstream = os.environ.get("FTG_UPSTREAM_URL")
    if upstream:
        print(f"[*] Using GraphQL upstream: {upstream}")
        return GraphQLDataSource(upstream)
    print("[!] No FTG_DATA_FILE or FTG_UPSTREAM_URL set; searches are disabled")
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the engine session on startup."""
    global engine_instance

    granularity_ms = int(os.environ.get("FTG_GRANULARITY_MS", DEFAULT_GRANULARITY_MS))
    config = EngineConfig(index=TemporalIndexConfig(granularity_ms=granularity_ms))

    try:
        source = _source_from_env()
        engine_instance = AnalysisEngine(source, config)
        engine_instance.load_availability()
        print("[*] Engine initialized successfully.")
    except (SourceUnavailableError, MalformedPayloadError) as e:
        print(f"[!] FAILED to initialize engine: {e}")
        raise

    yield

    print("[*] Shutting down engine session.")
    if isinstance(engine_instance.source, GraphQLDataSource):
        engine_instance.source.close()
    engine_instance = None


app = FastAPI(
    title="Forensic Telemetry Graph API",
    version="0.1.0",
    description="Temporal aggregation and graph projection over host telemetry",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["*"],
)


# =============================================================================
# REQUEST MODELS
# =============================================================================

class SearchRequest(BaseModel):
    start_ms: int
    end_ms: int


class WindowRequest(BaseModel):
    """Both bounds None clears the brush."""
    start_ms: Optional[int] = None
    end_ms: Optional[int] = None


class GranularityRequest(BaseModel):
    granularity_ms: int


class FilterToggleRequest(BaseModel):
    """`value` is a node type, link kind or host; `color` only for color buckets."""
    value: str
    color: Optional[str] = None


def _engine() -> AnalysisEngine:
    if not engine_instance:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine_instance


def _view(engine: AnalysisEngine) -> Dict[str, Any]:
    return {
        "window": map_window(engine.window),
        "brush": map_window(engine.brush),
        "granularity_ms": engine.granularity_ms,
        "graph": map_displayed_graph(engine.displayed_graph, engine.scales),
        "errors": map_errors(engine.diagnostics()),
    }


# =============================================================================
# ENDPOINTS
# =============================================================================

@app.get("/health")
async def health_check():
    """System status."""
    engine = _engine()
    return {"status": "online", "has_source": engine.source is not None}


@app.get("/api/v1/availability")
async def get_availability():
    engine = _engine()
    availability = engine.availability
    return {
        "availability": (
            {"start_ms": availability.start_ms, "end_ms": availability.end_ms}
            if availability else None
        ),
        "search_range": map_window(engine.search_range),
        "granularity_options": list(engine.granularity_options),
    }


@app.post("/api/v1/search")
async def run_search(request: SearchRequest):
    engine = _engine()
    if engine.source is None:
        raise HTTPException(status_code=503, detail="No data source configured")
    try:
        engine.run_search(request.start_ms, request.end_ms)
    except MalformedPayloadError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return _view(engine)


@app.put("/api/v1/window")
async def set_window(request: WindowRequest):
    engine = _engine()
    if request.start_ms is None and request.end_ms is None:
        engine.clear_window()
    elif request.start_ms is None or request.end_ms is None:
        raise HTTPException(status_code=422, detail="start_ms and end_ms must be given together")
    else:
        engine.set_window(request.start_ms, request.end_ms)
    return _view(engine)


@app.put("/api/v1/granularity")
async def set_granularity(request: GranularityRequest):
    engine = _engine()
    engine.set_granularity(request.granularity_ms)
    return _view(engine)


@app.post("/api/v1/filters/{dimension}/toggle")
async def toggle_filter(dimension: str, request: FilterToggleRequest):
    engine = _engine()
    try:
        if dimension == "node_type":
            engine.toggle_hidden_node_type(NodeType(request.value))
        elif dimension == "link_kind":
            engine.toggle_hidden_link_kind(LinkKind(request.value))
        elif dimension == "host":
            engine.toggle_hidden_host(request.value)
        elif dimension == "color_bucket":
            if request.color is None:
                raise HTTPException(status_code=422, detail="color is required for color_bucket")
            kind = LinkKind(request.value)
            engine.toggle_hidden_color_bucket(kind, request.color)
            if not kind.is_traffic:
                raise HTTPException(status_code=400, detail=f"{kind.value} links are not intensity-classified")
        else:
            raise HTTPException(status_code=404, detail=f"Unknown filter dimension: {dimension}")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    filters = engine.filters
    response = _view(engine)
    response["filters"] = {
        "node_type": sorted(t.value for t in filters.hidden_node_types),
        "link_kind": sorted(k.value for k in filters.hidden_link_kinds),
        "host": sorted(filters.hidden_hosts),
        "color_bucket": sorted([k.value, c] for k, c in filters.hidden_color_buckets),
    }
    return response


@app.get("/api/v1/graph")
async def get_graph():
    engine = _engine()
    response = _view(engine)
    response["scales"] = map_scales(engine.scales)
    response["active_hosts"] = list(engine.active_hosts())
    return response


@app.get("/api/v1/graph/render")
async def get_render_graph():
    return render_graph(_engine()).to_dict()


@app.get("/api/v1/timeline")
async def get_timeline():
    engine = _engine()
    return {
        "overview": map_histogram(engine.timeline()),
        "brushed": map_histogram(engine.brushed_timeline()),
        "view": render_timeline(engine).to_dict(),
    }


@app.get("/api/v1/diagnostics")
async def get_diagnostics():
    engine = _engine()
    observability = engine.observability
    metrics = observability.get_metrics()
    return {
        "errors": map_errors(engine.diagnostics()),
        "audit": observability.generate_audit_report(),
        "metrics": map_metrics(metrics, metrics.metric_names() if metrics else ()),
    }
