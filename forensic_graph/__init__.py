"""
Forensic Telemetry Graph Engine

This package turns host telemetry (file writes, network traffic) into
the entity graph an analyst sees for a brushed time window. It is
strictly layered; each layer communicates only through explicit
contracts, never through shared mutable state.

LAYER STRUCTURE:
================

1. SOURCES (sources/)
   - Responsibility: Fetch analysis data and availability bounds
   - Allowed inputs: Search ranges
   - Outputs: Raw `analysisData` payloads
   - MUST NOT: Interpret or reshape payloads

2. CATALOG (catalog/)
   - Responsibility: Validate payloads into an immutable Dataset
   - Allowed inputs: Raw payloads from a source
   - Outputs: Dataset (EntityCatalog + RawEventStore + diagnostics)
   - MUST NOT: Aggregate, or drop records silently

3. CORE PIPELINE (core/)
   - Responsibility: Aggregation, temporal index, window queries,
     quantile classification, filter composition
   - Allowed inputs: Dataset, windows, filter state
   - Outputs: AnalysisModel, ActiveGraph, DisplayedGraph
   - MUST NOT: Fetch data, scan raw events per interaction, raise on
     interactive paths

4. OBSERVABILITY & AUDIT (observability/)
   - Responsibility: Audit log, error records, metrics
   - Allowed inputs: Audit entries, Error values, metric points
   - Outputs: Unified log, aggregates, reports
   - MUST NOT: Modify system behavior

5. ENGINE (engine.py)
   - Responsibility: Session state and interaction handling
   - Outputs: DisplayedGraph per interaction

6. API (api/)
   - Responsibility: HTTP surface over one engine session

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: all data structures are frozen/immutable
- Deterministic: identical inputs always produce identical outputs
- Explicit errors: every handled error is a queryable Error value
- Renderers get copies: outputs are never rewritten in place
"""

__version__ = "0.1.0"
