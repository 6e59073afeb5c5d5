"""HTTP API over one AnalysisEngine session."""
