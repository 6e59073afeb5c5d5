"""
Upstream Data Sources

Providers of per-Search analysis data and of the overall availability
bounds. The engine depends only on AnalysisDataSource.
"""

from .base import AnalysisDataSource, DataAvailability, SourceUnavailableError
from .static import InMemoryDataSource, JsonFileDataSource
from .graphql import GraphQLDataSource, GET_ANALYSIS_DATA, GET_AVAILABLE_DATA_RANGE

__all__ = [
    'AnalysisDataSource', 'DataAvailability', 'SourceUnavailableError',
    'InMemoryDataSource', 'JsonFileDataSource',
    'GraphQLDataSource', 'GET_ANALYSIS_DATA', 'GET_AVAILABLE_DATA_RANGE',
]
