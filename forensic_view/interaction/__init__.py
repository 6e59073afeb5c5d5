"""
Interaction Layer

Analyst intents and their routing onto the engine.
"""

from .temporal import ActionType, GranularityOption, GRANULARITY_OPTIONS, InteractionRequest, dispatch

__all__ = ['ActionType', 'GranularityOption', 'GRANULARITY_OPTIONS', 'InteractionRequest', 'dispatch']
