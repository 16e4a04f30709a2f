"""
Models module for the remote generation gateway.

Provides the edge function transport and the typed LLM client on top of it.
"""

from impression_studio.models.edge_functions import EdgeFunctionClient
from impression_studio.models.llm_client import (
    AgentChoice,
    GenerationClient,
    PreferencesResult,
)

__all__ = [
    "AgentChoice",
    "EdgeFunctionClient",
    "GenerationClient",
    "PreferencesResult",
]
