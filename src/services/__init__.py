"""
Service layer for the noir engine.

Services wrap external collaborators: the LLM provider and the narration
expansion built on top of it.
"""

from __future__ import annotations

from src.services.llm import (
    LLMProvider,
    LLMService,
    MockLLMProvider,
    OpenRouterProvider,
    create_llm_service,
)
from src.services.narration import NarrationService, NarrationUnavailableError

__all__ = [
    "LLMProvider",
    "LLMService",
    "MockLLMProvider",
    "NarrationService",
    "NarrationUnavailableError",
    "OpenRouterProvider",
    "create_llm_service",
]
