"""
Engine Data Models for the noir engine.

Defines the core data structures for the command loop:
- Command: Parsed player action
- CommandResult: Response to the player
- EngineConfig: Tunables for narration and naming
"""

from __future__ import annotations

from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from src.models.common import Verb
from src.models.effects import Effect
from src.models.state import Message, PlayerState


class Command(BaseModel):
    """A player command resolved to a verb and target phrases."""

    verb: Verb | None = Field(default=None, description="None when the input was not understood")
    target: str = Field(default="", description="Primary target phrase")
    target2: str | None = Field(default=None, description="Second target (combine, use on)")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0, description="Confidence in the parse")
    raw: str = Field(default="", description="The player's original input")


class CommandResult(BaseModel):
    """Result of processing one command."""

    command_id: UUID = Field(default_factory=uuid4)
    new_state: PlayerState
    messages: list[Message] = Field(default_factory=list)
    effects: list[Effect] = Field(default_factory=list)
    processing_time_ms: int = 0

    # Error info (if any)
    error: str | None = None


class EngineConfig(BaseModel):
    """Engine configuration."""

    # Narration
    narration_attempts: int = Field(default=3, ge=1)
    narration_retry_delay: float = Field(default=1.0, ge=0.0, description="Seconds")
    narration_cache_ttl: float = Field(default=30.0, ge=0.0, description="Seconds")
    narration_max_tokens: int = 120
    narration_temperature: float = 0.8

    # Naming
    system_name: str = "System"
    player_name: str = "Burt"
