"""
Player state and message models for the noir engine.

PlayerState is owned by the reducer. Action handlers only read it; every
change is expressed as an effect.
"""

from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

from src.models.cartridge import Item
from src.models.common import FocusType, Media, MessageType
from src.models.runtime import EntityRuntimeState


class Message(BaseModel):
    """A message shown to the player."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    sender: str = Field(description="narrator, system, agent or an NPC id")
    sender_name: str
    type: MessageType = MessageType.TEXT
    content: str
    image: Media | None = None
    image_entity_id: str | None = None
    timestamp: datetime = Field(default_factory=datetime.now)


class PlayerState(BaseModel):
    """Everything about one playthrough that can change."""

    game_id: str
    chapter_id: str
    current_location_id: str
    current_focus_id: str | None = None
    focus_type: FocusType = FocusType.NONE
    inventory: list[str] = Field(default_factory=list)
    flags: dict[str, bool] = Field(default_factory=dict)
    world: dict[str, EntityRuntimeState] = Field(
        default_factory=dict, description="Runtime state per entity id"
    )
    dynamic_items: dict[str, Item] = Field(
        default_factory=dict, description="Items spawned during play"
    )
    active_conversation_with: str | None = None
    interacting_with_object: str | None = None
    active_device_id: str | None = None

    def has_flag(self, flag: str) -> bool:
        """Whether a story flag is set."""
        return self.flags.get(flag, False)

    def entity(self, entity_id: str) -> EntityRuntimeState:
        """Stored runtime state for an entity, empty if none is stored."""
        return self.world.get(entity_id) or EntityRuntimeState()
