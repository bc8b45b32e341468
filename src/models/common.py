"""
Shared enumerations and small value types for the noir engine.

These are used by the cartridge, the runtime state and the effect models,
so they live in a module none of those depend on.
"""

from __future__ import annotations

import re
from enum import Enum

from pydantic import BaseModel, Field

# Pseudo-container id used when an effect moves an entity into the inventory.
INVENTORY_ID = "inventory"

NARRATOR = "narrator"
SYSTEM = "system"
AGENT = "agent"

_VIDEO_PATTERN = re.compile(r"\.(mp4|webm|ogg|mov)$", re.IGNORECASE)


class Verb(str, Enum):
    """The closed set of player verbs the engine resolves."""

    TAKE = "take"
    DROP = "drop"
    OPEN = "open"
    CLOSE = "close"
    BREAK = "break"
    SEARCH = "search"
    SMELL = "smell"
    CLIMB = "climb"
    TALK = "talk"
    COMBINE = "combine"
    GOTO = "goto"
    EXAMINE = "examine"
    USE = "use"
    INVENTORY = "inventory"
    PASSWORD = "password"
    MOVE = "move"
    LOOK = "look"
    READ = "read"
    UNLOCK = "unlock"


class EntityKind(str, Enum):
    """Kinds of entity in a cartridge."""

    OBJECT = "object"
    ITEM = "item"
    NPC = "npc"


class SpatialMode(str, Enum):
    """Whether everything in a location is in reach, or only the focused part."""

    COMPACT = "compact"
    SPRAWLING = "sprawling"


class DialogueType(str, Enum):
    """How an NPC answers in conversation."""

    SCRIPTED = "scripted"
    FREEFORM = "freeform"


class FocusType(str, Enum):
    """What the player is currently focused on."""

    OBJECT = "object"
    NPC = "npc"
    NONE = "none"


class MessageType(str, Enum):
    """How a message should be rendered."""

    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class Media(BaseModel):
    """An image or video attached to an outcome, entity or location."""

    url: str = Field(description="Location of the asset")
    description: str = Field(default="", description="Alt text for the asset")
    hint: str | None = Field(default=None, description="Short caption hint")

    @property
    def media_type(self) -> MessageType:
        """Video for known video extensions, image otherwise."""
        if _VIDEO_PATTERN.search(self.url):
            return MessageType.VIDEO
        return MessageType.IMAGE
