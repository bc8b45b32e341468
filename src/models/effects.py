"""
Effect models for the noir engine.

An effect is an atomic instruction emitted by an action handler and applied
by the reducer. The set is closed: ``Effect`` is a discriminated union on the
``type`` tag, so anything else fails validation before it reaches the reducer.
"""

from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from src.models.common import NARRATOR, EntityKind, FocusType, Media, MessageType
from src.models.runtime import EntityRuntimeState


class ShowMessage(BaseModel):
    """Display a message to the player."""

    type: Literal["SHOW_MESSAGE"] = "SHOW_MESSAGE"
    speaker: str = Field(default=NARRATOR, description="narrator, system, agent or an NPC id")
    sender_name: str | None = None
    content: str
    message_type: MessageType = MessageType.TEXT
    media: Media | None = Field(default=None, description="Explicit media resolved eagerly")
    image_id: str | None = Field(
        default=None, description="Entity whose image the renderer should resolve"
    )
    image_entity_type: EntityKind | None = None


class SetFlag(BaseModel):
    """Set or clear a story flag."""

    type: Literal["SET_FLAG"] = "SET_FLAG"
    flag: str
    value: bool = True


class SetEntityState(BaseModel):
    """Patch the runtime state of an entity."""

    type: Literal["SET_ENTITY_STATE"] = "SET_ENTITY_STATE"
    entity_id: str
    patch: EntityRuntimeState


class AddToContainer(BaseModel):
    """Place an entity inside a container, or into the inventory."""

    type: Literal["ADD_TO_CONTAINER"] = "ADD_TO_CONTAINER"
    entity_id: str
    container_id: str


class RemoveItem(BaseModel):
    """Remove an item from the inventory."""

    type: Literal["REMOVE_ITEM"] = "REMOVE_ITEM"
    item_id: str


class RevealObject(BaseModel):
    """Make a hidden object or item visible."""

    type: Literal["REVEAL_OBJECT"] = "REVEAL_OBJECT"
    entity_id: str
    revealed_by: str | None = Field(default=None, description="Entity that did the revealing")


class SetFocus(BaseModel):
    """Change what the player is focused on. A null focus clears it."""

    type: Literal["SET_FOCUS"] = "SET_FOCUS"
    focus_id: str | None
    focus_type: FocusType = FocusType.OBJECT
    transition_message: str | None = None


class MoveToLocation(BaseModel):
    """Move the player to another location."""

    type: Literal["MOVE_TO_LOCATION"] = "MOVE_TO_LOCATION"
    location_id: str


class StartConversation(BaseModel):
    type: Literal["START_CONVERSATION"] = "START_CONVERSATION"
    npc_id: str


class EndConversation(BaseModel):
    type: Literal["END_CONVERSATION"] = "END_CONVERSATION"


class EndInteraction(BaseModel):
    type: Literal["END_INTERACTION"] = "END_INTERACTION"


class IncrementNpcInteraction(BaseModel):
    type: Literal["INCREMENT_NPC_INTERACTION"] = "INCREMENT_NPC_INTERACTION"
    npc_id: str


class CreateDynamicItem(BaseModel):
    """Spawn an item that is not part of the authored cartridge."""

    type: Literal["CREATE_DYNAMIC_ITEM"] = "CREATE_DYNAMIC_ITEM"
    item_id: str
    name: str
    description: str = ""
    alternate_names: list[str] = Field(default_factory=list)
    container_id: str | None = Field(
        default=None, description="Where the item appears; inventory if unset"
    )
    media: Media | None = None


class ClearDeviceFocus(BaseModel):
    type: Literal["CLEAR_DEVICE_FOCUS"] = "CLEAR_DEVICE_FOCUS"


Effect = Annotated[
    Union[
        ShowMessage,
        SetFlag,
        SetEntityState,
        AddToContainer,
        RemoveItem,
        RevealObject,
        SetFocus,
        MoveToLocation,
        StartConversation,
        EndConversation,
        EndInteraction,
        IncrementNpcInteraction,
        CreateDynamicItem,
        ClearDeviceFocus,
    ],
    Field(discriminator="type"),
]


def is_message(effect: Effect) -> bool:
    """Whether an effect only displays text."""
    return isinstance(effect, ShowMessage)
