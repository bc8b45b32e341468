"""
Core Data Models for the noir engine.

These models define the world ontology:
- Cartridge: the static, authored world (locations, objects, items, NPCs)
- Runtime: per-entity mutable state
- State: the player's playthrough and the messages they see
- Effects: the closed set of instructions the reducer applies
"""

from src.models.cartridge import (
    NPC,
    Chapter,
    ChildRefs,
    CompletionRequirements,
    Condition,
    ConditionalHandler,
    ConditionalHint,
    Entity,
    Game,
    GameObject,
    HandlerDef,
    HappyPathStep,
    HasFlag,
    HasItem,
    Handler,
    InputSpec,
    Item,
    ItemCapabilities,
    ItemHandlerDef,
    ItemState,
    Location,
    LocationIs,
    NoFlag,
    NPCFallbacks,
    NPCState,
    ObjectCapabilities,
    ObjectState,
    Outcome,
    Portal,
    StateMatch,
    StateOverride,
    SystemMessages,
    Topic,
)
from src.models.common import (
    AGENT,
    INVENTORY_ID,
    NARRATOR,
    SYSTEM,
    DialogueType,
    EntityKind,
    FocusType,
    Media,
    MessageType,
    SpatialMode,
    Verb,
)
from src.models.effects import (
    AddToContainer,
    ClearDeviceFocus,
    CreateDynamicItem,
    Effect,
    EndConversation,
    EndInteraction,
    IncrementNpcInteraction,
    MoveToLocation,
    RemoveItem,
    RevealObject,
    SetEntityState,
    SetFlag,
    SetFocus,
    ShowMessage,
    StartConversation,
    is_message,
)
from src.models.runtime import EntityRuntimeState
from src.models.state import Message, PlayerState

__all__ = [
    # Cartridge
    "Chapter",
    "ChildRefs",
    "CompletionRequirements",
    "Condition",
    "ConditionalHandler",
    "ConditionalHint",
    "Entity",
    "Game",
    "GameObject",
    "Handler",
    "HandlerDef",
    "HappyPathStep",
    "HasFlag",
    "HasItem",
    "InputSpec",
    "Item",
    "ItemCapabilities",
    "ItemHandlerDef",
    "ItemState",
    "Location",
    "LocationIs",
    "NPC",
    "NPCFallbacks",
    "NPCState",
    "NoFlag",
    "ObjectCapabilities",
    "ObjectState",
    "Outcome",
    "Portal",
    "StateMatch",
    "StateOverride",
    "SystemMessages",
    "Topic",
    # Common
    "AGENT",
    "INVENTORY_ID",
    "NARRATOR",
    "SYSTEM",
    "DialogueType",
    "EntityKind",
    "FocusType",
    "Media",
    "MessageType",
    "SpatialMode",
    "Verb",
    # Effects
    "AddToContainer",
    "ClearDeviceFocus",
    "CreateDynamicItem",
    "Effect",
    "EndConversation",
    "EndInteraction",
    "IncrementNpcInteraction",
    "MoveToLocation",
    "RemoveItem",
    "RevealObject",
    "SetEntityState",
    "SetFlag",
    "SetFocus",
    "ShowMessage",
    "StartConversation",
    "is_message",
    # Runtime and player state
    "EntityRuntimeState",
    "Message",
    "PlayerState",
]
