"""
Cartridge models for the noir engine.

A cartridge is the static, authored world: locations, objects, items, NPCs,
portals and chapters. It is read-only for the lifetime of a game; everything
that changes during play lives in PlayerState.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

from src.models.common import DialogueType, EntityKind, Media, SpatialMode, Verb
from src.models.effects import Effect
from src.models.runtime import EntityRuntimeState

# =============================================================================
# Conditions
# =============================================================================


class HasFlag(BaseModel):
    """True when the flag is set."""

    type: Literal["HAS_FLAG"] = "HAS_FLAG"
    flag: str


class NoFlag(BaseModel):
    """True when the flag is not set."""

    type: Literal["NO_FLAG"] = "NO_FLAG"
    flag: str


class StateMatch(BaseModel):
    """True when a runtime state field of an entity equals a value."""

    type: Literal["STATE"] = "STATE"
    entity_id: str
    key: str = Field(description="Field name on EntityRuntimeState")
    equals: bool | int | str | None

    @field_validator("key")
    @classmethod
    def known_key(cls, value: str) -> str:
        if value not in EntityRuntimeState.model_fields:
            raise ValueError(f"Unknown entity state key: {value}")
        return value


class HasItem(BaseModel):
    """True when the item is in the inventory."""

    type: Literal["HAS_ITEM"] = "HAS_ITEM"
    item_id: str


class LocationIs(BaseModel):
    """True when the player is in the location."""

    type: Literal["LOCATION_IS"] = "LOCATION_IS"
    location_id: str


Condition = Annotated[
    Union[HasFlag, NoFlag, StateMatch, HasItem, LocationIs],
    Field(discriminator="type"),
]


# =============================================================================
# Handlers and Outcomes
# =============================================================================


class Outcome(BaseModel):
    """Message, media and effects produced by a handler branch."""

    message: str = ""
    speaker: str | None = Field(default=None, description="Defaults to the narrator")
    media: Media | None = None
    effects: list[Effect] = Field(default_factory=list)


class HandlerDef(BaseModel):
    """A single verb handler: conditions plus success and fail outcomes."""

    model_config = {"extra": "forbid"}

    conditions: list[Condition] = Field(default_factory=list)
    success: Outcome | None = None
    fail: Outcome | None = None
    fallback: str | None = Field(default=None, description="Message when no branch applies")


class ItemHandlerDef(HandlerDef):
    """A handler keyed by the other item involved (combine, use-on, unlock-with)."""

    item_id: str


class ConditionalHandler(BaseModel):
    """Ordered handler chain; the first branch whose conditions hold wins."""

    model_config = {"extra": "forbid"}

    branches: list[HandlerDef]


Handler = Union[HandlerDef, ConditionalHandler]


def _coerce_handler_map(value: Any) -> Any:
    """Authored handler lists become ConditionalHandler chains."""
    if not isinstance(value, dict):
        return value
    return {
        verb: {"branches": handler} if isinstance(handler, list) else handler
        for verb, handler in value.items()
    }


class StateOverride(BaseModel):
    """Description and handlers that replace an entity's own in a given state."""

    description: str | None = None
    handlers: dict[Verb, Handler] = Field(default_factory=dict)

    @field_validator("handlers", mode="before")
    @classmethod
    def coerce_handlers(cls, value: Any) -> Any:
        return _coerce_handler_map(value)


class InputSpec(BaseModel):
    """A phrase or digit puzzle attached to an object."""

    type: Literal["phrase", "digits"] = "phrase"
    validation: str = Field(description="The accepted answer")
    hint: str | None = None
    success: Outcome | None = None
    fail: Outcome | None = None


# =============================================================================
# Entities
# =============================================================================


class ObjectCapabilities(BaseModel):
    openable: bool = False
    lockable: bool = False
    breakable: bool = False
    movable: bool = False
    searchable: bool = False
    readable: bool = False
    usable: bool = False
    climbable: bool = False
    inputtable: bool = False
    container: bool = False
    powerable: bool = False
    camera: bool = False
    photographable: bool = False


class ItemCapabilities(BaseModel):
    takable: bool = True
    readable: bool = False
    usable: bool = False
    combinable: bool = False
    consumable: bool = False
    breakable: bool = False
    camera: bool = False
    photographable: bool = False


class ObjectState(BaseModel):
    is_open: bool = False
    is_locked: bool = False
    is_broken: bool = False
    is_powered_on: bool = False
    is_moved: bool = False
    current_state_id: str = "default"


class ItemState(BaseModel):
    read_count: int = 0
    is_broken: bool = False
    current_state_id: str = "default"


class NPCState(BaseModel):
    stage: str = "active"
    trust: int = Field(default=50, ge=0, le=100)
    attitude: str = "neutral"


class ChildRefs(BaseModel):
    objects: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)

    @property
    def all(self) -> list[str]:
        return [*self.objects, *self.items]


class _Entity(BaseModel):
    """Fields every entity shares."""

    id: str
    name: str
    description: str = ""
    alternate_names: list[str] = Field(default_factory=list)


class _Placeable(_Entity):
    """Fields shared by objects and items."""

    parent_id: str | None = Field(default=None, description="Containing object")
    handlers: dict[Verb, Handler] = Field(default_factory=dict)
    state_map: dict[str, StateOverride] = Field(default_factory=dict)
    media: dict[str, Media] = Field(
        default_factory=dict, description="Images keyed by state (default, open, broken...)"
    )
    excerpts: list[str] = Field(default_factory=list, description="Read text by read count")
    fallback_messages: dict[str, str] = Field(default_factory=dict)
    default_fail_message: str | None = None
    gated_message: str | None = Field(
        default=None, description="Shown when the player names it before it is revealed"
    )
    initially_revealed: bool = True

    @field_validator("handlers", mode="before")
    @classmethod
    def coerce_handlers(cls, value: Any) -> Any:
        return _coerce_handler_map(value)


class GameObject(_Placeable):
    """A fixed object in a location: desk, safe, dumpster, scaffolding."""

    capabilities: ObjectCapabilities = Field(default_factory=ObjectCapabilities)
    state: ObjectState = Field(default_factory=ObjectState)
    item_handlers: dict[Verb, list[ItemHandlerDef]] = Field(
        default_factory=dict, description="Handlers for using an item on this object"
    )
    children: ChildRefs = Field(default_factory=ChildRefs)
    input: InputSpec | None = None
    personal: bool = Field(default=False, description="Always with the player")
    focusable: bool = True
    inside_flag: str | None = Field(
        default=None, description="Flag set while the player is inside this object"
    )
    nearby_npcs: list[str] = Field(default_factory=list)

    @property
    def kind(self) -> EntityKind:
        return EntityKind.OBJECT


class Item(_Placeable):
    """Something the player can carry."""

    capabilities: ItemCapabilities = Field(default_factory=ItemCapabilities)
    state: ItemState = Field(default_factory=ItemState)
    combine_handlers: list[ItemHandlerDef] = Field(default_factory=list)
    use_handlers: list[ItemHandlerDef] = Field(
        default_factory=list, description="Handlers for using this item on another entity"
    )

    @property
    def kind(self) -> EntityKind:
        return EntityKind.ITEM


class Topic(BaseModel):
    """Something a scripted NPC will talk about when the player brings it up."""

    topic_id: str
    keywords: list[str] = Field(min_length=1)
    conditions: list[Condition] = Field(default_factory=list)
    min_trust: int = Field(default=0, ge=0, le=100, description="Trust needed to open up")
    once: bool = Field(default=False, description="Answered only the first time")
    response: Outcome
    trust_change: int = 0
    set_stage: str | None = None
    set_attitude: str | None = None


class NPCFallbacks(BaseModel):
    """Lines for when no topic answers."""

    default: str = "I'm not sure what you mean by that."
    off_topic: str | None = None
    no_more_help: str | None = None
    guarded: str | None = Field(default=None, description="Topic known, trust too low")


class NPC(_Entity):
    """A character the player can talk to."""

    persona: str = ""
    dialogue_type: DialogueType = DialogueType.SCRIPTED
    topics: list[Topic] = Field(default_factory=list)
    fallbacks: NPCFallbacks = Field(default_factory=NPCFallbacks)
    max_interactions: int | None = None
    interaction_limit_response: str | None = None
    initial_state: NPCState = Field(default_factory=NPCState)
    welcome_message: str = ""
    start_conversation_effects: list[Effect] = Field(default_factory=list)
    image: Media | None = None

    @property
    def kind(self) -> EntityKind:
        return EntityKind.NPC


Entity = Union[GameObject, Item, NPC]


# =============================================================================
# World Structure
# =============================================================================


class Location(BaseModel):
    """A place the player can be."""

    id: str
    name: str
    scene_description: str = ""
    scene_image: Media | None = None
    spatial_mode: SpatialMode = SpatialMode.COMPACT
    objects: list[str] = Field(default_factory=list, description="Top-level objects")
    items: list[str] = Field(default_factory=list, description="Loose top-level items")
    npcs: list[str] = Field(default_factory=list)
    zone_storage_id: str | None = Field(
        default=None, description="Object that receives dropped items"
    )
    transition_templates: list[str] = Field(
        default_factory=list, description="Focus transition lines with an {entity} slot"
    )


class Portal(BaseModel):
    """A connection between two locations."""

    id: str
    name: str
    alternate_names: list[str] = Field(default_factory=list)
    from_location_id: str
    to_location_id: str
    reveal_flag: str | None = Field(default=None, description="Hidden until this flag is set")


class ConditionalHint(BaseModel):
    conditions: list[Condition] = Field(default_factory=list)
    hint: str


class HappyPathStep(BaseModel):
    """One step of the intended route through a chapter."""

    id: str
    order: int
    description: str
    completion_flags: list[str] = Field(default_factory=list)
    base_hint: str = ""
    detailed_hint: str | None = None
    conditional_hints: list[ConditionalHint] = Field(default_factory=list)


class CompletionRequirements(BaseModel):
    require_all_steps: bool = True
    minimum_steps_required: int | None = None
    additional_flags: list[str] = Field(default_factory=list)


class Chapter(BaseModel):
    id: str
    title: str
    goal: str = ""
    start_location_id: str
    starting_items: list[str] = Field(default_factory=list, description="Items carried at start")
    happy_path: list[HappyPathStep] = Field(default_factory=list)
    completion: CompletionRequirements = Field(default_factory=CompletionRequirements)
    post_chapter_message: str | None = None
    next_chapter_id: str | None = None


class SystemMessages(BaseModel):
    """Player-facing stock messages. Placeholders use str.format names."""

    need_target: str = "What do you want to {verb}?"
    not_found: str = 'You don\'t see a "{target}" here.'
    gated: str = (
        "You can't access {name} right now. You might need to do something "
        "else first, or wait for the right moment."
    )
    too_far: str = "The {name} is too far away. You need to get closer first."
    blocked: str = "You see the {name}, but can't seem to get to it."
    not_in_inventory: str = 'You don\'t have "{target}" in your inventory.'
    need_focus: str = (
        "You need to focus on something first. Try examining or opening the "
        "object you want to interact with."
    )
    cannot_do: str = "You cannot do that."
    generic_failure: str = "Something seems off about that. Try something else."
    ai_unavailable: str = "The AI narrator is currently unavailable. Please try again in a moment."
    unknown_command: str = (
        "I don't understand that. Try something like 'examine the desk' or 'take the key'."
    )


def _index_by_id(value: Any) -> Any:
    if isinstance(value, list):
        return {(v.id if isinstance(v, BaseModel) else v["id"]): v for v in value}
    return value


class Game(BaseModel):
    """
    A complete cartridge.

    Entity collections may be given as lists; they are indexed by id. The
    validation pass enforces that ids are unique across objects, items and
    NPCs and that parent/child references agree in both directions.
    """

    id: str
    title: str
    narrator_name: str = "Narrator"
    start_chapter_id: str
    locations: dict[str, Location] = Field(default_factory=dict)
    game_objects: dict[str, GameObject] = Field(default_factory=dict)
    items: dict[str, Item] = Field(default_factory=dict)
    npcs: dict[str, NPC] = Field(default_factory=dict)
    portals: dict[str, Portal] = Field(default_factory=dict)
    chapters: dict[str, Chapter] = Field(default_factory=dict)
    system_messages: SystemMessages = Field(default_factory=SystemMessages)

    @field_validator(
        "locations", "game_objects", "items", "npcs", "portals", "chapters", mode="before"
    )
    @classmethod
    def index_by_id(cls, value: Any) -> Any:
        return _index_by_id(value)

    @model_validator(mode="after")
    def check_integrity(self) -> Game:
        seen: set[str] = set()
        for collection in (self.game_objects, self.items, self.npcs):
            for key, entity in collection.items():
                if key != entity.id:
                    raise ValueError(f"Entity {entity.id} stored under key {key}")
                if entity.id in seen:
                    raise ValueError(f"Duplicate entity id: {entity.id}")
                seen.add(entity.id)

        for obj in self.game_objects.values():
            for child_id in obj.children.objects:
                child = self.game_objects.get(child_id)
                if child is None or child.parent_id != obj.id:
                    raise ValueError(f"{obj.id} lists {child_id} as a child object")
            for child_id in obj.children.items:
                child = self.items.get(child_id)
                if child is None or child.parent_id != obj.id:
                    raise ValueError(f"{obj.id} lists {child_id} as a child item")

        for entity in [*self.game_objects.values(), *self.items.values()]:
            if entity.parent_id is None:
                continue
            parent = self.game_objects.get(entity.parent_id)
            if parent is None or entity.id not in parent.children.all:
                raise ValueError(f"{entity.id} names {entity.parent_id} as parent")

        for location in self.locations.values():
            for ref in [*location.objects, *location.items, *location.npcs]:
                if ref not in seen:
                    raise ValueError(f"Location {location.id} references unknown {ref}")
            if location.zone_storage_id and location.zone_storage_id not in self.game_objects:
                raise ValueError(f"Unknown zone storage {location.zone_storage_id}")

        if self.start_chapter_id not in self.chapters:
            raise ValueError(f"Unknown start chapter {self.start_chapter_id}")
        return self

    def get_entity(self, entity_id: str) -> Entity | None:
        """Look up an object, item or NPC by id."""
        return (
            self.game_objects.get(entity_id)
            or self.items.get(entity_id)
            or self.npcs.get(entity_id)
        )

    def location_of(self, entity_id: str) -> str | None:
        """Location whose top level lists the entity or its root container."""
        root_id = entity_id
        entity = self.get_entity(entity_id)
        while isinstance(entity, (GameObject, Item)) and entity.parent_id:
            root_id = entity.parent_id
            entity = self.game_objects.get(root_id)
        for location in self.locations.values():
            if root_id in location.objects or root_id in location.items or root_id in location.npcs:
                return location.id
        return None
