"""
Game State Manager for the noir engine.

Read helpers over (PlayerState, Game) and the reducer that applies effects.
Handlers use the read helpers; only apply_effects produces a new state.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from src.engine.errors import CartridgeIntegrityError, UnknownEffectError
from src.engine.models import EngineConfig
from src.models.cartridge import NPC, Entity, Game, GameObject, Item
from src.models.common import AGENT, INVENTORY_ID, NARRATOR, SYSTEM, FocusType, Media
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
)
from src.models.runtime import EntityRuntimeState
from src.models.state import Message, PlayerState

logger = logging.getLogger(__name__)

INITIAL_REVEAL = "start"


# =============================================================================
# Initial State
# =============================================================================


def authored_state(entity: Entity) -> EntityRuntimeState:
    """Runtime state implied by the cartridge definition of an entity."""
    if isinstance(entity, GameObject):
        return EntityRuntimeState(
            is_open=entity.state.is_open,
            is_locked=entity.state.is_locked,
            is_broken=entity.state.is_broken,
            is_powered_on=entity.state.is_powered_on,
            is_moved=entity.state.is_moved,
            current_state_id=entity.state.current_state_id,
            parent_id=entity.parent_id,
            revealed_by=INITIAL_REVEAL if entity.initially_revealed else None,
        )
    if isinstance(entity, Item):
        return EntityRuntimeState(
            is_broken=entity.state.is_broken,
            current_state_id=entity.state.current_state_id,
            read_count=entity.state.read_count,
            parent_id=entity.parent_id,
            revealed_by=INITIAL_REVEAL if entity.initially_revealed else None,
            taken=False,
        )
    return EntityRuntimeState(
        stage=entity.initial_state.stage,
        trust=entity.initial_state.trust,
        attitude=entity.initial_state.attitude,
        interaction_count=0,
    )


def create_initial_state(game: Game, chapter_id: str | None = None) -> PlayerState:
    """
    Build the first PlayerState of a playthrough.

    Args:
        game: The cartridge
        chapter_id: Chapter to start in (default: the cartridge's start chapter)

    Returns:
        A PlayerState with every entity's authored state copied into the world

    Raises:
        CartridgeIntegrityError: If the chapter or one of its starting items is unknown
    """
    chapter = game.chapters.get(chapter_id or game.start_chapter_id)
    if chapter is None:
        raise CartridgeIntegrityError(f"Unknown chapter {chapter_id or game.start_chapter_id}")
    world: dict[str, EntityRuntimeState] = {}
    for entity in [*game.game_objects.values(), *game.items.values(), *game.npcs.values()]:
        world[entity.id] = authored_state(entity)

    for item_id in chapter.starting_items:
        if item_id not in game.items:
            raise CartridgeIntegrityError(f"Chapter {chapter.id} starts with unknown item {item_id}")
        world[item_id] = world[item_id].model_copy(update={"parent_id": None, "taken": True})

    return PlayerState(
        game_id=game.id,
        chapter_id=chapter.id,
        current_location_id=chapter.start_location_id,
        inventory=list(chapter.starting_items),
        world=world,
    )


# =============================================================================
# Read Helpers
# =============================================================================


def get_entity(state: PlayerState, game: Game, entity_id: str) -> Entity | None:
    """Look up an authored or dynamically created entity."""
    return game.get_entity(entity_id) or state.dynamic_items.get(entity_id)


def get_item(state: PlayerState, game: Game, item_id: str) -> Item | None:
    return game.items.get(item_id) or state.dynamic_items.get(item_id)


def get_live_state(state: PlayerState, game: Game, entity_id: str) -> EntityRuntimeState:
    """Authored state with the stored runtime state layered on top."""
    stored = state.world.get(entity_id)
    entity = game.get_entity(entity_id)
    if entity is None:
        return stored or EntityRuntimeState()
    base = authored_state(entity)
    return base.merged(stored) if stored is not None else base


def get_parent_id(state: PlayerState, game: Game, entity_id: str) -> str | None:
    if entity_id in state.inventory:
        return None
    return get_live_state(state, game, entity_id).parent_id


def get_ancestors(state: PlayerState, game: Game, entity_id: str) -> list[str]:
    """Container chain from the nearest parent outwards."""
    ancestors: list[str] = []
    parent_id = get_parent_id(state, game, entity_id)
    while parent_id is not None and parent_id not in ancestors:
        ancestors.append(parent_id)
        parent_id = get_parent_id(state, game, parent_id)
    return ancestors


def is_descendant_of(state: PlayerState, game: Game, entity_id: str, ancestor_id: str) -> bool:
    return ancestor_id in get_ancestors(state, game, entity_id)


def get_children(state: PlayerState, game: Game, parent_id: str) -> list[str]:
    """
    Current direct children of a container.

    Authored children come first in cartridge order, followed by anything
    placed there during play.
    """
    children: list[str] = []
    parent = game.game_objects.get(parent_id)
    candidates = parent.children.all if parent is not None else []
    for child_id in [*candidates, *state.world.keys()]:
        if child_id in children or child_id in state.inventory:
            continue
        if get_live_state(state, game, child_id).parent_id == parent_id:
            children.append(child_id)
    return children


def get_descendants(state: PlayerState, game: Game, entity_id: str) -> list[str]:
    """All entities nested under an entity, depth first."""
    result: list[str] = []
    stack = list(reversed(get_children(state, game, entity_id)))
    while stack:
        child_id = stack.pop()
        if child_id in result:
            continue
        result.append(child_id)
        stack.extend(reversed(get_children(state, game, child_id)))
    return result


def resolve_entity_image(state: PlayerState, game: Game, entity_id: str) -> Media | None:
    """
    Pick the image variant that matches an entity's current state.

    Priority: broken, custom state id, open, unlocked, default.
    """
    entity = get_entity(state, game, entity_id)
    if isinstance(entity, NPC):
        return entity.image
    if entity is None or not entity.media:
        return None

    live = get_live_state(state, game, entity_id)
    keys: list[str] = []
    if live.is_broken:
        keys.append("broken")
    if live.current_state_id and live.current_state_id != "default":
        keys.append(live.current_state_id)
    if live.is_open:
        keys.append("open")
    if live.is_locked is False and isinstance(entity, GameObject) and entity.capabilities.lockable:
        keys.append("unlocked")
    keys.append("default")

    for key in keys:
        if key in entity.media:
            return entity.media[key]
    return None


# =============================================================================
# Reducer
# =============================================================================


class EffectApplication(BaseModel):
    """New state plus the messages produced while applying effects."""

    new_state: PlayerState
    messages: list[Message] = Field(default_factory=list)


def _sender_name(speaker: str, game: Game, config: EngineConfig) -> str:
    if speaker == NARRATOR:
        return game.narrator_name
    if speaker == SYSTEM:
        return config.system_name
    if speaker == AGENT:
        return config.player_name
    npc = game.npcs.get(speaker)
    return npc.name if npc is not None else speaker


def _set_state(state: PlayerState, game: Game, entity_id: str, **changes: object) -> None:
    patch = EntityRuntimeState(**changes)
    state.world[entity_id] = get_live_state(state, game, entity_id).merged(patch)


def _apply(
    state: PlayerState,
    effect: Effect,
    game: Game,
    config: EngineConfig,
    messages: list[Message],
) -> None:
    """Apply one effect to a state that the caller already copied."""
    if isinstance(effect, ShowMessage):
        image = effect.media
        if image is None and effect.image_id:
            image = resolve_entity_image(state, game, effect.image_id)
        messages.append(
            Message(
                sender=effect.speaker,
                sender_name=effect.sender_name or _sender_name(effect.speaker, game, config),
                type=effect.message_type,
                content=effect.content,
                image=image,
                image_entity_id=effect.image_id,
            )
        )
    elif isinstance(effect, SetFlag):
        state.flags[effect.flag] = effect.value
    elif isinstance(effect, SetEntityState):
        if get_entity(state, game, effect.entity_id) is None:
            logger.error("SET_ENTITY_STATE for unknown entity %s", effect.entity_id)
            return
        live = get_live_state(state, game, effect.entity_id)
        state.world[effect.entity_id] = live.merged(effect.patch)
    elif isinstance(effect, AddToContainer):
        if effect.container_id == INVENTORY_ID:
            if effect.entity_id not in state.inventory:
                state.inventory.append(effect.entity_id)
            _set_state(state, game, effect.entity_id, parent_id=None, taken=True)
        else:
            if effect.entity_id in state.inventory:
                state.inventory.remove(effect.entity_id)
            revealed = get_live_state(state, game, effect.entity_id).revealed_by
            _set_state(
                state,
                game,
                effect.entity_id,
                parent_id=effect.container_id,
                taken=False,
                revealed_by=revealed or effect.container_id,
            )
    elif isinstance(effect, RemoveItem):
        if effect.item_id in state.inventory:
            state.inventory.remove(effect.item_id)
    elif isinstance(effect, RevealObject):
        _set_state(state, game, effect.entity_id, revealed_by=effect.revealed_by or "effect")
    elif isinstance(effect, SetFocus):
        state.current_focus_id = effect.focus_id
        state.focus_type = effect.focus_type if effect.focus_id else FocusType.NONE
        if effect.transition_message:
            messages.append(
                Message(
                    sender=NARRATOR,
                    sender_name=game.narrator_name,
                    content=effect.transition_message,
                )
            )
    elif isinstance(effect, MoveToLocation):
        if effect.location_id not in game.locations:
            logger.error("MOVE_TO_LOCATION to unknown location %s", effect.location_id)
            return
        state.current_location_id = effect.location_id
        state.current_focus_id = None
        state.focus_type = FocusType.NONE
        state.interacting_with_object = None
    elif isinstance(effect, StartConversation):
        state.active_conversation_with = effect.npc_id
    elif isinstance(effect, EndConversation):
        state.active_conversation_with = None
    elif isinstance(effect, EndInteraction):
        state.interacting_with_object = None
    elif isinstance(effect, IncrementNpcInteraction):
        count = get_live_state(state, game, effect.npc_id).interaction_count or 0
        _set_state(state, game, effect.npc_id, interaction_count=count + 1)
    elif isinstance(effect, CreateDynamicItem):
        container_id = effect.container_id or INVENTORY_ID
        in_inventory = container_id == INVENTORY_ID
        state.dynamic_items[effect.item_id] = Item(
            id=effect.item_id,
            name=effect.name,
            description=effect.description,
            alternate_names=effect.alternate_names,
            media={"default": effect.media} if effect.media else {},
            parent_id=None if in_inventory else container_id,
        )
        state.world[effect.item_id] = EntityRuntimeState(
            parent_id=None if in_inventory else container_id,
            revealed_by="created",
            taken=in_inventory,
            read_count=0,
        )
        if in_inventory and effect.item_id not in state.inventory:
            state.inventory.append(effect.item_id)
    elif isinstance(effect, ClearDeviceFocus):
        state.active_device_id = None
    else:
        raise UnknownEffectError(f"No reducer rule for effect {effect!r}")


def apply_effects(
    state: PlayerState,
    effects: list[Effect],
    game: Game,
    config: EngineConfig | None = None,
) -> EffectApplication:
    """
    Apply effects in order to a copy of the state.

    Args:
        state: Prior state (left untouched)
        effects: Effects in emission order
        game: The cartridge
        config: Engine configuration for sender names

    Returns:
        EffectApplication with the new state and produced messages

    Raises:
        UnknownEffectError: If an effect has no reducer rule
    """
    config = config or EngineConfig()
    new_state = state.model_copy(deep=True)
    messages: list[Message] = []
    for effect in effects:
        logger.debug("Applying %s", type(effect).__name__)
        _apply(new_state, effect, game, config, messages)
    return EffectApplication(new_state=new_state, messages=messages)
