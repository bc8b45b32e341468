"""
Visibility, reach and focus narration for the noir engine.

Visible means the player can see it from where they stand: it is revealed
and every container around it is accessible. Reachable adds the spatial
rule: in a sprawling location only the focused part of the room is within
arm's length.
"""

from __future__ import annotations

import logging
import random
from enum import Enum

from pydantic import BaseModel, Field

from src.engine.state_manager import (
    get_ancestors,
    get_children,
    get_entity,
    get_live_state,
    is_descendant_of,
)
from src.models.cartridge import NPC, Game, GameObject, Item
from src.models.common import EntityKind, SpatialMode
from src.models.state import PlayerState

logger = logging.getLogger(__name__)

OBJECT_TRANSITIONS = [
    "You walk over to the {entity}.",
    "You approach the {entity}.",
    "You move closer to the {entity}.",
    "You step over to the {entity}.",
]

NPC_TRANSITIONS = [
    "You walk over to {entity}.",
    "You approach {entity}.",
    "You make your way over to {entity}.",
]

OUT_OF_FOCUS_TEMPLATES = [
    "You're at the {focus}. The {target} is too far away to {verb} from here.",
    "From the {focus}, you can't {verb} the {target}. You'd have to walk over first.",
    "The {target} is out of reach from the {focus}.",
]


class VisibleEntities(BaseModel):
    """Ids the player can currently see, in enumeration order."""

    objects: list[str] = Field(default_factory=list)
    items: list[str] = Field(default_factory=list)
    npcs: list[str] = Field(default_factory=list)


class ReachFailure(str, Enum):
    """Why a visible entity cannot be touched."""

    TOO_FAR = "too_far"
    CONTAINER_BLOCKED = "container_blocked"


class ReachResult(BaseModel):
    reachable: bool
    failure: ReachFailure | None = None
    blocking_container_id: str | None = None


class EntityMatch(BaseModel):
    """Result of a focus-first entity search."""

    id: str
    kind: EntityKind
    in_focus: bool = False


# =============================================================================
# Visibility
# =============================================================================


def is_container_accessible(state: PlayerState, game: Game, container_id: str) -> bool:
    """
    Whether the contents of a container can be seen and handled.

    A broken container is always open to the world. Otherwise a locked
    container is shut, and an openable or breakable one must be open.
    """
    container = game.game_objects.get(container_id)
    if container is None:
        return True
    live = get_live_state(state, game, container_id)
    if live.is_broken:
        return True
    if live.is_locked:
        return False
    caps = container.capabilities
    if (caps.openable or caps.breakable) and not live.is_open:
        return False
    return True


def is_personal(game: Game, entity_id: str) -> bool:
    obj = game.game_objects.get(entity_id)
    return obj is not None and obj.personal


def is_revealed(state: PlayerState, game: Game, entity_id: str) -> bool:
    if entity_id in state.inventory or is_personal(game, entity_id):
        return True
    return get_live_state(state, game, entity_id).revealed_by is not None


def is_in_current_location(state: PlayerState, game: Game, entity_id: str) -> bool:
    """Whether an entity sits, directly or nested, in the player's location."""
    if entity_id in state.inventory:
        return True
    location = game.locations.get(state.current_location_id)
    if location is None:
        return False
    ancestors = get_ancestors(state, game, entity_id)
    root_id = ancestors[-1] if ancestors else entity_id
    return (
        root_id in location.objects
        or root_id in location.items
        or root_id in location.npcs
        or root_id == location.zone_storage_id
    )


def get_visible_entities(state: PlayerState, game: Game) -> VisibleEntities:
    """
    Everything the player can see in the current location.

    Walks the location's top-level objects depth first, descending only into
    revealed, accessible containers.
    """
    visible = VisibleEntities()
    location = game.locations.get(state.current_location_id)
    if location is None:
        logger.error("Player is in unknown location %s", state.current_location_id)
        return visible

    def visit(entity_id: str) -> None:
        if entity_id in visible.objects or entity_id in visible.items:
            return
        if entity_id in state.inventory or not is_revealed(state, game, entity_id):
            return
        entity = get_entity(state, game, entity_id)
        if isinstance(entity, GameObject):
            visible.objects.append(entity_id)
            if is_container_accessible(state, game, entity_id):
                for child_id in get_children(state, game, entity_id):
                    visit(child_id)
        elif isinstance(entity, Item):
            visible.items.append(entity_id)

    roots = [*location.objects, *location.items]
    if location.zone_storage_id and location.zone_storage_id not in roots:
        roots.append(location.zone_storage_id)
    for root_id in roots:
        visit(root_id)

    visible.npcs = [npc_id for npc_id in location.npcs if npc_id in game.npcs]
    return visible


# =============================================================================
# Reach
# =============================================================================


def check_reach(state: PlayerState, game: Game, entity_id: str) -> ReachResult:
    """
    Whether the player can touch an entity right now.

    Carried and personal things are always in reach. Otherwise every
    container around the entity must be accessible, and in a sprawling
    location the entity must be the focus, inside the focus, lying in the
    zone storage, or inside an object the player has climbed into.
    """
    if entity_id in state.inventory or is_personal(game, entity_id):
        return ReachResult(reachable=True)

    ancestors = get_ancestors(state, game, entity_id)
    for ancestor_id in ancestors:
        if not is_container_accessible(state, game, ancestor_id):
            return ReachResult(
                reachable=False,
                failure=ReachFailure.CONTAINER_BLOCKED,
                blocking_container_id=ancestor_id,
            )

    location = game.locations.get(state.current_location_id)
    if location is None or location.spatial_mode != SpatialMode.SPRAWLING:
        return ReachResult(reachable=True)

    # Zone storage is the ground underfoot; what was dropped stays at hand.
    if location.zone_storage_id and ancestors[:1] == [location.zone_storage_id]:
        return ReachResult(reachable=True)

    focus_id = state.current_focus_id
    if focus_id and (entity_id == focus_id or is_descendant_of(state, game, entity_id, focus_id)):
        return ReachResult(reachable=True)

    for ancestor_id in ancestors:
        container = game.game_objects.get(ancestor_id)
        if container is not None and container.inside_flag and state.has_flag(container.inside_flag):
            return ReachResult(reachable=True)

    return ReachResult(reachable=False, failure=ReachFailure.TOO_FAR)


# =============================================================================
# Focus-first Search and Narration
# =============================================================================


def find_entity(
    target_name: str,
    state: PlayerState,
    game: Game,
    include_npcs: bool = True,
) -> EntityMatch | None:
    """
    Find an entity by name, searching the focus first.

    Order: the focused subtree, the inventory, everything visible, then NPCs
    in the location.
    """
    from src.engine.matcher import MatchOptions, find_best_match, find_npc

    if state.current_focus_id:
        match = find_best_match(
            target_name,
            state,
            game,
            MatchOptions(search_inventory=False, require_focus=True),
        )
        if match is not None:
            return EntityMatch(id=match.id, kind=_kind_of(state, game, match.id), in_focus=True)

    match = find_best_match(
        target_name,
        state,
        game,
        MatchOptions(search_inventory=True, search_visible_items=False, search_objects=False),
    )
    if match is None:
        match = find_best_match(target_name, state, game, MatchOptions(search_inventory=False))
    if match is not None:
        return EntityMatch(id=match.id, kind=_kind_of(state, game, match.id))

    if include_npcs:
        npc_id = find_npc(target_name, state, game)
        if npc_id is not None:
            return EntityMatch(id=npc_id, kind=EntityKind.NPC)
    return None


def _kind_of(state: PlayerState, game: Game, entity_id: str) -> EntityKind:
    entity = get_entity(state, game, entity_id)
    if isinstance(entity, GameObject):
        return EntityKind.OBJECT
    if isinstance(entity, NPC):
        return EntityKind.NPC
    return EntityKind.ITEM


def get_transition_narration(
    target_id: str,
    kind: EntityKind,
    state: PlayerState,
    game: Game,
    rng: random.Random | None = None,
) -> str | None:
    """
    A line describing the player walking over to a new focus.

    None when the target already is the focus, is carried on the person, is
    nested inside something, or is an item.
    """
    if target_id == state.current_focus_id or kind == EntityKind.ITEM:
        return None
    entity = get_entity(state, game, target_id)
    if entity is None:
        return None
    if isinstance(entity, GameObject) and (entity.personal or entity.parent_id):
        return None

    rng = rng or random.Random()
    if isinstance(entity, NPC):
        return rng.choice(NPC_TRANSITIONS).format(entity=entity.name)

    location = game.locations.get(state.current_location_id)
    templates = (location.transition_templates if location else None) or OBJECT_TRANSITIONS
    return rng.choice(templates).format(entity=entity.name)


def get_out_of_focus_message(
    verb: str,
    target_name: str,
    state: PlayerState,
    game: Game,
    rng: random.Random | None = None,
) -> str:
    """Static 'too far away' line for a target outside the focused area."""
    focus = get_entity(state, game, state.current_focus_id) if state.current_focus_id else None
    if focus is None:
        return game.system_messages.too_far.format(name=target_name)
    rng = rng or random.Random()
    return rng.choice(OUT_OF_FOCUS_TEMPLATES).format(
        focus=focus.name, target=target_name, verb=verb
    )
