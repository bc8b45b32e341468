"""
Condition evaluation and action validation for the noir engine.

Conditions are pure predicates over (state, game). Validation answers a
different question: is this verb meaningful for this entity right now?
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from pydantic import BaseModel, Field

from src.engine.errors import EngineError
from src.engine.state_manager import get_entity, get_live_state
from src.engine.visibility import is_revealed
from src.models.cartridge import (
    NPC,
    Condition,
    Entity,
    Game,
    GameObject,
    HasFlag,
    HasItem,
    Item,
    ItemCapabilities,
    LocationIs,
    NoFlag,
    ObjectCapabilities,
    StateMatch,
)
from src.models.common import Verb
from src.models.runtime import EntityRuntimeState
from src.models.state import PlayerState

logger = logging.getLogger(__name__)

OBJECT_CAPABILITIES: dict[Verb, Callable[[ObjectCapabilities], bool]] = {
    Verb.TAKE: lambda c: False,
    Verb.COMBINE: lambda c: False,
    Verb.OPEN: lambda c: c.openable,
    Verb.CLOSE: lambda c: c.openable,
    Verb.UNLOCK: lambda c: c.lockable,
    Verb.BREAK: lambda c: c.breakable,
    Verb.MOVE: lambda c: c.movable,
    Verb.READ: lambda c: c.readable,
    Verb.USE: lambda c: c.usable,
    Verb.CLIMB: lambda c: c.climbable,
    Verb.PASSWORD: lambda c: c.inputtable,
    Verb.SEARCH: lambda c: c.searchable,
    Verb.TALK: lambda c: False,
}

ITEM_CAPABILITIES: dict[Verb, Callable[[ItemCapabilities], bool]] = {
    Verb.TAKE: lambda c: c.takable,
    Verb.READ: lambda c: c.readable,
    Verb.USE: lambda c: c.usable,
    Verb.BREAK: lambda c: c.breakable,
    Verb.COMBINE: lambda c: c.combinable,
    Verb.TALK: lambda c: False,
}

# Verbs an NPC answers to
NPC_VERBS = {Verb.TALK, Verb.EXAMINE, Verb.GOTO, Verb.LOOK}

PAST_PARTICIPLES = {
    Verb.TAKE: "taken",
    Verb.OPEN: "opened",
    Verb.CLOSE: "closed",
    Verb.UNLOCK: "unlocked",
    Verb.BREAK: "broken",
    Verb.MOVE: "moved",
    Verb.READ: "read",
    Verb.USE: "used",
    Verb.CLIMB: "climbed",
    Verb.COMBINE: "combined",
    Verb.PASSWORD: "unlocked with a password",
    Verb.TALK: "talked to",
}

AFFORDANCE_VERBS = [
    Verb.EXAMINE,
    Verb.TAKE,
    Verb.OPEN,
    Verb.CLOSE,
    Verb.UNLOCK,
    Verb.BREAK,
    Verb.MOVE,
    Verb.READ,
    Verb.USE,
    Verb.CLIMB,
    Verb.SEARCH,
    Verb.PASSWORD,
    Verb.TALK,
]


class ValidationResult(BaseModel):
    """Outcome of validating a verb against an entity."""

    valid: bool
    reason: str | None = None
    affordances: list[Verb] = Field(default_factory=list)


# =============================================================================
# Conditions
# =============================================================================


def evaluate_condition(condition: Condition, state: PlayerState, game: Game) -> bool:
    if isinstance(condition, HasFlag):
        return state.has_flag(condition.flag)
    if isinstance(condition, NoFlag):
        return not state.has_flag(condition.flag)
    if isinstance(condition, StateMatch):
        live = get_live_state(state, game, condition.entity_id)
        return getattr(live, condition.key) == condition.equals
    if isinstance(condition, HasItem):
        return condition.item_id in state.inventory
    if isinstance(condition, LocationIs):
        return state.current_location_id == condition.location_id
    raise EngineError(f"Unknown condition {condition!r}")


def evaluate_conditions(
    conditions: list[Condition] | None, state: PlayerState, game: Game
) -> bool:
    """All conditions hold. An empty or missing list holds vacuously."""
    if not conditions:
        return True
    return all(evaluate_condition(c, state, game) for c in conditions)


# =============================================================================
# Capabilities and State
# =============================================================================


def has_capability(entity: Entity, verb: Verb) -> bool:
    """
    Whether an entity's kind and capability record allow a verb.

    Verbs without a capability requirement (examine, smell...) are
    allowed for objects and items.
    """
    if isinstance(entity, GameObject):
        check = OBJECT_CAPABILITIES.get(verb)
        return check(entity.capabilities) if check else True
    if isinstance(entity, Item):
        check = ITEM_CAPABILITIES.get(verb)
        return check(entity.capabilities) if check else True
    if isinstance(entity, NPC):
        return verb in NPC_VERBS
    raise EngineError(f"Unknown entity kind {entity!r}")


def validate_capability(verb: Verb, entity: Entity) -> str | None:
    """Reason the verb is impossible for this entity, or None."""
    if has_capability(entity, verb):
        return None
    participle = PAST_PARTICIPLES.get(verb, verb.value)
    return f"This entity cannot be {participle}."


def validate_state(verb: Verb, live: EntityRuntimeState) -> str | None:
    """Reason the verb makes no sense in the entity's current state, or None."""
    if verb == Verb.OPEN:
        if live.is_open:
            return "It's already open."
        if live.is_locked:
            return "It's locked."
    elif verb == Verb.CLOSE:
        if not live.is_open:
            return "It's already closed."
    elif verb == Verb.UNLOCK:
        if not live.is_locked:
            return "It is not locked."
    elif verb == Verb.MOVE:
        if live.is_moved:
            return "You've already moved it."
    elif verb == Verb.TAKE:
        if live.taken:
            return "You already have it."
    return None


def get_affordances(entity_id: str, state: PlayerState, game: Game) -> list[Verb]:
    """Verbs that are currently meaningful for an entity."""
    entity = get_entity(state, game, entity_id)
    if entity is None:
        return []
    live = get_live_state(state, game, entity_id)
    affordances = []
    for verb in AFFORDANCE_VERBS:
        if not has_capability(entity, verb):
            continue
        if not isinstance(entity, NPC) and validate_state(verb, live) is not None:
            continue
        affordances.append(verb)
    return affordances


def validate(verb: Verb, entity_id: str, state: PlayerState, game: Game) -> ValidationResult:
    """
    Check whether a verb is applicable to an entity right now.

    ``valid`` means *actionable*, not *succeeded*: ``validate(UNLOCK, ...)``
    is valid exactly when the target is currently locked, so an invalid
    result is how callers detect "already unlocked".
    """
    entity = get_entity(state, game, entity_id)
    if entity is None:
        logger.error("Validation requested for unknown entity %s", entity_id)
        return ValidationResult(valid=False, reason="That doesn't seem to exist.")

    if not isinstance(entity, NPC) and not is_revealed(state, game, entity_id):
        return ValidationResult(valid=False, reason="You can't see that.")

    reason = validate_capability(verb, entity)
    if reason is None and not isinstance(entity, NPC):
        reason = validate_state(verb, get_live_state(state, game, entity_id))

    return ValidationResult(
        valid=reason is None,
        reason=reason,
        affordances=get_affordances(entity_id, state, game),
    )


def is_action_applicable(verb: Verb, entity_id: str, state: PlayerState, game: Game) -> bool:
    """Boolean form of validate(); True means the action would be meaningful now."""
    return validate(verb, entity_id, state, game).valid
