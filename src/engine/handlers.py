"""
Handler resolution for the noir engine.

Finds the handler definition that applies to an entity and verb: the state
map override for the entity's current state first, then the entity's own
handlers, then the first satisfied branch of a conditional chain.
"""

from __future__ import annotations

import logging
from enum import Enum

from pydantic import BaseModel

from src.engine.state_manager import get_live_state
from src.engine.validator import evaluate_conditions, has_capability
from src.models.cartridge import (
    NPC,
    ConditionalHandler,
    Entity,
    Game,
    Handler,
    HandlerDef,
    ItemHandlerDef,
)
from src.models.common import Verb
from src.models.state import PlayerState

logger = logging.getLogger(__name__)


class HandlerAvailability(str, Enum):
    """How a verb is covered for an entity."""

    HANDLED = "handled"
    CAPABLE_NO_HANDLER = "capable_no_handler"
    NOT_CAPABLE = "not_capable"


class HandlerResolution(BaseModel):
    availability: HandlerAvailability
    handler: HandlerDef | None = None


def _declared_handler(entity: Entity, verb: Verb, state: PlayerState, game: Game) -> Handler | None:
    if isinstance(entity, NPC):
        return None
    state_id = get_live_state(state, game, entity.id).current_state_id or "default"
    override = entity.state_map.get(state_id)
    if override is not None and verb in override.handlers:
        logger.debug("Using %s override for %s on %s", state_id, verb.value, entity.id)
        return override.handlers[verb]
    return entity.handlers.get(verb)


def resolve_handler(handler: Handler | None, state: PlayerState, game: Game) -> HandlerDef | None:
    """Collapse a handler to one definition; a chain yields its first satisfied branch."""
    if handler is None:
        return None
    if isinstance(handler, ConditionalHandler):
        for branch in handler.branches:
            if evaluate_conditions(branch.conditions, state, game):
                return branch
        return None
    return handler


def get_effective_handler(
    entity: Entity, verb: Verb, state: PlayerState, game: Game
) -> HandlerDef | None:
    """The handler definition that applies to a verb on an entity right now."""
    return resolve_handler(_declared_handler(entity, verb, state, game), state, game)


def classify_handler(
    entity: Entity, verb: Verb, state: PlayerState, game: Game
) -> HandlerResolution:
    """
    Resolve a handler and say how the verb is covered.

    A working handler wins even without the capability; otherwise the
    capability decides between default behavior and refusal.
    """
    handler = get_effective_handler(entity, verb, state, game)
    if handler is not None:
        return HandlerResolution(availability=HandlerAvailability.HANDLED, handler=handler)
    if has_capability(entity, verb):
        return HandlerResolution(availability=HandlerAvailability.CAPABLE_NO_HANDLER)
    return HandlerResolution(availability=HandlerAvailability.NOT_CAPABLE)


def select_item_handler(
    handlers: list[ItemHandlerDef], item_id: str, state: PlayerState, game: Game
) -> ItemHandlerDef | None:
    """
    Pick the entry for an item from an item-keyed handler list.

    The first entry whose conditions hold wins; failing that the first entry
    for the item, so its fail outcome can be shown.
    """
    entries = [h for h in handlers if h.item_id == item_id]
    for entry in entries:
        if evaluate_conditions(entry.conditions, state, game):
            return entry
    return entries[0] if entries else None


def get_effective_description(entity: Entity, state: PlayerState, game: Game) -> str:
    if isinstance(entity, NPC):
        return entity.description
    state_id = get_live_state(state, game, entity.id).current_state_id or "default"
    override = entity.state_map.get(state_id)
    if override is not None and override.description:
        return override.description
    return entity.description


def get_fallback_message(entity: Entity, key: str, game: Game) -> str:
    """Entity-specific fallback line for a key, then its default, then the stock line."""
    if not isinstance(entity, NPC):
        message = entity.fallback_messages.get(key) or entity.fallback_messages.get("default")
        if message:
            return message
    return game.system_messages.cannot_do
