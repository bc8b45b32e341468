"""
Outcome to effect conversion for the noir engine.

The effect order matters: the reducer resolves a message's image from the
entity's state at the moment the message is applied, so state changes must
come before the message that depicts them.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel

from src.engine.validator import evaluate_conditions
from src.models.cartridge import NPC, Game, HandlerDef, Outcome
from src.models.common import NARRATOR, SYSTEM, EntityKind, MessageType
from src.models.effects import Effect, ShowMessage, is_message
from src.models.state import PlayerState

logger = logging.getLogger(__name__)


class OutcomeEvaluation(BaseModel):
    """Which branch of a handler was taken."""

    outcome: Outcome | None
    is_fail: bool


def narrator_message(content: str) -> ShowMessage:
    return ShowMessage(speaker=NARRATOR, content=content)


def system_message(content: str) -> ShowMessage:
    return ShowMessage(speaker=SYSTEM, content=content)


def _has_media(game: Game | None, entity_id: str) -> bool:
    if game is None:
        return True
    entity = game.get_entity(entity_id)
    if entity is None:
        return False
    if isinstance(entity, NPC):
        return entity.image is not None
    return bool(entity.media)


def outcome_to_message_effect(
    outcome: Outcome,
    fallback_entity_id: str | None = None,
    entity_type: EntityKind | None = None,
    game: Game | None = None,
    is_fail: bool = False,
) -> ShowMessage:
    """
    Build the primary message of an outcome.

    Explicit media wins, typed by file extension. Otherwise the renderer is
    told which entity to depict; fail outcomes are never illustrated this way.
    """
    speaker = outcome.speaker or NARRATOR
    if outcome.media is not None:
        return ShowMessage(
            speaker=speaker,
            content=outcome.message,
            message_type=outcome.media.media_type,
            media=outcome.media,
        )
    if fallback_entity_id and not is_fail and _has_media(game, fallback_entity_id):
        return ShowMessage(
            speaker=speaker,
            content=outcome.message,
            message_type=MessageType.IMAGE,
            image_id=fallback_entity_id,
            image_entity_type=entity_type,
        )
    return ShowMessage(speaker=speaker, content=outcome.message)


def build_effects_from_outcome(
    outcome: Outcome,
    fallback_entity_id: str | None = None,
    entity_type: EntityKind | None = None,
    game: Game | None = None,
    is_fail: bool = False,
) -> list[Effect]:
    """
    Convert an outcome into ordered effects.

    Order: the outcome's state effects, then its primary message (when it
    has one), then any messages listed among its effects.
    """
    state_effects = [e for e in outcome.effects if not is_message(e)]
    extra_messages = [e for e in outcome.effects if is_message(e)]

    effects: list[Effect] = [*state_effects]
    if outcome.message:
        effects.append(
            outcome_to_message_effect(outcome, fallback_entity_id, entity_type, game, is_fail)
        )
    effects.extend(extra_messages)
    return effects


def evaluate_handler_outcome(
    handler: HandlerDef, state: PlayerState, game: Game
) -> OutcomeEvaluation:
    """Select the success or fail branch of a handler from its conditions."""
    if evaluate_conditions(handler.conditions, state, game):
        if handler.success is None:
            logger.error("Handler with satisfied conditions has no success outcome")
        return OutcomeEvaluation(outcome=handler.success, is_fail=False)
    if handler.fail is None:
        logger.error("Handler with failed conditions has no fail outcome")
    return OutcomeEvaluation(outcome=handler.fail, is_fail=True)
