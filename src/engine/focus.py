"""
Post-action focus policy for the noir engine.

Action handlers never set focus directly (goto aside). They report what
happened and this module decides, from one table, whether focus moves.
"""

from __future__ import annotations

import logging
from enum import Enum

from src.engine.state_manager import get_ancestors, get_entity, is_descendant_of
from src.models.cartridge import NPC, Game, GameObject
from src.models.common import EntityKind, FocusType, Verb
from src.models.effects import SetFocus
from src.models.state import PlayerState

logger = logging.getLogger(__name__)


class FocusRule(str, Enum):
    """What a successful action does to focus."""

    FOCUS_TARGET = "focus_target"
    FOCUS_OBJECT_ONLY = "focus_object_only"
    FOCUS_NPC_ONLY = "focus_npc_only"
    KEEP = "keep"


FOCUS_POLICY: dict[Verb, FocusRule] = {
    Verb.EXAMINE: FocusRule.FOCUS_TARGET,
    Verb.SEARCH: FocusRule.FOCUS_TARGET,
    Verb.OPEN: FocusRule.FOCUS_TARGET,
    Verb.CLOSE: FocusRule.FOCUS_TARGET,
    Verb.READ: FocusRule.FOCUS_TARGET,
    Verb.CLIMB: FocusRule.FOCUS_TARGET,
    Verb.BREAK: FocusRule.FOCUS_TARGET,
    Verb.MOVE: FocusRule.FOCUS_TARGET,
    Verb.SMELL: FocusRule.FOCUS_TARGET,
    Verb.UNLOCK: FocusRule.FOCUS_TARGET,
    Verb.USE: FocusRule.FOCUS_OBJECT_ONLY,
    Verb.TALK: FocusRule.FOCUS_NPC_ONLY,
    Verb.TAKE: FocusRule.KEEP,
    Verb.DROP: FocusRule.KEEP,
    Verb.COMBINE: FocusRule.KEEP,
    Verb.INVENTORY: FocusRule.KEEP,
    Verb.PASSWORD: FocusRule.KEEP,
    Verb.LOOK: FocusRule.KEEP,
    Verb.GOTO: FocusRule.KEEP,
}


def focus_target_for(entity_id: str, state: PlayerState, game: Game) -> str | None:
    """The entity itself if focusable, else its nearest focusable container."""
    for candidate_id in [entity_id, *get_ancestors(state, game, entity_id)]:
        obj = game.game_objects.get(candidate_id)
        if isinstance(obj, GameObject) and obj.focusable:
            return candidate_id
    return None


def determine_next_focus(
    *,
    action: Verb,
    target_id: str | None,
    target_kind: EntityKind | None,
    action_succeeded: bool,
    state: PlayerState,
    game: Game,
) -> SetFocus | None:
    """
    Decide the focus change after an action.

    Args:
        action: The verb that was performed
        target_id: The entity acted on
        target_kind: Its kind
        action_succeeded: Whether the handler took its success branch
        state: State before the action's effects are applied
        game: The cartridge

    Returns:
        A SET_FOCUS effect, or None when focus stays where it is
    """
    if not action_succeeded or target_id is None:
        return None

    rule = FOCUS_POLICY.get(action, FocusRule.KEEP)
    if rule == FocusRule.KEEP:
        return None
    entity = get_entity(state, game, target_id)
    if entity is None:
        logger.error("Focus decision for unknown entity %s", target_id)
        return None
    if isinstance(entity, GameObject) and entity.personal:
        return None

    current = state.current_focus_id
    if current and (target_id == current or is_descendant_of(state, game, target_id, current)):
        return None

    if rule == FocusRule.FOCUS_OBJECT_ONLY and target_kind != EntityKind.OBJECT:
        return None
    if rule == FocusRule.FOCUS_NPC_ONLY and target_kind != EntityKind.NPC:
        return None

    if isinstance(entity, NPC):
        return SetFocus(focus_id=target_id, focus_type=FocusType.NPC)

    if target_id in state.inventory:
        return None
    focus_id = focus_target_for(target_id, state, game)
    if focus_id is None or focus_id == current:
        return None
    return SetFocus(focus_id=focus_id, focus_type=FocusType.OBJECT)
