"""
Shared plumbing for action handlers.

Every handler follows the same skeleton: locate the target, resolve its
handler, build ordered effects from the outcome, then ask the focus manager
whether focus moves. The pieces that repeat live here.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel

from src.engine.focus import determine_next_focus
from src.engine.gating import check_for_gated_content
from src.engine.matcher import (
    BestMatch,
    MatchCategory,
    MatchOptions,
    find_best_match,
    matches_name,
    normalize_name,
)
from src.engine.outcomes import (
    build_effects_from_outcome,
    evaluate_handler_outcome,
    narrator_message,
    system_message,
)
from src.engine.state_manager import get_ancestors, get_entity, get_live_state
from src.engine.visibility import (
    ReachFailure,
    check_reach,
    get_out_of_focus_message,
    is_container_accessible,
    is_in_current_location,
    is_revealed,
)
from src.models.cartridge import (
    Entity,
    Game,
    GameObject,
    HandlerDef,
    Item,
    Outcome,
    SystemMessages,
)
from src.models.common import EntityKind, Verb
from src.models.effects import Effect, ShowMessage
from src.models.runtime import EntityRuntimeState
from src.models.state import PlayerState
from src.services.narration import NarrationService, NarrationUnavailableError

logger = logging.getLogger(__name__)


@dataclass
class ActionContext:
    """Everything a handler needs for one command."""

    state: PlayerState
    game: Game
    narrator: NarrationService = field(default_factory=NarrationService)
    rng: random.Random = field(default_factory=random.Random)

    def entity(self, entity_id: str) -> Entity | None:
        return get_entity(self.state, self.game, entity_id)

    @property
    def messages(self) -> SystemMessages:
        return self.game.system_messages

    async def narrate(
        self,
        keyword: str,
        context: dict[str, str] | None = None,
        fallback: str | None = None,
    ) -> ShowMessage:
        """Expand a narration keyword into a narrator message."""
        try:
            text = await self.narrator.expand(keyword, context, fallback)
        except NarrationUnavailableError as e:
            logger.error("Narration unavailable: %s", e)
            return system_message(self.messages.ai_unavailable)
        return narrator_message(text)


class TargetStatus(str, Enum):
    """Result of looking up a command's target."""

    FOUND = "found"
    EMPTY = "empty"
    NOT_FOUND = "not_found"
    GATED = "gated"
    TOO_FAR = "too_far"
    BLOCKED = "blocked"


class TargetLookup(BaseModel):
    status: TargetStatus
    entity_id: str | None = None
    kind: EntityKind | None = None
    category: MatchCategory | None = None
    message: ShowMessage | None = None

    @property
    def found(self) -> bool:
        return self.status == TargetStatus.FOUND


def kind_of(entity: Entity) -> EntityKind:
    if isinstance(entity, GameObject):
        return EntityKind.OBJECT
    if isinstance(entity, Item):
        return EntityKind.ITEM
    return EntityKind.NPC


def _find_blocked(normalized: str, state: PlayerState, game: Game) -> str | None:
    """A revealed entity in this location that is named but shut inside a container."""
    best_id, best_score = None, 0.0
    for entity in [*game.items.values(), *game.game_objects.values()]:
        if not is_revealed(state, game, entity.id) or entity.id in state.inventory:
            continue
        if not is_in_current_location(state, game, entity.id):
            continue
        ancestors = get_ancestors(state, game, entity.id)
        if all(is_container_accessible(state, game, a) for a in ancestors):
            continue
        result = matches_name(entity, normalized)
        if result.matches and result.score > best_score:
            best_id, best_score = entity.id, result.score
    return best_id


async def locate_target(
    ctx: ActionContext,
    verb: Verb,
    target_name: str,
    options: MatchOptions | None = None,
    *,
    require_reach: bool = True,
    not_found_message: str | None = None,
    blocked_message: str | None = None,
) -> TargetLookup:
    """
    Find a command's target and say why when it cannot be used.

    Empty, not found, gated, too far and blocked each produce a different
    message, so the player can tell "not here" from "not yet" from "not
    from where you're standing".
    """
    state, game = ctx.state, ctx.game
    normalized = normalize_name(target_name)
    if not normalized:
        return TargetLookup(
            status=TargetStatus.EMPTY,
            message=system_message(ctx.messages.need_target.format(verb=verb.value)),
        )

    options = options or MatchOptions()
    match: BestMatch | None = find_best_match(normalized, state, game, options)
    out_of_focus = False
    if match is None and options.require_focus and state.current_focus_id:
        match = find_best_match(
            normalized, state, game, options.model_copy(update={"require_focus": False})
        )
        out_of_focus = match is not None

    if match is not None:
        entity = ctx.entity(match.id)
        name = entity.name if entity else target_name
        reach_failure = None
        if out_of_focus:
            reach_failure = ReachFailure.TOO_FAR
        elif require_reach and match.category != MatchCategory.INVENTORY:
            reach_failure = check_reach(state, game, match.id).failure

        if reach_failure == ReachFailure.TOO_FAR:
            focus = ctx.entity(state.current_focus_id) if state.current_focus_id else None
            message = await ctx.narrate(
                "too_far",
                {
                    "verb": verb.value,
                    "target_name": name,
                    "focus_name": focus.name if focus else "spot where you stand",
                },
                fallback=get_out_of_focus_message(verb.value, name, state, game, ctx.rng),
            )
            return TargetLookup(status=TargetStatus.TOO_FAR, entity_id=match.id, message=message)
        if reach_failure == ReachFailure.CONTAINER_BLOCKED:
            template = blocked_message or ctx.messages.blocked
            return TargetLookup(
                status=TargetStatus.BLOCKED,
                entity_id=match.id,
                message=narrator_message(template.format(name=name)),
            )
        return TargetLookup(
            status=TargetStatus.FOUND,
            entity_id=match.id,
            kind=kind_of(entity) if entity else None,
            category=match.category,
        )

    blocked_id = _find_blocked(normalized, state, game)
    if blocked_id is not None:
        template = blocked_message or ctx.messages.blocked
        blocked = ctx.entity(blocked_id)
        return TargetLookup(
            status=TargetStatus.BLOCKED,
            entity_id=blocked_id,
            message=narrator_message(template.format(name=blocked.name if blocked else target_name)),
        )

    gated = check_for_gated_content(target_name, state, game)
    if gated.is_gated:
        return TargetLookup(
            status=TargetStatus.GATED,
            entity_id=gated.entity_id,
            message=narrator_message(gated.message or ctx.messages.cannot_do),
        )

    template = not_found_message or ctx.messages.not_found
    return TargetLookup(
        status=TargetStatus.NOT_FOUND,
        message=narrator_message(template.format(target=target_name, verb=verb.value)),
    )


def run_handler(
    ctx: ActionContext, entity: Entity, handler: HandlerDef
) -> tuple[list[Effect], bool]:
    """
    Evaluate a handler and build its effects.

    Returns:
        The effects and whether the success branch was taken. A handler
        missing the chosen branch degrades to its fallback line.
    """
    evaluation = evaluate_handler_outcome(handler, ctx.state, ctx.game)
    if evaluation.outcome is None:
        branch = "fail" if evaluation.is_fail else "success"
        logger.error("Handler on %s is missing its %s outcome", entity.id, branch)
        return [narrator_message(handler.fallback or ctx.messages.generic_failure)], False
    effects = build_effects_from_outcome(
        evaluation.outcome, entity.id, kind_of(entity), ctx.game, evaluation.is_fail
    )
    return effects, not evaluation.is_fail


def with_focus(
    ctx: ActionContext,
    effects: list[Effect],
    verb: Verb,
    entity: Entity,
    succeeded: bool,
) -> list[Effect]:
    """Append the focus manager's decision, if any."""
    focus = determine_next_focus(
        action=verb,
        target_id=entity.id,
        target_kind=kind_of(entity),
        action_succeeded=succeeded,
        state=ctx.state,
        game=ctx.game,
    )
    if focus is not None:
        effects.append(focus)
    return effects


def live(ctx: ActionContext, entity_id: str) -> EntityRuntimeState:
    return get_live_state(ctx.state, ctx.game, entity_id)


def locate_held(ctx: ActionContext, verb: Verb, target_name: str) -> TargetLookup:
    """
    Find a target among carried items only.

    Something that exists but has not turned up yet is reported as gated,
    not as missing from the inventory.
    """
    normalized = normalize_name(target_name)
    if not normalized:
        return TargetLookup(
            status=TargetStatus.EMPTY,
            message=system_message(ctx.messages.need_target.format(verb=verb.value)),
        )
    match = find_best_match(
        normalized,
        ctx.state,
        ctx.game,
        MatchOptions(search_inventory=True, search_visible_items=False, search_objects=False),
    )
    if match is None:
        gated = check_for_gated_content(target_name, ctx.state, ctx.game)
        if gated.is_gated:
            return TargetLookup(
                status=TargetStatus.GATED,
                entity_id=gated.entity_id,
                message=narrator_message(gated.message or ctx.messages.cannot_do),
            )
        return TargetLookup(
            status=TargetStatus.NOT_FOUND,
            message=narrator_message(ctx.messages.not_in_inventory.format(target=target_name)),
        )
    return TargetLookup(
        status=TargetStatus.FOUND,
        entity_id=match.id,
        kind=EntityKind.ITEM,
        category=MatchCategory.INVENTORY,
    )


def default_effects(
    ctx: ActionContext,
    entity: Entity,
    message: str,
    effects: list[Effect] | None = None,
    is_fail: bool = False,
) -> list[Effect]:
    """Effects for a built-in default, illustrated like an authored outcome."""
    outcome = Outcome(message=message, effects=effects or [])
    return build_effects_from_outcome(outcome, entity.id, kind_of(entity), ctx.game, is_fail)


def fail_line(entity: Entity) -> str | None:
    """The entity's own refusal line, if it has one."""
    if isinstance(entity, (GameObject, Item)):
        return entity.default_fail_message
    return None


def join_names(names: list[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]
