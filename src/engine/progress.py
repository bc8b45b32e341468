"""
Chapter progress for the noir engine.

The happy path is an ordered list of steps, each complete once all its
completion flags are set. Hints come from the first incomplete step.
"""

from __future__ import annotations

import logging

from src.engine.validator import evaluate_conditions
from src.models.cartridge import Chapter, Game, HappyPathStep
from src.models.common import SYSTEM
from src.models.effects import Effect, SetFlag, ShowMessage
from src.models.state import PlayerState

logger = logging.getLogger(__name__)

NO_HINT = "You've done everything you need to here. Trust your instincts."


def completion_flag(chapter: Chapter) -> str:
    return f"chapter_{chapter.id}_completed"


def is_step_complete(step: HappyPathStep, state: PlayerState) -> bool:
    """A step with no completion flags is never complete on its own."""
    if not step.completion_flags:
        return False
    return all(state.has_flag(flag) for flag in step.completion_flags)


def get_current_step(chapter: Chapter, state: PlayerState) -> HappyPathStep | None:
    """First step, by order, that is not complete yet."""
    for step in sorted(chapter.happy_path, key=lambda s: s.order):
        if not is_step_complete(step, state):
            return step
    return None


def get_hint(chapter: Chapter, state: PlayerState, game: Game, detailed: bool = False) -> str:
    """
    Hint for the current step.

    A conditional hint whose conditions hold wins; otherwise the detailed
    hint when asked for and present, then the base hint.
    """
    step = get_current_step(chapter, state)
    if step is None:
        return NO_HINT
    for conditional in step.conditional_hints:
        if evaluate_conditions(conditional.conditions, state, game):
            return conditional.hint
    if detailed and step.detailed_hint:
        return step.detailed_hint
    return step.base_hint or step.description


def is_chapter_complete(chapter: Chapter, state: PlayerState) -> bool:
    requirements = chapter.completion
    done = sum(1 for step in chapter.happy_path if is_step_complete(step, state))
    if requirements.minimum_steps_required is not None:
        steps_ok = done >= requirements.minimum_steps_required
    elif requirements.require_all_steps:
        steps_ok = done == len(chapter.happy_path)
    else:
        steps_ok = True
    return steps_ok and all(state.has_flag(flag) for flag in requirements.additional_flags)


def get_completion_effects(chapter: Chapter, state: PlayerState) -> list[Effect]:
    """
    Effects that close out a finished chapter.

    Empty unless the chapter is complete and not already marked so; the
    completion flag makes this fire once.
    """
    flag = completion_flag(chapter)
    if state.has_flag(flag) or not is_chapter_complete(chapter, state):
        return []

    logger.info("Chapter %s completed", chapter.id)
    message = chapter.post_chapter_message or (
        f"Congratulations! You've completed {chapter.title}."
    )
    effects: list[Effect] = [SetFlag(flag=flag), ShowMessage(speaker=SYSTEM, content=message)]
    if chapter.next_chapter_id:
        effects.append(
            ShowMessage(speaker=SYSTEM, content="Another case is waiting for you in the next chapter.")
        )
    return effects
