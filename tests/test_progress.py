"""Tests for chapter progress, hints and completion."""

from __future__ import annotations

import pytest

from src.content import CHAPTER_CAFE, CHAPTER_SITE
from src.engine.progress import (
    NO_HINT,
    get_completion_effects,
    get_current_step,
    get_hint,
    is_chapter_complete,
    is_step_complete,
)
from src.models import SYSTEM, Chapter, CompletionRequirements, Game, PlayerState, SetFlag

CAFE_FLAGS = ["has_talked_to_barista", "has_unlocked_notebook", "has_read_article"]


@pytest.fixture
def cafe(game: Game) -> Chapter:
    return game.chapters[CHAPTER_CAFE]


def finish(state: PlayerState, flags=CAFE_FLAGS) -> PlayerState:
    for flag in flags:
        state.flags[flag] = True
    return state


class TestSteps:
    def test_first_step(self, cafe: Chapter, state: PlayerState):
        assert get_current_step(cafe, state).id == "talk_barista"

    def test_steps_advance_in_order(self, cafe: Chapter, state: PlayerState):
        state.flags["has_talked_to_barista"] = True
        assert get_current_step(cafe, state).id == "unlock_notebook"

    def test_later_flags_do_not_skip_earlier_steps(self, cafe: Chapter, state: PlayerState):
        state.flags["has_read_article"] = True
        assert get_current_step(cafe, state).id == "talk_barista"

    def test_all_done(self, cafe: Chapter, state: PlayerState):
        assert get_current_step(cafe, finish(state)) is None

    def test_step_without_flags_never_completes(self, cafe: Chapter, state: PlayerState):
        step = cafe.happy_path[0].model_copy(update={"completion_flags": []})
        assert not is_step_complete(step, state)


class TestHints:
    """Tests for get_hint."""

    def test_base_hint(self, cafe: Chapter, state: PlayerState, game: Game):
        assert get_hint(cafe, state, game).startswith("The barista might know something")

    def test_detailed_hint(self, cafe: Chapter, state: PlayerState, game: Game):
        state.flags["has_talked_to_barista"] = True
        assert get_hint(cafe, state, game, detailed=True).endswith("justice.")

    def test_detailed_falls_back_to_base(self, cafe: Chapter, state: PlayerState, game: Game):
        assert get_hint(cafe, state, game, detailed=True) == get_hint(cafe, state, game)

    def test_conditional_hint_wins(self, cafe: Chapter, state: PlayerState, game: Game):
        finish(state, ["has_talked_to_barista", "examined_obj_brown_notebook"])
        hint = get_hint(cafe, state, game, detailed=True)
        assert hint == "You've looked the notebook over. What word keeps turning up in this cafe?"

    def test_conditional_hint_on_items(self, site_state: PlayerState, game: Game, carry):
        site = game.chapters[CHAPTER_SITE]
        assert get_hint(site, site_state, game).startswith("Those zip ties")
        carry(site_state, "item_box_cutter")
        assert get_hint(site, site_state, game) == "You've got a box cutter. Try it on the zip ties."

    def test_no_hint_left(self, cafe: Chapter, state: PlayerState, game: Game):
        assert get_hint(cafe, finish(state), game) == NO_HINT


class TestCompletion:
    """Tests for chapter completion."""

    def test_incomplete(self, cafe: Chapter, state: PlayerState):
        assert not is_chapter_complete(cafe, state)
        assert get_completion_effects(cafe, state) == []

    def test_completion_effects(self, cafe: Chapter, state: PlayerState):
        effects = get_completion_effects(cafe, finish(state))
        assert effects[0] == SetFlag(flag="chapter_ch1-the-cafe_completed")
        assert effects[1].speaker == SYSTEM
        assert effects[1].content == cafe.post_chapter_message
        assert effects[2].content == "Another case is waiting for you in the next chapter."

    def test_fires_once(self, cafe: Chapter, state: PlayerState):
        finish(state)
        state.flags["chapter_ch1-the-cafe_completed"] = True
        assert get_completion_effects(cafe, state) == []

    def test_last_chapter_has_no_next_message(self, game: Game, site_state: PlayerState):
        site = game.chapters[CHAPTER_SITE]
        effects = get_completion_effects(site, finish(site_state, ["cut_zip_ties", "has_hard_hat"]))
        assert len(effects) == 2
        assert effects[1].content == "Congratulations! You've completed Harbor Street."

    def test_minimum_steps(self, cafe: Chapter, state: PlayerState):
        chapter = cafe.model_copy(
            update={"completion": CompletionRequirements(minimum_steps_required=2)}
        )
        finish(state, ["has_talked_to_barista"])
        assert not is_chapter_complete(chapter, state)
        finish(state, ["has_read_article"])
        assert is_chapter_complete(chapter, state)

    def test_additional_flags(self, cafe: Chapter, state: PlayerState):
        chapter = cafe.model_copy(
            update={"completion": CompletionRequirements(additional_flags=["viewed_sd_card"])}
        )
        finish(state)
        assert not is_chapter_complete(chapter, state)
        state.flags["viewed_sd_card"] = True
        assert is_chapter_complete(chapter, state)
