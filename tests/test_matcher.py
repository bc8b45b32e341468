"""Tests for name normalization and entity matching."""

from __future__ import annotations

import pytest

from src.engine.matcher import (
    FOCUS_BONUS,
    NEARBY_BONUS,
    SCORE_ALT_EXACT,
    SCORE_EXACT_NAME,
    SCORE_ID_PARTIAL,
    SCORE_RAW_ID,
    MatchCategory,
    MatchOptions,
    find_best_match,
    find_npc,
    matches_name,
    normalize_name,
)
from src.models import Game, PlayerState


class TestNormalizeName:
    """Tests for normalize_name."""

    def test_lowercases_and_collapses_whitespace(self):
        assert normalize_name("  Brown    NOTEBOOK ") == "brown notebook"

    def test_strips_leading_articles(self):
        assert normalize_name("the notebook") == "notebook"
        assert normalize_name("a an the safe") == "safe"

    def test_keeps_lone_article(self):
        """A bare article is a name in its own right."""
        assert normalize_name("the") == "the"

    def test_strips_quotes(self):
        assert normalize_name('"justice"') == "justice"

    def test_empty(self):
        assert normalize_name(None) == ""
        assert normalize_name("   ") == ""


class TestMatchesName:
    """Tests for scoring one phrase against one entity."""

    @pytest.fixture
    def notebook(self, game: Game):
        return game.game_objects["obj_brown_notebook"]

    def test_raw_id_scores_highest(self, notebook):
        assert matches_name(notebook, "obj_brown_notebook").score == SCORE_RAW_ID

    def test_exact_name(self, notebook):
        assert matches_name(notebook, "brown notebook").score == SCORE_EXACT_NAME

    def test_name_substring(self, notebook):
        result = matches_name(notebook, "notebook")
        assert result.matches
        assert SCORE_ALT_EXACT < result.score < SCORE_EXACT_NAME

    def test_alternate_name(self, notebook):
        result = matches_name(notebook, "leather notebook")
        assert result.matches
        assert result.score == SCORE_ALT_EXACT

    def test_no_match(self, notebook):
        assert not matches_name(notebook, "saxophone").matches

    def test_short_fragment_only_matches_bare_id(self, notebook):
        """Three letters are too few for a name match but still hit the id."""
        assert matches_name(notebook, "not").score == SCORE_ID_PARTIAL
        assert not matches_name(notebook, "ok").matches

    def test_shorter_name_scores_higher_on_substring(self, game: Game):
        sd_card = game.items["item_sd_card"]
        business_card = game.items["item_business_card"]
        assert matches_name(sd_card, "card").score > matches_name(business_card, "card").score


class TestFindBestMatch:
    """Tests for find_best_match."""

    def test_finds_visible_object(self, state: PlayerState, game: Game):
        match = find_best_match("notebook", state, game)
        assert match is not None
        assert match.id == "obj_brown_notebook"
        assert match.category == MatchCategory.OBJECT
        assert match.in_current_location

    def test_inventory_item(self, state: PlayerState, game: Game):
        match = find_best_match("phone", state, game)
        assert match.id == "item_phone"
        assert match.category == MatchCategory.INVENTORY
        assert match.score >= NEARBY_BONUS

    def test_hidden_items_are_not_candidates(self, state: PlayerState, game: Game):
        assert find_best_match("sd card", state, game) is None

    def test_unknown_name(self, state: PlayerState, game: Game):
        assert find_best_match("unicorn", state, game) is None
        assert find_best_match("", state, game) is None

    def test_npcs_are_never_matched(self, state: PlayerState, game: Game):
        assert find_best_match("barista", state, game) is None

    def test_better_name_wins_without_focus(
        self, unlocked_notebook: PlayerState, game: Game, patch_entity
    ):
        patch_entity(unlocked_notebook, "item_business_card", revealed_by="obj_painting")
        match = find_best_match("card", unlocked_notebook, game)
        assert match.id == "item_sd_card"

    def test_focus_bonus_wins(self, unlocked_notebook: PlayerState, game: Game, patch_entity):
        """The thing the player is standing at beats a better name elsewhere."""
        patch_entity(unlocked_notebook, "item_business_card", revealed_by="obj_painting")
        unlocked_notebook.current_focus_id = "obj_painting"
        match = find_best_match("card", unlocked_notebook, game)
        assert match.id == "item_business_card"
        assert match.score > FOCUS_BONUS

    def test_require_focus_limits_candidates(
        self, unlocked_notebook: PlayerState, game: Game
    ):
        unlocked_notebook.current_focus_id = "obj_painting"
        options = MatchOptions(search_inventory=False, require_focus=True)
        assert find_best_match("notebook", unlocked_notebook, game, options) is None
        assert find_best_match("painting", unlocked_notebook, game, options).id == "obj_painting"

    def test_search_scope(self, state: PlayerState, game: Game):
        only_held = MatchOptions(search_visible_items=False, search_objects=False)
        assert find_best_match("notebook", state, game, only_held) is None
        assert find_best_match("phone", state, game, only_held).id == "item_phone"


class TestFindNpc:
    """Tests for find_npc."""

    def test_by_name(self, state: PlayerState, game: Game):
        assert find_npc("the barista", state, game) == "npc_barista"

    def test_by_alternate_name(self, state: PlayerState, game: Game):
        assert find_npc("brenda", state, game) == "npc_manager"

    def test_only_in_current_location(self, state: PlayerState, game: Game):
        assert find_npc("watchman", state, game) is None

    def test_site_npc(self, site_state: PlayerState, game: Game):
        assert find_npc("watchman", site_state, game) == "npc_watchman"
