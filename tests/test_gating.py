"""Tests for gated content detection."""

from __future__ import annotations

from src.engine.gating import check_for_gated_content
from src.models import Game, PlayerState


class TestGatedContent:
    """Tests for check_for_gated_content."""

    def test_hidden_item_uses_stock_message(self, state: PlayerState, game: Game):
        result = check_for_gated_content("sd card", state, game)
        assert result.is_gated
        assert result.entity_id == "item_sd_card"
        assert result.message == (
            "You can't access the SD Card right now. You might need to do something "
            "else first, or wait for the right moment."
        )

    def test_custom_gated_message(self, state: PlayerState, game: Game):
        result = check_for_gated_content("the business card", state, game)
        assert result.entity_id == "item_business_card"
        assert result.message == "If there's a business card around here, it's well hidden."

    def test_verb_words_are_ignored(self, state: PlayerState, game: Game):
        result = check_for_gated_content("take the hidden note", state, game)
        assert result.entity_id == "item_hidden_note"

    def test_plural(self, state: PlayerState, game: Game):
        assert check_for_gated_content("hidden notes", state, game).entity_id == "item_hidden_note"

    def test_revealed_is_not_gated(self, unlocked_notebook: PlayerState, game: Game):
        assert not check_for_gated_content("newspaper article", unlocked_notebook, game).is_gated

    def test_unknown_is_not_gated(self, state: PlayerState, game: Game):
        result = check_for_gated_content("unicorn", state, game)
        assert not result.is_gated
        assert result.message is None

    def test_only_verb_words(self, state: PlayerState, game: Game):
        assert not check_for_gated_content("look at", state, game).is_gated
