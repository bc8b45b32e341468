"""Tests for condition evaluation and action validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.engine.validator import (
    evaluate_conditions,
    get_affordances,
    is_action_applicable,
    validate,
)
from src.models import (
    Game,
    HasFlag,
    HasItem,
    LocationIs,
    NoFlag,
    PlayerState,
    StateMatch,
    Verb,
)


class TestConditions:
    """Tests for evaluate_conditions."""

    def test_empty_list_holds(self, state: PlayerState, game: Game):
        assert evaluate_conditions([], state, game)
        assert evaluate_conditions(None, state, game)

    def test_flags(self, state: PlayerState, game: Game):
        assert not evaluate_conditions([HasFlag(flag="has_read_article")], state, game)
        assert evaluate_conditions([NoFlag(flag="has_read_article")], state, game)
        state.flags["has_read_article"] = True
        assert evaluate_conditions([HasFlag(flag="has_read_article")], state, game)

    def test_state_match(self, state: PlayerState, game: Game, patch_entity):
        condition = StateMatch(entity_id="obj_brown_notebook", key="is_locked", equals=True)
        assert evaluate_conditions([condition], state, game)
        patch_entity(state, "obj_brown_notebook", is_locked=False)
        assert not evaluate_conditions([condition], state, game)

    def test_has_item_and_location(self, state: PlayerState, game: Game):
        assert evaluate_conditions(
            [HasItem(item_id="item_phone"), LocationIs(location_id="loc_cafe_interior")],
            state,
            game,
        )
        assert not evaluate_conditions([HasItem(item_id="item_box_cutter")], state, game)

    def test_all_must_hold(self, state: PlayerState, game: Game):
        conditions = [HasItem(item_id="item_phone"), HasFlag(flag="never_set")]
        assert not evaluate_conditions(conditions, state, game)

    def test_state_match_rejects_unknown_key(self):
        with pytest.raises(ValidationError):
            StateMatch(entity_id="obj_brown_notebook", key="is_haunted", equals=True)


class TestValidate:
    """Tests for validate."""

    def test_unlock_is_valid_only_while_locked(self, state: PlayerState, game: Game, patch_entity):
        assert is_action_applicable(Verb.UNLOCK, "obj_brown_notebook", state, game)
        patch_entity(state, "obj_brown_notebook", is_locked=False)
        result = validate(Verb.UNLOCK, "obj_brown_notebook", state, game)
        assert not result.valid
        assert result.reason == "It is not locked."

    def test_capability(self, state: PlayerState, game: Game):
        result = validate(Verb.TAKE, "obj_brown_notebook", state, game)
        assert not result.valid
        assert result.reason == "This entity cannot be taken."

    def test_open_locked(self, state: PlayerState, game: Game):
        assert validate(Verb.OPEN, "obj_brown_notebook", state, game).reason == "It's locked."

    def test_already_open(self, unlocked_notebook: PlayerState, game: Game):
        result = validate(Verb.OPEN, "obj_brown_notebook", unlocked_notebook, game)
        assert result.reason == "It's already open."

    def test_hidden_entity(self, state: PlayerState, game: Game):
        result = validate(Verb.EXAMINE, "item_sd_card", state, game)
        assert result.reason == "You can't see that."

    def test_unknown_entity(self, state: PlayerState, game: Game):
        result = validate(Verb.EXAMINE, "obj_does_not_exist", state, game)
        assert not result.valid
        assert result.reason == "That doesn't seem to exist."

    def test_npc_verbs(self, state: PlayerState, game: Game):
        assert validate(Verb.TALK, "npc_barista", state, game).valid
        assert not validate(Verb.TAKE, "npc_barista", state, game).valid

    def test_objects_cannot_be_talked_to(self, state: PlayerState, game: Game):
        assert not is_action_applicable(Verb.TALK, "obj_painting", state, game)

    def test_taken_item(self, state: PlayerState, game: Game):
        result = validate(Verb.TAKE, "item_phone", state, game)
        assert result.reason == "You already have it."


class TestAffordances:
    """Tests for get_affordances."""

    def test_chalkboard(self, state: PlayerState, game: Game):
        assert get_affordances("obj_chalkboard_menu", state, game) == [
            Verb.EXAMINE,
            Verb.MOVE,
            Verb.READ,
        ]

    def test_searchable_object(self, state: PlayerState, game: Game):
        assert Verb.SEARCH in get_affordances("obj_bookshelf", state, game)
        assert Verb.SEARCH not in get_affordances("obj_painting", state, game)

    def test_locked_notebook(self, state: PlayerState, game: Game):
        affordances = get_affordances("obj_brown_notebook", state, game)
        assert Verb.UNLOCK in affordances
        assert Verb.PASSWORD in affordances
        assert Verb.OPEN not in affordances

    def test_npc(self, state: PlayerState, game: Game):
        assert get_affordances("npc_barista", state, game) == [Verb.EXAMINE, Verb.TALK]

    def test_unknown(self, state: PlayerState, game: Game):
        assert get_affordances("obj_nowhere", state, game) == []

    def test_validation_carries_affordances(self, state: PlayerState, game: Game):
        result = validate(Verb.TAKE, "obj_chalkboard_menu", state, game)
        assert Verb.READ in result.affordances
