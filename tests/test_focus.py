"""Tests for the post-action focus policy."""

from __future__ import annotations

from src.engine.focus import FOCUS_POLICY, FocusRule, determine_next_focus, focus_target_for
from src.models import EntityKind, FocusType, Game, PlayerState, SetFocus, Verb


def decide(state: PlayerState, game: Game, verb: Verb, target_id: str, kind: EntityKind, ok=True):
    return determine_next_focus(
        action=verb,
        target_id=target_id,
        target_kind=kind,
        action_succeeded=ok,
        state=state,
        game=game,
    )


def test_every_verb_has_a_rule():
    assert set(FOCUS_POLICY) == set(Verb)


def test_every_rule_is_used():
    assert set(FOCUS_POLICY.values()) == set(FocusRule)


class TestDetermineNextFocus:
    """Tests for determine_next_focus."""

    def test_examine_focuses_object(self, state: PlayerState, game: Game):
        effect = decide(state, game, Verb.EXAMINE, "obj_painting", EntityKind.OBJECT)
        assert effect == SetFocus(focus_id="obj_painting", focus_type=FocusType.OBJECT)

    def test_failure_keeps_focus(self, state: PlayerState, game: Game):
        assert decide(state, game, Verb.EXAMINE, "obj_painting", EntityKind.OBJECT, ok=False) is None

    def test_keep_rules(self, state: PlayerState, game: Game):
        for verb in (Verb.TAKE, Verb.DROP, Verb.COMBINE, Verb.PASSWORD, Verb.GOTO):
            assert FOCUS_POLICY[verb] == FocusRule.KEEP
            assert decide(state, game, verb, "obj_painting", EntityKind.OBJECT) is None

    def test_item_focuses_its_container(self, state: PlayerState, game: Game, patch_entity):
        patch_entity(state, "item_business_card", revealed_by="obj_painting")
        effect = decide(state, game, Verb.EXAMINE, "item_business_card", EntityKind.ITEM)
        assert effect.focus_id == "obj_painting"

    def test_already_focused(self, state: PlayerState, game: Game):
        state.current_focus_id = "obj_painting"
        assert decide(state, game, Verb.MOVE, "obj_painting", EntityKind.OBJECT) is None
        assert decide(state, game, Verb.READ, "item_business_card", EntityKind.ITEM) is None

    def test_carried_items_leave_focus_alone(self, state: PlayerState, game: Game):
        assert decide(state, game, Verb.EXAMINE, "item_phone", EntityKind.ITEM) is None

    def test_talk_focuses_npcs_only(self, state: PlayerState, game: Game):
        effect = decide(state, game, Verb.TALK, "npc_barista", EntityKind.NPC)
        assert effect == SetFocus(focus_id="npc_barista", focus_type=FocusType.NPC)
        assert decide(state, game, Verb.TALK, "obj_painting", EntityKind.OBJECT) is None

    def test_use_focuses_objects_only(self, state: PlayerState, game: Game):
        assert decide(state, game, Verb.USE, "obj_wall_safe", EntityKind.OBJECT).focus_id == "obj_wall_safe"
        assert decide(state, game, Verb.USE, "item_phone", EntityKind.ITEM) is None

    def test_unfocusable_object(self, state: PlayerState, game: Game):
        """The cafe floor holds dropped things but is never a place to stand."""
        assert decide(state, game, Verb.SEARCH, "obj_cafe_floor", EntityKind.OBJECT) is None

    def test_moves_focus_between_objects(self, state: PlayerState, game: Game):
        state.current_focus_id = "obj_painting"
        effect = decide(state, game, Verb.OPEN, "obj_wall_safe", EntityKind.OBJECT)
        assert effect.focus_id == "obj_wall_safe"


def test_focus_target_for(state: PlayerState, game: Game):
    assert focus_target_for("obj_bookshelf", state, game) == "obj_bookshelf"
    assert focus_target_for("item_book_justice", state, game) == "obj_bookshelf"
    assert focus_target_for("obj_cafe_floor", state, game) is None
