"""Tests for handler resolution."""

from __future__ import annotations

import pytest

from src.engine.handlers import (
    HandlerAvailability,
    classify_handler,
    get_effective_description,
    get_effective_handler,
    get_fallback_message,
    select_item_handler,
)
from src.engine.state_manager import create_initial_state
from src.models import (
    Chapter,
    ConditionalHandler,
    Game,
    GameObject,
    HandlerDef,
    HasFlag,
    HasItem,
    Item,
    ItemHandlerDef,
    Location,
    ObjectCapabilities,
    Outcome,
    PlayerState,
    StateOverride,
    Verb,
)


def make_game() -> Game:
    """A one-room cartridge with a radio whose handlers depend on state."""
    radio = GameObject(
        id="obj_radio",
        name="Radio",
        description="An old valve radio.",
        capabilities=ObjectCapabilities(powerable=True),
        handlers={
            Verb.USE: [
                HandlerDef(
                    conditions=[HasFlag(flag="radio_fixed")],
                    success=Outcome(message="Static, then a voice."),
                ),
                HandlerDef(success=Outcome(message="Nothing but a hum.")),
            ],
            Verb.SMELL: [
                HandlerDef(
                    conditions=[HasFlag(flag="radio_burning")],
                    success=Outcome(message="Hot dust and ozone."),
                ),
            ],
        },
        state_map={
            "smashed": StateOverride(
                description="Broken glass and loose wires.",
                handlers={Verb.USE: HandlerDef(success=Outcome(message="It's beyond repair."))},
            )
        },
        item_handlers={
            Verb.USE: [
                ItemHandlerDef(
                    item_id="item_fuse",
                    conditions=[HasItem(item_id="item_fuse")],
                    success=Outcome(message="The fuse clicks home."),
                ),
                ItemHandlerDef(
                    item_id="item_fuse",
                    success=Outcome(message="Second entry."),
                    fail=Outcome(message="You need to be holding the fuse."),
                ),
            ]
        },
        fallback_messages={"not_movable": "The radio is bolted to the shelf."},
    )
    fuse = Item(id="item_fuse", name="Fuse")
    room = Location(id="loc_room", name="Room", objects=["obj_radio"], items=["item_fuse"])
    chapter = Chapter(id="c1", title="Test", start_location_id="loc_room")
    return Game(
        id="test",
        title="Test",
        start_chapter_id="c1",
        locations=[room],
        game_objects=[radio],
        items=[fuse],
        chapters=[chapter],
    )


@pytest.fixture
def radio_game() -> Game:
    return make_game()


@pytest.fixture
def radio_state(radio_game: Game) -> PlayerState:
    return create_initial_state(radio_game)


class TestEffectiveHandler:
    """Tests for get_effective_handler."""

    def test_authored_lists_become_chains(self, radio_game: Game):
        assert isinstance(radio_game.game_objects["obj_radio"].handlers[Verb.USE], ConditionalHandler)

    def test_falls_through_to_unconditional_branch(self, radio_game: Game, radio_state: PlayerState):
        radio = radio_game.game_objects["obj_radio"]
        handler = get_effective_handler(radio, Verb.USE, radio_state, radio_game)
        assert handler.success.message == "Nothing but a hum."

    def test_first_satisfied_branch_wins(self, radio_game: Game, radio_state: PlayerState):
        radio_state.flags["radio_fixed"] = True
        radio = radio_game.game_objects["obj_radio"]
        handler = get_effective_handler(radio, Verb.USE, radio_state, radio_game)
        assert handler.success.message == "Static, then a voice."

    def test_state_map_override(self, radio_game: Game, radio_state: PlayerState, patch_entity):
        patch_entity(radio_state, "obj_radio", current_state_id="smashed")
        radio = radio_game.game_objects["obj_radio"]
        handler = get_effective_handler(radio, Verb.USE, radio_state, radio_game)
        assert handler.success.message == "It's beyond repair."

    def test_no_satisfied_branch(self, radio_game: Game, radio_state: PlayerState):
        radio = radio_game.game_objects["obj_radio"]
        assert get_effective_handler(radio, Verb.SMELL, radio_state, radio_game) is None

    def test_npcs_have_no_handlers(self, game: Game, state: PlayerState):
        barista = game.npcs["npc_barista"]
        assert get_effective_handler(barista, Verb.TALK, state, game) is None


class TestClassifyHandler:
    """Tests for classify_handler."""

    def test_handler_wins_over_capability(self, radio_game: Game, radio_state: PlayerState):
        """The radio is not usable, but its USE handler still applies."""
        radio = radio_game.game_objects["obj_radio"]
        resolution = classify_handler(radio, Verb.USE, radio_state, radio_game)
        assert resolution.availability == HandlerAvailability.HANDLED
        assert resolution.handler is not None

    def test_capable_without_handler(self, radio_game: Game, radio_state: PlayerState):
        radio = radio_game.game_objects["obj_radio"]
        resolution = classify_handler(radio, Verb.EXAMINE, radio_state, radio_game)
        assert resolution.availability == HandlerAvailability.CAPABLE_NO_HANDLER

    def test_not_capable(self, radio_game: Game, radio_state: PlayerState):
        radio = radio_game.game_objects["obj_radio"]
        resolution = classify_handler(radio, Verb.TAKE, radio_state, radio_game)
        assert resolution.availability == HandlerAvailability.NOT_CAPABLE

    def test_unsatisfied_chain_falls_back_to_capability(
        self, radio_game: Game, radio_state: PlayerState
    ):
        radio = radio_game.game_objects["obj_radio"]
        resolution = classify_handler(radio, Verb.SMELL, radio_state, radio_game)
        assert resolution.availability == HandlerAvailability.CAPABLE_NO_HANDLER


class TestItemHandlers:
    """Tests for select_item_handler."""

    def test_first_satisfied_entry(self, radio_game: Game, radio_state: PlayerState, carry):
        carry(radio_state, "item_fuse")
        entries = radio_game.game_objects["obj_radio"].item_handlers[Verb.USE]
        entry = select_item_handler(entries, "item_fuse", radio_state, radio_game)
        assert entry.success.message == "The fuse clicks home."

    def test_skips_unsatisfied_entry(self, radio_game: Game, radio_state: PlayerState):
        entries = radio_game.game_objects["obj_radio"].item_handlers[Verb.USE]
        entry = select_item_handler(entries, "item_fuse", radio_state, radio_game)
        assert entry.success.message == "Second entry."

    def test_unknown_item(self, radio_game: Game, radio_state: PlayerState):
        entries = radio_game.game_objects["obj_radio"].item_handlers[Verb.USE]
        assert select_item_handler(entries, "item_wrench", radio_state, radio_game) is None

    def test_first_entry_when_none_hold(self, radio_game: Game, radio_state: PlayerState):
        """Nothing holds: the first entry comes back so its fail branch can run."""
        entries = [
            ItemHandlerDef(item_id="item_fuse", conditions=[HasFlag(flag="a")]),
            ItemHandlerDef(item_id="item_fuse", conditions=[HasFlag(flag="b")]),
        ]
        assert select_item_handler(entries, "item_fuse", radio_state, radio_game) is entries[0]


class TestDescriptionsAndFallbacks:
    def test_description_override(self, radio_game: Game, radio_state: PlayerState, patch_entity):
        radio = radio_game.game_objects["obj_radio"]
        assert get_effective_description(radio, radio_state, radio_game) == "An old valve radio."
        patch_entity(radio_state, "obj_radio", current_state_id="smashed")
        assert (
            get_effective_description(radio, radio_state, radio_game)
            == "Broken glass and loose wires."
        )

    def test_fallback_message_by_key(self, radio_game: Game):
        radio = radio_game.game_objects["obj_radio"]
        assert get_fallback_message(radio, "not_movable", radio_game) == "The radio is bolted to the shelf."

    def test_fallback_default_then_stock(self, game: Game):
        notebook = game.game_objects["obj_brown_notebook"]
        chalkboard = game.game_objects["obj_chalkboard_menu"]
        assert get_fallback_message(notebook, "anything", game) == (
            "That's not going to work. It's a key piece of evidence."
        )
        assert get_fallback_message(chalkboard, "anything", game) == "You cannot do that."
