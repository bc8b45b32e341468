"""
Shared fixtures for the noir engine tests.

Every fixture builds from the demo cartridge. Narration runs without an LLM,
so narrated lines are the static fallbacks.
"""

from __future__ import annotations

import random
from collections.abc import Callable

import pytest

from src.actions.common import ActionContext
from src.content import CHAPTER_SITE, create_noir_cartridge
from src.engine.state_manager import create_initial_state
from src.models import Game, PlayerState
from src.services.narration import NarrationService


@pytest.fixture
def game() -> Game:
    return create_noir_cartridge()


@pytest.fixture
def state(game: Game) -> PlayerState:
    """Start of the cafe chapter."""
    return create_initial_state(game)


@pytest.fixture
def site_state(game: Game) -> PlayerState:
    """Start of the construction site chapter (a sprawling location)."""
    return create_initial_state(game, CHAPTER_SITE)


@pytest.fixture
def narrator() -> NarrationService:
    return NarrationService(llm=None, retry_delay=0)


@pytest.fixture
def make_ctx(game: Game, narrator: NarrationService) -> Callable[..., ActionContext]:
    """Factory for an ActionContext over a given state, with a seeded rng."""

    def _make(state: PlayerState, seed: int = 7) -> ActionContext:
        return ActionContext(state=state, game=game, narrator=narrator, rng=random.Random(seed))

    return _make


def update_entity(state: PlayerState, entity_id: str, **changes: object) -> PlayerState:
    """Patch one entity's runtime state in place and return the state."""
    state.world[entity_id] = state.entity(entity_id).model_copy(update=changes)
    return state


def give_item(state: PlayerState, item_id: str) -> PlayerState:
    """Put an item straight into the inventory."""
    if item_id not in state.inventory:
        state.inventory.append(item_id)
    return update_entity(state, item_id, parent_id=None, taken=True)


@pytest.fixture
def patch_entity() -> Callable[..., PlayerState]:
    return update_entity


@pytest.fixture
def carry() -> Callable[[PlayerState, str], PlayerState]:
    return give_item


@pytest.fixture
def unlocked_notebook(state: PlayerState) -> PlayerState:
    """Cafe state with the notebook open and its contents revealed."""
    update_entity(state, "obj_brown_notebook", is_locked=False, is_open=True)
    update_entity(state, "item_sd_card", revealed_by="obj_brown_notebook")
    update_entity(state, "item_newspaper_article", revealed_by="obj_brown_notebook")
    return state

