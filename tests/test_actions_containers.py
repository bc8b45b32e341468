"""Tests for the container verbs: open, close, unlock, break, search and password."""

from __future__ import annotations

import pytest

from src.actions.containers import (
    clean_phrase,
    handle_break,
    handle_close,
    handle_open,
    handle_password,
    handle_search,
    handle_unlock,
)
from src.models import (
    FocusType,
    Game,
    MessageType,
    PlayerState,
    RevealObject,
    SetEntityState,
    SetFlag,
    SetFocus,
    ShowMessage,
)
from src.models.runtime import EntityRuntimeState

# =============================================================================
# Open / Close
# =============================================================================


class TestOpen:
    """Tests for handle_open."""

    @pytest.mark.asyncio
    async def test_locked(self, state: PlayerState, make_ctx):
        effects = await handle_open(make_ctx(state), "notebook")
        assert [e.content for e in effects] == ["The Brown Notebook is locked."]

    @pytest.mark.asyncio
    async def test_open_reveals_contents(self, state: PlayerState, make_ctx, patch_entity):
        patch_entity(state, "obj_brown_notebook", is_locked=False)
        effects = await handle_open(make_ctx(state), "notebook")
        assert effects[0] == SetEntityState(
            entity_id="obj_brown_notebook", patch=EntityRuntimeState(is_open=True)
        )
        assert effects[1] == RevealObject(entity_id="item_sd_card", revealed_by="obj_brown_notebook")
        assert effects[2] == RevealObject(
            entity_id="item_newspaper_article", revealed_by="obj_brown_notebook"
        )
        assert effects[3].content == (
            "You open the Brown Notebook. Inside you find SD Card and Newspaper Article."
        )
        assert effects[3].image_id == "obj_brown_notebook"
        assert effects[4] == SetFocus(focus_id="obj_brown_notebook", focus_type=FocusType.OBJECT)

    @pytest.mark.asyncio
    async def test_already_open(self, unlocked_notebook: PlayerState, make_ctx):
        effects = await handle_open(make_ctx(unlocked_notebook), "notebook")
        assert effects[0].content == "The Brown Notebook is already open."

    @pytest.mark.asyncio
    async def test_not_openable_with_refusal_line(self, state: PlayerState, make_ctx):
        effects = await handle_open(make_ctx(state), "chalkboard")
        assert effects[0].content == "The chalkboard is heavier than it looks and wobbles dangerously."

    @pytest.mark.asyncio
    async def test_not_openable(self, state: PlayerState, make_ctx):
        effects = await handle_open(make_ctx(state), "painting")
        assert effects[0].content == "The Painting won't open."


class TestClose:
    @pytest.mark.asyncio
    async def test_close(self, unlocked_notebook: PlayerState, make_ctx):
        effects = await handle_close(make_ctx(unlocked_notebook), "notebook")
        assert effects[0] == SetEntityState(
            entity_id="obj_brown_notebook", patch=EntityRuntimeState(is_open=False)
        )
        assert effects[1].content == "You close the Brown Notebook."
        assert isinstance(effects[2], SetFocus)

    @pytest.mark.asyncio
    async def test_already_closed(self, state: PlayerState, make_ctx):
        effects = await handle_close(make_ctx(state), "notebook")
        assert effects[0].content == "The Brown Notebook is already closed."

    @pytest.mark.asyncio
    async def test_not_closable(self, state: PlayerState, make_ctx):
        effects = await handle_close(make_ctx(state), "painting")
        assert effects[0].content == "You can't close the Painting."


# =============================================================================
# Unlock / Break
# =============================================================================


class TestUnlock:
    """Tests for handle_unlock."""

    @pytest.mark.asyncio
    async def test_needs_password(self, state: PlayerState, make_ctx):
        effects = await handle_unlock(make_ctx(state), "notebook")
        assert effects[0].content == "The Brown Notebook needs a password."

    @pytest.mark.asyncio
    async def test_already_unlocked(self, unlocked_notebook: PlayerState, make_ctx):
        effects = await handle_unlock(make_ctx(unlocked_notebook), "notebook")
        assert effects[0].content == "It is not locked."

    @pytest.mark.asyncio
    async def test_not_lockable(self, state: PlayerState, make_ctx):
        effects = await handle_unlock(make_ctx(state), "painting")
        assert effects[0].content == "This entity cannot be unlocked."

    @pytest.mark.asyncio
    async def test_key_that_does_not_fit(self, state: PlayerState, make_ctx):
        effects = await handle_unlock(make_ctx(state), "notebook", "phone")
        assert effects[0].content == "The Phone doesn't fit the Brown Notebook."

    @pytest.mark.asyncio
    async def test_key_not_carried(self, state: PlayerState, make_ctx):
        effects = await handle_unlock(make_ctx(state), "notebook", "key")
        assert effects[0].content == 'You don\'t have "key" in your inventory.'


class TestBreak:
    """Tests for handle_break."""

    @pytest.mark.asyncio
    async def test_break_with_tool(self, site_state: PlayerState, make_ctx, carry):
        carry(site_state, "item_box_cutter")
        site_state.current_focus_id = "obj_scaffolding_zip_ties"
        effects = await handle_break(make_ctx(site_state), "zip ties", "box cutter")
        assert effects[0] == SetEntityState(
            entity_id="obj_scaffolding_zip_ties", patch=EntityRuntimeState(is_broken=True)
        )
        assert effects[1] == SetFlag(flag="cut_zip_ties")
        assert len(effects) == 3

    @pytest.mark.asyncio
    async def test_breakable_needs_tool(self, site_state: PlayerState, make_ctx):
        site_state.current_focus_id = "obj_scaffolding_zip_ties"
        effects = await handle_break(make_ctx(site_state), "zip ties")
        assert effects[0].content == "You'd need something heavy to break the Zip Ties."

    @pytest.mark.asyncio
    async def test_already_broken(self, site_state: PlayerState, make_ctx, patch_entity):
        patch_entity(site_state, "obj_scaffolding_zip_ties", is_broken=True)
        site_state.current_focus_id = "obj_scaffolding_zip_ties"
        effects = await handle_break(make_ctx(site_state), "zip ties")
        assert effects[0].content == "The Zip Ties is already broken."

    @pytest.mark.asyncio
    async def test_unbreakable(self, state: PlayerState, make_ctx):
        effects = await handle_break(make_ctx(state), "notebook")
        assert effects[0].content == "The Brown Notebook can't be broken. Try a different approach."


# =============================================================================
# Search
# =============================================================================


class TestSearch:
    """Tests for handle_search."""

    @pytest.mark.asyncio
    async def test_reveals_hidden_children(self, state: PlayerState, make_ctx):
        effects = await handle_search(make_ctx(state), "bookshelf")
        assert effects[0] == RevealObject(entity_id="item_book_justice", revealed_by="obj_bookshelf")
        assert effects[1].content == "You search the Bookshelf and find Justice for My Love."
        assert effects[1].message_type == MessageType.TEXT
        assert effects[2] == SetFocus(focus_id="obj_bookshelf", focus_type=FocusType.OBJECT)

    @pytest.mark.asyncio
    async def test_nothing_left(self, state: PlayerState, make_ctx, patch_entity):
        patch_entity(state, "item_book_justice", revealed_by="obj_bookshelf")
        effects = await handle_search(make_ctx(state), "bookshelf")
        assert effects[0].content == "You search the Bookshelf but find nothing of interest."

    @pytest.mark.asyncio
    async def test_shut_container(self, state: PlayerState, make_ctx):
        effects = await handle_search(make_ctx(state), "notebook")
        assert effects == [
            ShowMessage(content="You can't search inside the Brown Notebook while it's shut.")
        ]

    @pytest.mark.asyncio
    async def test_not_searchable(self, state: PlayerState, make_ctx):
        effects = await handle_search(make_ctx(state), "painting")
        assert effects == [ShowMessage(content="You cannot do that.")]

    @pytest.mark.asyncio
    async def test_not_searchable_uses_refusal_line(self, state: PlayerState, make_ctx):
        effects = await handle_search(make_ctx(state), "chalkboard")
        assert effects[0].content == "The chalkboard is heavier than it looks and wobbles dangerously."


# =============================================================================
# Password
# =============================================================================


class TestCleanPhrase:
    @pytest.fixture
    def notebook(self, game: Game):
        return game.game_objects["obj_brown_notebook"]

    def test_plain(self, notebook):
        assert clean_phrase("justice", notebook) == "justice"

    def test_filler_is_removed(self, notebook):
        assert clean_phrase("the password is justice", notebook) == "justice"

    def test_object_name_is_removed(self, notebook):
        assert clean_phrase("justice into the notebook", notebook) == "justice"

    def test_multi_word_phrase(self, notebook):
        assert clean_phrase("say Justice For All", notebook) == "justice for all"


class TestPassword:
    """Tests for handle_password."""

    @pytest.mark.asyncio
    async def test_requires_focus(self, state: PlayerState, make_ctx):
        effects = await handle_password(make_ctx(state), "justice")
        assert effects[0].content.startswith("You need to focus on something first.")

    @pytest.mark.asyncio
    async def test_correct_password(self, state: PlayerState, make_ctx):
        state.current_focus_id = "obj_brown_notebook"
        effects = await handle_password(make_ctx(state), "justice")
        assert effects[:5] == [
            SetEntityState(
                entity_id="obj_brown_notebook",
                patch=EntityRuntimeState(is_locked=False, is_open=True),
            ),
            RevealObject(entity_id="item_sd_card", revealed_by="obj_brown_notebook"),
            RevealObject(entity_id="item_newspaper_article", revealed_by="obj_brown_notebook"),
            SetFlag(flag="examined_obj_brown_notebook"),
            SetFlag(flag="has_unlocked_notebook"),
        ]
        assert effects[5].content.startswith("The notebook unlocks with a soft click.")
        assert effects[5].message_type == MessageType.IMAGE
        assert len(effects) == 6

    @pytest.mark.asyncio
    async def test_wrong_password_uses_fail_outcome(self, state: PlayerState, make_ctx):
        state.current_focus_id = "obj_brown_notebook"
        effects = await handle_password(make_ctx(state), "mercy")
        assert effects == [
            ShowMessage(content="That password doesn't work. The lock remains stubbornly shut.")
        ]

    @pytest.mark.asyncio
    async def test_only_the_focused_object_answers(self, state: PlayerState, make_ctx):
        """The safe does not open to the notebook's word."""
        state.current_focus_id = "obj_wall_safe"
        effects = await handle_password(make_ctx(state), "justice")
        assert effects == [ShowMessage(content="That password doesn't work.")]

    @pytest.mark.asyncio
    async def test_digits(self, state: PlayerState, make_ctx):
        state.current_focus_id = "obj_wall_safe"
        effects = await handle_password(make_ctx(state), "19-47")
        assert effects[1] == RevealObject(entity_id="item_hidden_note", revealed_by="obj_wall_safe")
        assert effects[-1].content == "The Wall Safe clicks and swings open. Inside you find Hidden Note."

    @pytest.mark.asyncio
    async def test_already_unlocked(self, unlocked_notebook: PlayerState, make_ctx):
        unlocked_notebook.current_focus_id = "obj_brown_notebook"
        effects = await handle_password(make_ctx(unlocked_notebook), "justice")
        assert effects[0].content == "The Brown Notebook is already unlocked."

    @pytest.mark.asyncio
    async def test_empty(self, state: PlayerState, make_ctx):
        effects = await handle_password(make_ctx(state), "")
        assert effects[0].content == "What do you want to say?"
