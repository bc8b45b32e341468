"""
Command Processor for the noir engine.

Runs one player command to completion: parse, dispatch to the verb's
action handler, reduce the effects, then close out the chapter if the
command finished it. Commands are processed one at a time; nothing here
holds per-player state between calls.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from src.actions.common import ActionContext
from src.actions.containers import (
    handle_break,
    handle_close,
    handle_open,
    handle_password,
    handle_search,
    handle_unlock,
)
from src.actions.exploration import (
    handle_climb,
    handle_examine,
    handle_goto,
    handle_look,
    handle_move,
    handle_read,
    handle_smell,
)
from src.actions.items import (
    handle_combine,
    handle_drop,
    handle_inventory,
    handle_take,
    handle_use,
)
from src.actions.social import end_conversation, handle_conversation, handle_talk
from src.engine.models import Command, CommandResult, EngineConfig
from src.engine.outcomes import system_message
from src.engine.parser import HybridCommandParser, is_goodbye
from src.engine.progress import get_completion_effects, get_hint
from src.engine.state_manager import apply_effects, create_initial_state
from src.engine.visibility import get_visible_entities
from src.models.cartridge import Game
from src.models.common import SYSTEM, Verb
from src.models.effects import Effect
from src.models.state import Message, PlayerState
from src.services.llm import LLMService
from src.services.narration import NarrationService

logger = logging.getLogger(__name__)

ActionHandler = Callable[[ActionContext, str, str | None], Awaitable[list[Effect]]]

ACTION_HANDLERS: dict[Verb, ActionHandler] = {
    Verb.TAKE: handle_take,
    Verb.DROP: handle_drop,
    Verb.OPEN: handle_open,
    Verb.CLOSE: handle_close,
    Verb.BREAK: handle_break,
    Verb.SEARCH: handle_search,
    Verb.SMELL: handle_smell,
    Verb.CLIMB: handle_climb,
    Verb.TALK: handle_talk,
    Verb.COMBINE: handle_combine,
    Verb.GOTO: handle_goto,
    Verb.EXAMINE: handle_examine,
    Verb.USE: handle_use,
    Verb.INVENTORY: handle_inventory,
    Verb.PASSWORD: handle_password,
    Verb.MOVE: handle_move,
    Verb.LOOK: handle_look,
    Verb.READ: handle_read,
    Verb.UNLOCK: handle_unlock,
}


@dataclass
class CommandProcessor:
    """
    Turn loop for one cartridge.

    Coordinates:
    - Command parsing (patterns first, LLM fallback when configured)
    - Action dispatch (one coroutine per verb)
    - Effect reduction (a new PlayerState plus messages)
    - Chapter completion
    """

    game: Game
    config: EngineConfig = field(default_factory=EngineConfig)
    llm: LLMService | None = None
    rng: random.Random = field(default_factory=random.Random)

    # Components (initialized in __post_init__)
    narrator: NarrationService = field(init=False)
    parser: HybridCommandParser = field(init=False)

    def __post_init__(self) -> None:
        """Initialize processor components."""
        self.narrator = NarrationService(
            llm=self.llm,
            attempts=self.config.narration_attempts,
            retry_delay=self.config.narration_retry_delay,
            cache_ttl=self.config.narration_cache_ttl,
            max_tokens=self.config.narration_max_tokens,
            temperature=self.config.narration_temperature,
        )
        self.parser = HybridCommandParser(llm=self.llm)

    def set_llm_service(self, llm: LLMService | None) -> None:
        """Swap the LLM used for narration and command interpretation."""
        self.llm = llm
        self.__post_init__()

    def new_game(self, chapter_id: str | None = None) -> PlayerState:
        """Initial state for a new playthrough."""
        return create_initial_state(self.game, chapter_id)

    def context(self, state: PlayerState) -> ActionContext:
        return ActionContext(state=state, game=self.game, narrator=self.narrator, rng=self.rng)

    def hint(self, state: PlayerState, detailed: bool = False) -> str:
        chapter = self.game.chapters.get(state.chapter_id)
        if chapter is None:
            logger.error("State refers to unknown chapter %s", state.chapter_id)
            return self.game.system_messages.generic_failure
        return get_hint(chapter, state, self.game, detailed)

    def scene_summary(self, state: PlayerState) -> str:
        """Short description of the scene for the command interpreter."""
        location = self.game.locations.get(state.current_location_id)
        if location is None:
            return ""
        visible = get_visible_entities(state, self.game)
        names = [
            entity.name
            for entity_id in [*visible.objects, *visible.items, *visible.npcs]
            if (entity := self.game.get_entity(entity_id)) is not None
        ]
        return f"{location.name}. Here: {', '.join(names)}."

    # =========================================================================
    # Turn processing
    # =========================================================================

    async def resolve(self, state: PlayerState, command: Command) -> list[Effect]:
        """Effects of a parsed command, without applying them."""
        if command.verb is None:
            return [system_message(self.game.system_messages.unknown_command)]
        handler = ACTION_HANDLERS[command.verb]
        logger.debug("Dispatching %s %r %r", command.verb.value, command.target, command.target2)
        return await handler(self.context(state), command.target, command.target2)

    async def process(self, state: PlayerState, player_input: str) -> CommandResult:
        """
        Process raw player input.

        Args:
            state: Current player state (left untouched)
            player_input: Raw text from the player

        Returns:
            CommandResult with the new state and the messages to show
        """
        if state.active_conversation_with:
            if is_goodbye(player_input):
                return await self._run(state, player_input, end_conversation(self.context(state)))
            # Mid-conversation, anything the patterns don't recognise is dialogue.
            command = self.parser.pattern_parser.parse(player_input)
            if command.verb is None:
                return await self._run(
                    state, command.raw, handle_conversation(self.context(state), command.raw)
                )
            return await self.execute(state, command)

        command = await self.parser.parse(player_input, self.scene_summary(state))
        return await self.execute(state, command)

    async def execute(self, state: PlayerState, command: Command) -> CommandResult:
        """Process an already parsed command."""
        return await self._run(state, command.raw, self.resolve(state, command))

    async def _run(
        self, state: PlayerState, raw: str, pending: Awaitable[list[Effect]]
    ) -> CommandResult:
        start_time = time.perf_counter()
        try:
            effects = await pending
            application = apply_effects(state, effects, self.game, self.config)
            new_state, messages = application.new_state, application.messages

            chapter = self.game.chapters.get(new_state.chapter_id)
            completion = get_completion_effects(chapter, new_state) if chapter else []
            if completion:
                closing = apply_effects(new_state, completion, self.game, self.config)
                new_state = closing.new_state
                messages = [*messages, *closing.messages]
                effects = [*effects, *completion]
        except Exception as e:
            logger.exception("Command %r failed", raw)
            return CommandResult(
                new_state=state,
                messages=[
                    Message(
                        sender=SYSTEM,
                        sender_name=self.config.system_name,
                        content=self.game.system_messages.generic_failure,
                    )
                ],
                processing_time_ms=int((time.perf_counter() - start_time) * 1000),
                error=str(e),
            )

        return CommandResult(
            new_state=new_state,
            messages=messages,
            effects=effects,
            processing_time_ms=int((time.perf_counter() - start_time) * 1000),
        )
