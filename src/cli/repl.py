"""
Interactive REPL for the noir engine.

Provides a text-based interface for playing a cartridge from the terminal.
"""

from __future__ import annotations

import asyncio
import logging
import os
import random
from collections.abc import Callable
from dataclasses import dataclass

from src.content import create_noir_cartridge
from src.engine.models import CommandResult, EngineConfig
from src.engine.processor import CommandProcessor
from src.models.cartridge import Game
from src.models.common import SYSTEM
from src.models.state import Message, PlayerState
from src.services.llm import LLMService, create_llm_service

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    """Current state of the REPL session."""

    processor: CommandProcessor
    player: PlayerState
    running: bool = True


@dataclass
class ReplCommand:
    """A special REPL command."""

    name: str
    aliases: list[str]
    description: str
    handler: Callable[[SessionState, list[str]], str | None]


def format_message(message: Message) -> str:
    """One message as terminal text; media is shown by its description."""
    if message.sender == SYSTEM:
        text = f"[{message.content}]"
    else:
        text = f"{message.sender_name}: {message.content}"
    if message.image is not None:
        text += f"\n  ({message.image.description or message.image.url})"
    return text


class GameREPL:
    """
    Interactive REPL for playing a noir cartridge.

    Handles user input, special commands, and game output.
    """

    def __init__(
        self,
        *,
        game: Game | None = None,
        llm: LLMService | None = None,
        config: EngineConfig | None = None,
        seed: int | None = None,
    ) -> None:
        self.game = game or create_noir_cartridge()
        self.llm = llm
        self.config = config or EngineConfig()
        self.seed = seed
        self.commands: dict[str, ReplCommand] = {}
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all special commands."""
        commands = [
            ReplCommand(
                name="quit",
                aliases=["exit", "q"],
                description="Exit the game",
                handler=self._cmd_quit,
            ),
            ReplCommand(
                name="help",
                aliases=["?", "h"],
                description="Show available commands",
                handler=self._cmd_help,
            ),
            ReplCommand(
                name="hint",
                aliases=["stuck"],
                description="Get a hint (/hint more for a stronger one)",
                handler=self._cmd_hint,
            ),
            ReplCommand(
                name="look",
                aliases=["l"],
                description="Look around the current location",
                handler=self._cmd_look,
            ),
            ReplCommand(
                name="inventory",
                aliases=["inv", "i"],
                description="List what you are carrying",
                handler=self._cmd_inventory,
            ),
        ]

        for cmd in commands:
            self.commands[cmd.name] = cmd
            for alias in cmd.aliases:
                self.commands[alias] = cmd

    def new_session(self) -> SessionState:
        processor = CommandProcessor(
            game=self.game,
            config=self.config,
            llm=self.llm,
            rng=random.Random(self.seed),
        )
        return SessionState(processor=processor, player=processor.new_game())

    def _cmd_quit(self, state: SessionState, args: list[str]) -> str | None:
        """Handle quit command."""
        state.running = False
        return "The city will still be here tomorrow. So will the case."

    def _cmd_help(self, state: SessionState, args: list[str]) -> str | None:
        """Handle help command."""
        lines = [
            "Available Commands:",
            "-" * 40,
        ]

        # Get unique commands (no aliases)
        seen = set()
        for cmd in self.commands.values():
            if cmd.name not in seen:
                aliases = f" ({', '.join(cmd.aliases)})" if cmd.aliases else ""
                lines.append(f"  /{cmd.name}{aliases} - {cmd.description}")
                seen.add(cmd.name)

        lines.extend(
            [
                "",
                "Tips:",
                "  - Type actions in plain English",
                "  - Examples: 'examine the notebook', 'go to the bookshelf', 'talk to the barista'",
                "  - Say 'goodbye' to end a conversation",
            ]
        )

        return "\n".join(lines)

    def _cmd_hint(self, state: SessionState, args: list[str]) -> str | None:
        """Handle hint command."""
        detailed = bool(args) and args[0].lower() in ("more", "detailed", "full")
        return state.processor.hint(state.player, detailed=detailed)

    def _cmd_look(self, state: SessionState, args: list[str]) -> str | None:
        """Handle look command - the engine describes the scene."""
        return None

    def _cmd_inventory(self, state: SessionState, args: list[str]) -> str | None:
        """Handle inventory command - the engine lists the inventory."""
        return None

    def _is_command(self, text: str) -> bool:
        """Check if input is a special command."""
        return text.startswith("/")

    def _parse_command(self, text: str) -> tuple[str, list[str]]:
        """Parse a command into name and arguments."""
        parts = text[1:].split()  # Remove leading /
        if not parts:
            return "", []
        return parts[0].lower(), parts[1:]

    async def process_input(self, text: str, state: SessionState) -> str:
        """Process user input and return response."""
        text = text.strip()

        if not text:
            return ""

        # Handle special commands
        if self._is_command(text):
            cmd_name, args = self._parse_command(text)
            if cmd_name not in self.commands:
                return f"Unknown command: /{cmd_name}. Type /help for commands."
            command = self.commands[cmd_name]
            result = command.handler(state, args)
            if result is not None:
                return result
            # Fall through to engine processing
            text = command.name

        result = await state.processor.process(state.player, text)
        state.player = result.new_state
        return self._format_result(result)

    def _format_result(self, result: CommandResult) -> str:
        """Format a command result for display."""
        parts = [format_message(message) for message in result.messages]

        # Show any errors
        if result.error:
            parts.append(f"\n[Error: {result.error}]")

        return "\n".join(parts)

    def _prompt(self, state: SessionState) -> str:
        npc_id = state.player.active_conversation_with
        if npc_id is not None:
            npc = self.game.npcs.get(npc_id)
            return f"[talking to {npc.name if npc else npc_id}] > "
        return "> "

    def _print_banner(self) -> None:
        """Print the game banner."""
        print()
        print(f"  {self.game.title}")
        print("  " + "=" * len(self.game.title))
        print()
        print("Type /help for commands, or just describe your action.\n")

    async def run(self) -> None:
        """Run the interactive REPL."""
        state = self.new_session()

        self._print_banner()

        # Initial look
        initial = await self.process_input("look", state)
        print(initial)
        print()

        # Main loop
        while state.running:
            try:
                user_input = input(self._prompt(state)).strip()

                if not user_input:
                    continue

                response = await self.process_input(user_input, state)

                if response:
                    print()
                    print(response)
                    print()

            except KeyboardInterrupt:
                print("\n")
                state.running = False
            except EOFError:
                print("\n")
                state.running = False

        print("Case closed. For now.")


def configure_logging() -> None:
    """Configure logging from NOIR_LOG_LEVEL (default WARNING)."""
    level = os.getenv("NOIR_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_game(seed: int | None = None, offline: bool = False) -> None:
    """
    Run the noir demo.

    Args:
        seed: Seed for flavor text selection
        offline: Never call the LLM, even when OPENROUTER_API_KEY is set
    """
    configure_logging()
    llm = None
    if not offline and os.getenv("OPENROUTER_API_KEY"):
        llm = create_llm_service()
        logger.info("Using LLM model %s", llm.provider.model_name)
    repl = GameREPL(llm=llm, seed=seed)
    asyncio.run(repl.run())


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Noir Engine Text Adventure")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for flavor text")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Play without the LLM narrator",
    )

    args = parser.parse_args()
    run_game(seed=args.seed, offline=args.offline)
