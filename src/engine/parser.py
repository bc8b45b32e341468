"""
Command Parser for the noir engine.

Parses player input into a Command: a verb from the closed set plus target
phrases. Uses pattern matching for ordinary phrasing, with an LLM fallback
for input the patterns do not recognise.
"""

from __future__ import annotations

import logging
import re
from typing import Protocol

from src.engine.models import Command
from src.models.common import Verb
from src.services.llm import LLMService

logger = logging.getLogger(__name__)


class CommandInterpreter(Protocol):
    """Interface for anything that turns free text into a Command."""

    async def parse(self, player_input: str, context: str = "") -> Command:
        """Parse player input."""
        ...


# Order matters: "move to" is goto before it is move, "look in" is search
# before it is examine, and bare "look" is the scene.
VERB_PATTERNS: list[tuple[Verb, re.Pattern]] = [
    (Verb.INVENTORY, re.compile(r"^(?:inventory|inv|i|check (?:my )?(?:inventory|pockets))$", re.I)),
    (Verb.LOOK, re.compile(r"^(?:look|l|look around)$", re.I)),
    (
        Verb.GOTO,
        re.compile(
            r"^(?:go to|goto|go over to|walk to|walk over to|move to|head to|approach|go)\s+(?P<rest>.+)$",
            re.I,
        ),
    ),
    (
        Verb.SEARCH,
        re.compile(
            r"^(?:search|look in|look inside|look through|rummage through|rummage in)\s+(?P<rest>.+)$",
            re.I,
        ),
    ),
    (
        Verb.EXAMINE,
        re.compile(r"^(?:examine|look at|inspect|check|study|x|look)\s+(?P<rest>.+)$", re.I),
    ),
    (Verb.READ, re.compile(r"^read\s+(?P<rest>.+)$", re.I)),
    (Verb.TAKE, re.compile(r"^(?:take|pick up|grab|get)\s+(?P<rest>.+)$", re.I)),
    (Verb.TAKE, re.compile(r"^pick\s+(?P<rest>.+?)\s+up$", re.I)),
    (Verb.DROP, re.compile(r"^(?:drop|put down|discard)\s+(?P<rest>.+)$", re.I)),
    (Verb.OPEN, re.compile(r"^open\s+(?P<rest>.+)$", re.I)),
    (Verb.CLOSE, re.compile(r"^(?:close|shut)\s+(?P<rest>.+)$", re.I)),
    (Verb.UNLOCK, re.compile(r"^unlock\s+(?P<rest>.+)$", re.I)),
    (Verb.BREAK, re.compile(r"^(?:break|smash|force|kick)\s+(?P<rest>.+)$", re.I)),
    (Verb.SMELL, re.compile(r"^(?:smell|sniff)\s+(?P<rest>.+)$", re.I)),
    (
        Verb.CLIMB,
        re.compile(r"^climb\s+(?:into\s+|in\s+|up\s+|onto\s+|on\s+|out of\s+)?(?P<rest>.+)$", re.I),
    ),
    (
        Verb.TALK,
        re.compile(r"^(?:talk to|talk with|speak to|speak with|talk|question)\s+(?P<rest>.+)$", re.I),
    ),
    (Verb.COMBINE, re.compile(r"^(?:combine|attach)\s+(?P<rest>.+)$", re.I)),
    (Verb.USE, re.compile(r"^use\s+(?P<rest>.+)$", re.I)),
    (Verb.MOVE, re.compile(r"^(?:move|push|pull|shift|slide)\s+(?P<rest>.+)$", re.I)),
    (
        Verb.PASSWORD,
        re.compile(r"^(?:say|enter|type|input|password)\s+(?P<rest>.+)$", re.I),
    ),
]

# Verbs whose phrase may name a second target
TWO_TARGET_VERBS = {Verb.COMBINE, Verb.USE, Verb.UNLOCK, Verb.BREAK}

SECOND_TARGET_PATTERN = re.compile(r"\s+(?:with|on|and|to|into|using)\s+", re.I)

GOODBYE_PATTERN = re.compile(r"^(?:goodbye|good bye|bye|end conversation|leave conversation)\W*$", re.I)


def split_targets(verb: Verb, rest: str) -> tuple[str, str | None]:
    """Split "A with B" style phrases for verbs that take two targets."""
    rest = rest.strip()
    if verb not in TWO_TARGET_VERBS:
        return rest, None
    parts = SECOND_TARGET_PATTERN.split(rest, maxsplit=1)
    if len(parts) == 2:
        return parts[0].strip(), parts[1].strip()
    return rest, None


def is_goodbye(player_input: str) -> bool:
    """Whether the input ends a conversation."""
    return bool(GOODBYE_PATTERN.match(player_input.strip()))


class PatternCommandParser:
    """Rule-based command parser using regex patterns."""

    def parse(self, player_input: str) -> Command:
        """
        Parse player input into a Command using pattern matching.

        Args:
            player_input: Raw text from the player

        Returns:
            Command with verb None when nothing matched
        """
        text = " ".join(player_input.strip().split())
        for verb, pattern in VERB_PATTERNS:
            match = pattern.match(text)
            if not match:
                continue
            rest = match.groupdict().get("rest") or ""
            target, target2 = split_targets(verb, rest)
            return Command(verb=verb, target=target, target2=target2, confidence=0.9, raw=text)
        return Command(verb=None, confidence=0.0, raw=text)


def parse_interpretation(line: str, raw: str) -> Command:
    """Read the LLM's "verb | target | second target" answer."""
    first_line = line.strip().splitlines()[0] if line.strip() else ""
    fields = [f.strip() for f in first_line.split("|")]
    fields += [""] * (3 - len(fields))
    try:
        verb = Verb(fields[0].lower())
    except ValueError:
        return Command(verb=None, confidence=0.0, raw=raw)
    return Command(
        verb=verb,
        target=fields[1],
        target2=fields[2] or None,
        confidence=0.7,
        raw=raw,
    )


class HybridCommandParser:
    """
    Hybrid command parser combining pattern matching and LLM.

    Uses fast pattern matching for clear commands,
    falls back to the LLM for everything else.
    """

    def __init__(self, llm: LLMService | None = None) -> None:
        self.pattern_parser = PatternCommandParser()
        self.llm = llm

    async def parse(self, player_input: str, context: str = "") -> Command:
        """
        Parse player input, asking the LLM when the patterns do not match.

        Args:
            player_input: Raw text from the player
            context: Optional scene summary for the LLM

        Returns:
            Command with verb None when neither parser understood the input
        """
        command = self.pattern_parser.parse(player_input)
        if command.verb is not None:
            return command

        if self.llm is None or not self.llm.is_available:
            return command

        try:
            line = await self.llm.interpret_command(
                command.raw, [verb.value for verb in Verb], context
            )
        except Exception as e:
            logger.warning("Command interpretation failed for %r: %s", command.raw, e)
            return command

        interpreted = parse_interpretation(line, command.raw)
        logger.debug("Interpreted %r as %s", command.raw, interpreted.verb)
        return interpreted
