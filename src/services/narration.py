"""
Narration expansion for the noir engine.

Handlers describe what happened with a short keyword (``cant_break_object``)
and a little context. This service turns that into a sentence through the
LLM, with a bounded number of attempts, a short cache, and static
fallbacks when the model cannot be reached.
"""

from __future__ import annotations

import asyncio
import logging
import re
import time
from dataclasses import dataclass, field

from src.services.llm import LLMService

logger = logging.getLogger(__name__)

KEYWORD_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")

PROMPT_TEMPLATES: dict[str, str] = {
    "cant_break_object": (
        "The detective tries to break the {object_name}, but it is not something "
        "that can be broken. Describe why it holds."
    ),
    "break_needs_tool": (
        "The detective wants to break the {object_name} but has nothing heavy "
        "enough. Hint that a tool would help."
    ),
    "too_far": (
        "The detective, standing at the {focus_name}, tries to {verb} the "
        "{target_name}, which is across the room. Say it is out of reach."
    ),
    "cant_take": "The detective tries to pick up the {item_name}, but it won't come.",
    "cant_open": "The detective tries to open the {object_name}, but it doesn't open.",
    "already_open": "The detective tries to open the {object_name}, which is already open.",
    "already_closed": "The detective tries to close the {object_name}, which is already shut.",
    "locked": "The detective tries the {object_name}. It is locked tight.",
    "wrong_password": "The detective tries the phrase '{phrase}' on the {object_name}. Nothing.",
    "nothing_found": "The detective searches the {object_name} and finds nothing of interest.",
    "cant_climb": "The detective eyes the {object_name}; it is not something to climb.",
    "smell_nothing": "The detective sniffs at the {object_name}. Describe a faint city smell.",
    "cant_combine": "The detective tries to fit the {item1} and the {item2} together. No dice.",
    "cant_use": "The detective fiddles with the {item_name}, but it does nothing here.",
    "npc_chatter": (
        "Speak as {npc_name}, a character in this story. {persona} The scene: {scene} "
        "The detective says: \"{player_input}\". Reply in character, one or two "
        "sentences of dialogue only, without quotation marks."
    ),
}

SIMPLE_FALLBACKS: dict[str, str] = {
    "cant_break_object": "The {object_name} can't be broken. Try a different approach.",
    "break_needs_tool": "You'd need something heavy to break the {object_name}.",
    "too_far": "The {target_name} is too far away. You need to get closer first.",
    "cant_take": "You can't take the {item_name}.",
    "cant_open": "The {object_name} won't open.",
    "already_open": "The {object_name} is already open.",
    "already_closed": "The {object_name} is already closed.",
    "locked": "The {object_name} is locked.",
    "wrong_password": "That password doesn't work.",
    "nothing_found": "You search the {object_name} but find nothing of interest.",
    "cant_climb": "You can't climb the {object_name}.",
    "smell_nothing": "You don't notice any particular smell.",
    "cant_combine": "You can't combine the {item1} with the {item2}.",
    "cant_use": "You can't use the {item_name} like that.",
}


class NarrationUnavailableError(Exception):
    """The narrator could not produce text and no fallback exists."""


class _Context(dict):
    def __missing__(self, key: str) -> str:
        return "it"


def is_keyword(text: str) -> bool:
    """Whether a message is a narration keyword rather than finished text."""
    return bool(KEYWORD_PATTERN.match(text))


def render_fallback(keyword: str, context: dict[str, str]) -> str | None:
    template = SIMPLE_FALLBACKS.get(keyword)
    if template is None:
        return None
    return template.format_map(_Context(context))


def build_prompt(keyword: str, context: dict[str, str]) -> str:
    template = PROMPT_TEMPLATES.get(keyword)
    if template is None:
        details = ", ".join(f"{k}: {v}" for k, v in sorted(context.items()))
        return f"Narrate this moment ({keyword.replace('_', ' ')}). {details}"
    return template.format_map(_Context(context))


@dataclass
class NarrationService:
    """
    Expands narration keywords into prose.

    At most ``attempts`` calls are made per expansion, ``retry_delay``
    seconds apart. After the last failure the explicit fallback is used,
    then the keyword's stock fallback; with neither,
    NarrationUnavailableError is raised.
    """

    llm: LLMService | None = None
    attempts: int = 3
    retry_delay: float = 1.0
    cache_ttl: float = 30.0
    max_cache_entries: int = 100
    max_tokens: int = 120
    temperature: float = 0.8

    _cache: dict[str, tuple[float, str]] = field(init=False, default_factory=dict)

    def _cache_key(self, keyword: str, context: dict[str, str]) -> str:
        return keyword + "|" + "|".join(f"{k}={v}" for k, v in sorted(context.items()))

    async def expand(
        self,
        keyword: str,
        context: dict[str, str] | None = None,
        fallback: str | None = None,
    ) -> str:
        """
        Turn a keyword into narration.

        Args:
            keyword: snake_case key, or finished text which is returned unchanged
            context: Values for the prompt and fallback templates
            fallback: Static text to use if the narrator fails

        Returns:
            Narration text

        Raises:
            NarrationUnavailableError: If the narrator failed and no fallback exists
        """
        if not is_keyword(keyword):
            return keyword
        context = context or {}
        static = fallback or render_fallback(keyword, context)

        if self.llm is None or not self.llm.is_available:
            if static is None:
                raise NarrationUnavailableError(f"No narrator configured for {keyword}")
            return static

        key = self._cache_key(keyword, context)
        cached = self._cache.get(key)
        if cached is not None and time.monotonic() - cached[0] < self.cache_ttl:
            return cached[1]

        prompt = build_prompt(keyword, context)
        for attempt in range(1, self.attempts + 1):
            try:
                text = (
                    await self.llm.generate_narration(prompt, self.max_tokens, self.temperature)
                ).strip()
                if text:
                    self._remember(key, text)
                    return text
                logger.warning("Narration attempt %d for %s returned nothing", attempt, keyword)
            except Exception as e:
                logger.warning(
                    "Narration attempt %d/%d for %s failed: %s", attempt, self.attempts, keyword, e
                )
            if attempt < self.attempts:
                await asyncio.sleep(self.retry_delay)

        if static is not None:
            logger.warning("Narration for %s unavailable, using fallback", keyword)
            return static
        raise NarrationUnavailableError(
            f"Narration for {keyword} failed after {self.attempts} attempts"
        )

    def _remember(self, key: str, text: str) -> None:
        """Store an expansion, evicting expired entries and then the oldest."""
        now = time.monotonic()
        for stale in [k for k, (at, _) in self._cache.items() if now - at >= self.cache_ttl]:
            del self._cache[stale]
        while self._cache and len(self._cache) >= self.max_cache_entries:
            del self._cache[next(iter(self._cache))]
        self._cache[key] = (now, text)

    def clear_cache(self) -> None:
        self._cache.clear()
