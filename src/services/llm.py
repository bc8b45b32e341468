"""
LLM Service for the noir engine.

Provides BYOK (Bring Your Own Key) LLM integration via OpenRouter.
OpenRouter supports 100+ models through an OpenAI-compatible API.
The engine uses it for two things only: expanding narration keywords and
interpreting free text the pattern parser could not.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Protocol

from openai import AsyncOpenAI

NARRATOR_PERSONA = """You are the narrator of a 1940s noir detective story.
The player is a hard-boiled detective. Write in second person, present tense.
Keep it to one or two short sentences. Never mention game mechanics,
commands, or that you are an AI."""

INTERPRETER_PERSONA = """You turn a player's free-text command into a game command.
Answer with exactly one line in the form: verb | target | second target
Use only these verbs: {verbs}.
Leave a field empty when it does not apply. If nothing fits, answer: unknown | |"""


class LLMProvider(Protocol):
    """
    Interface for LLM providers.

    Supports any OpenAI-compatible API (OpenRouter, OpenAI, Ollama, etc.)
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a completion from messages.

        Args:
            messages: List of {"role": "user"|"assistant"|"system", "content": str}
            max_tokens: Maximum tokens in response
            temperature: Randomness (0.0 = deterministic, 1.0 = creative)

        Returns:
            Generated text response
        """
        ...

    @property
    def model_name(self) -> str:
        """The model being used."""
        ...

    @property
    def is_available(self) -> bool:
        """Whether the provider is configured and ready."""
        ...


@dataclass
class OpenRouterProvider:
    """
    OpenRouter LLM provider using OpenAI-compatible API.

    Makes a single request per call; retry policy belongs to the caller.

    Configuration via environment variables:
        OPENROUTER_API_KEY: Your OpenRouter API key (required)
        OPENROUTER_MODEL: Model to use (default: anthropic/claude-3-haiku)
        LLM_BASE_URL: Custom base URL (default: OpenRouter)
        OPENROUTER_SITE_URL: Your site URL for rankings (optional)
        OPENROUTER_SITE_NAME: Your site name (optional)
    """

    api_key: str | None = None
    model: str = "anthropic/claude-3-haiku"
    base_url: str = "https://openrouter.ai/api/v1"
    site_url: str | None = None
    site_name: str = "Noir Engine"
    timeout: float = 20.0

    _client: AsyncOpenAI | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Initialize from environment if not provided."""
        if self.api_key is None:
            self.api_key = os.getenv("OPENROUTER_API_KEY")

        if os.getenv("OPENROUTER_MODEL"):
            self.model = os.getenv("OPENROUTER_MODEL", self.model)

        if os.getenv("LLM_BASE_URL"):
            self.base_url = os.getenv("LLM_BASE_URL", self.base_url)

        if os.getenv("OPENROUTER_SITE_URL"):
            self.site_url = os.getenv("OPENROUTER_SITE_URL")

        if os.getenv("OPENROUTER_SITE_NAME"):
            self.site_name = os.getenv("OPENROUTER_SITE_NAME", self.site_name)

        if self.api_key:
            headers = {"X-Title": self.site_name}
            if self.site_url:
                headers["HTTP-Referer"] = self.site_url

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers=headers,
                timeout=self.timeout,
                max_retries=0,
            )

    @property
    def model_name(self) -> str:
        """The model being used."""
        return self.model

    @property
    def is_available(self) -> bool:
        """Whether the provider is configured and ready."""
        return self._client is not None

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a completion from messages.

        Raises:
            RuntimeError: If provider is not configured (no API key)
            openai.OpenAIError: If the request fails
        """
        if self._client is None:
            raise RuntimeError(
                "OpenRouter provider not configured. Set OPENROUTER_API_KEY environment variable."
            )

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return response.choices[0].message.content or ""


@dataclass
class MockLLMProvider:
    """
    Mock LLM provider for testing and offline play.

    Returns canned responses without making API calls. ``failures`` makes
    the next N calls raise, to exercise retry paths.
    """

    model: str = "mock"
    responses: dict[str, str] = field(default_factory=dict)
    default_response: str = "[Mock LLM response]"
    failures: int = 0
    calls: int = 0

    @property
    def model_name(self) -> str:
        """The model being used."""
        return self.model

    @property
    def is_available(self) -> bool:
        """Mock provider is always available."""
        return True

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """Return a mock response."""
        self.calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionError("Mock provider failure")

        if messages:
            last_user_msg = next(
                (m["content"] for m in reversed(messages) if m["role"] == "user"),
                "",
            )
            if last_user_msg in self.responses:
                return self.responses[last_user_msg]

        return self.default_response

    def set_response(self, trigger: str, response: str) -> None:
        """Set a custom response for a specific input."""
        self.responses[trigger] = response


@dataclass
class LLMService:
    """
    High-level LLM service for game features.

    Handles prompt construction; callers decide what to do on failure.
    """

    provider: LLMProvider

    @property
    def is_available(self) -> bool:
        """Whether LLM features are available."""
        return self.provider.is_available

    async def generate_narration(
        self,
        instruction: str,
        max_tokens: int = 120,
        temperature: float = 0.8,
    ) -> str:
        """
        Generate a line of narration.

        Args:
            instruction: What happened and what the line should convey

        Returns:
            Generated narration
        """
        messages = [
            {"role": "system", "content": NARRATOR_PERSONA},
            {"role": "user", "content": instruction},
        ]
        return await self.provider.complete(
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )

    async def interpret_command(
        self,
        player_input: str,
        verbs: list[str],
        context: str = "",
    ) -> str:
        """
        Ask the model to map free text onto a verb and targets.

        Returns:
            The raw "verb | target | second target" line
        """
        system_prompt = INTERPRETER_PERSONA.format(verbs=", ".join(verbs))
        user_prompt = f"Scene: {context}\n\nPlayer: {player_input}" if context else player_input
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self.provider.complete(
            messages=messages,
            max_tokens=40,
            temperature=0.0,
        )


def create_llm_service(
    provider_type: str = "openrouter",
    **kwargs,
) -> LLMService:
    """
    Factory function to create an LLM service.

    Args:
        provider_type: Type of provider ("openrouter", "mock")
        **kwargs: Provider-specific configuration

    Returns:
        Configured LLMService

    Example:
        # Auto-configure from environment
        service = create_llm_service()

        # Mock for testing
        service = create_llm_service(provider_type="mock")
    """
    if provider_type == "mock":
        provider = MockLLMProvider(**kwargs)
    elif provider_type == "openrouter":
        provider = OpenRouterProvider(**kwargs)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")

    return LLMService(provider=provider)
