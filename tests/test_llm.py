"""
Tests for the LLM service: providers, narration and command interpretation.
"""

from __future__ import annotations

import os
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from src.services.llm import (
    INTERPRETER_PERSONA,
    NARRATOR_PERSONA,
    LLMService,
    MockLLMProvider,
    OpenRouterProvider,
    create_llm_service,
)

# =============================================================================
# Mock Provider
# =============================================================================


class TestMockLLMProvider:
    """Tests for MockLLMProvider."""

    @pytest.mark.asyncio
    async def test_default_response(self) -> None:
        provider = MockLLMProvider()
        response = await provider.complete([{"role": "user", "content": "The rain falls."}])
        assert response == "[Mock LLM response]"
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_response_keyed_on_last_user_message(self) -> None:
        provider = MockLLMProvider()
        provider.set_response("open the notebook", "open | notebook |")
        messages = [
            {"role": "system", "content": "You interpret commands."},
            {"role": "user", "content": "open the notebook"},
        ]
        assert await provider.complete(messages) == "open | notebook |"

    @pytest.mark.asyncio
    async def test_failures_raise_then_recover(self) -> None:
        """Scripted failures are consumed one call at a time."""
        provider = MockLLMProvider(failures=2, default_response="ok")
        messages = [{"role": "user", "content": "hi"}]
        for _ in range(2):
            with pytest.raises(ConnectionError):
                await provider.complete(messages)
        assert await provider.complete(messages) == "ok"
        assert provider.calls == 3

    def test_always_available(self) -> None:
        provider = MockLLMProvider()
        assert provider.is_available is True
        assert provider.model_name == "mock"


# =============================================================================
# OpenRouter Provider
# =============================================================================


class TestOpenRouterProvider:
    """Tests for OpenRouterProvider."""

    @patch.dict(os.environ, {}, clear=True)
    def test_unconfigured_without_key(self) -> None:
        provider = OpenRouterProvider()
        assert provider.api_key is None
        assert provider.is_available is False

    @patch.dict(os.environ, {}, clear=True)
    def test_configured_with_key(self) -> None:
        provider = OpenRouterProvider(api_key="test-key")
        assert provider.is_available is True
        assert provider.model_name == "anthropic/claude-3-haiku"

    @patch.dict(
        os.environ,
        {"OPENROUTER_API_KEY": "env-key", "OPENROUTER_MODEL": "openai/gpt-4o-mini"},
        clear=True,
    )
    def test_environment(self) -> None:
        provider = OpenRouterProvider()
        assert provider.api_key == "env-key"
        assert provider.model_name == "openai/gpt-4o-mini"

    @patch.dict(os.environ, {}, clear=True)
    def test_client_does_not_retry(self) -> None:
        """Retries are the narration service's job, not the client's."""
        provider = OpenRouterProvider(api_key="test-key")
        assert provider._client.max_retries == 0

    @pytest.mark.asyncio
    async def test_complete_without_client_raises(self) -> None:
        provider = OpenRouterProvider(api_key="test-key")
        provider._client = None
        with pytest.raises(RuntimeError, match="not configured"):
            await provider.complete([{"role": "user", "content": "Hello"}])

    @pytest.mark.asyncio
    @patch.dict(os.environ, {}, clear=True)
    async def test_complete_returns_message_content(self) -> None:
        provider = OpenRouterProvider(api_key="test-key", model="test/model")
        reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content="Rain."))])
        create = AsyncMock(return_value=reply)
        provider._client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=create))
        )

        response = await provider.complete([{"role": "user", "content": "x"}], max_tokens=10)

        assert response == "Rain."
        kwargs = create.await_args.kwargs
        assert kwargs["model"] == "test/model"
        assert kwargs["max_tokens"] == 10

    @pytest.mark.asyncio
    @patch.dict(os.environ, {}, clear=True)
    async def test_empty_content_is_empty_string(self) -> None:
        provider = OpenRouterProvider(api_key="test-key")
        reply = SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=None))])
        provider._client = SimpleNamespace(
            chat=SimpleNamespace(completions=SimpleNamespace(create=AsyncMock(return_value=reply)))
        )
        assert await provider.complete([{"role": "user", "content": "x"}]) == ""


# =============================================================================
# LLM Service
# =============================================================================


class RecordingProvider(MockLLMProvider):
    """Mock provider that keeps the last request."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.last_messages: list[dict[str, str]] = []
        self.last_kwargs: dict = {}

    async def complete(self, messages, max_tokens=256, temperature=0.7) -> str:
        self.last_messages = messages
        self.last_kwargs = {"max_tokens": max_tokens, "temperature": temperature}
        return await super().complete(messages, max_tokens, temperature)


class TestLLMService:
    """Tests for LLMService."""

    def test_availability_follows_provider(self) -> None:
        assert LLMService(provider=MockLLMProvider()).is_available is True

    @pytest.mark.asyncio
    async def test_generate_narration(self) -> None:
        provider = RecordingProvider(default_response="The lock gives.")
        service = LLMService(provider=provider)

        text = await service.generate_narration("The notebook opens.", max_tokens=50, temperature=0.5)

        assert text == "The lock gives."
        assert provider.last_messages[0] == {"role": "system", "content": NARRATOR_PERSONA}
        assert provider.last_messages[1] == {"role": "user", "content": "The notebook opens."}
        assert provider.last_kwargs == {"max_tokens": 50, "temperature": 0.5}

    @pytest.mark.asyncio
    async def test_interpret_command(self) -> None:
        provider = RecordingProvider(default_response="smell | dumpster |")
        service = LLMService(provider=provider)

        line = await service.interpret_command("sniff around the bin", ["smell", "take"])

        assert line == "smell | dumpster |"
        assert provider.last_messages[0]["content"] == INTERPRETER_PERSONA.format(verbs="smell, take")
        assert provider.last_messages[1]["content"] == "sniff around the bin"
        assert provider.last_kwargs["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_interpret_command_with_scene(self) -> None:
        provider = RecordingProvider()
        service = LLMService(provider=provider)

        await service.interpret_command("grab it", ["take"], context="A cafe.")

        assert provider.last_messages[1]["content"] == "Scene: A cafe.\n\nPlayer: grab it"


# =============================================================================
# Factory
# =============================================================================


class TestCreateLLMService:
    """Tests for create_llm_service."""

    def test_mock(self) -> None:
        service = create_llm_service(provider_type="mock", default_response="hello")
        assert service.is_available is True
        assert service.provider.default_response == "hello"

    @patch.dict(os.environ, {}, clear=True)
    def test_openrouter_without_key(self) -> None:
        service = create_llm_service(provider_type="openrouter")
        assert service.is_available is False

    @patch.dict(os.environ, {}, clear=True)
    def test_openrouter_with_key(self) -> None:
        service = create_llm_service(provider_type="openrouter", api_key="test-key")
        assert service.is_available is True

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown provider type"):
            create_llm_service(provider_type="carrier-pigeon")
