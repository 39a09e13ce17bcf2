"""Tests for the fallback interpreter."""

import asyncio
from typing import Any

import pytest

from frontdesk.config.models.interpreter import InterpreterConfig
from frontdesk.conversation.models import ContextMessage, ContextWindow, Phase
from frontdesk.errors import InterpreterError
from frontdesk.orchestration.interpreter import (
    REPLY_INSTRUCTION,
    FallbackInterpreter,
    build_messages,
    clean_reply,
)
from frontdesk.providers.llm import LLMMessage, LLMResponse, MockLLMProvider, ProviderError


class SlowProvider(MockLLMProvider):
    async def generate(self, messages: list[LLMMessage], **kwargs: Any) -> LLMResponse:
        await asyncio.sleep(1)
        return await super().generate(messages, **kwargs)


@pytest.fixture
def window() -> ContextWindow:
    return ContextWindow(
        phase=Phase.DISCOVERY,
        booking_locked=False,
        turn_count=1,
        max_turns=6,
        history=[
            ContextMessage(role="caller", content="my furnace stopped"),
            ContextMessage(role="agent", content="Sorry to hear that."),
        ],
        facts={"name": "Jane"},
        missing_required=["issue"],
        missing_desired=["phone"],
        earlier_summary=None,
    )


class TestBuildMessages:
    """Tests for build_messages."""

    def test_layout(self, window) -> None:
        messages = build_messages(window, "can someone come today")

        assert messages[0].content == REPLY_INSTRUCTION
        assert messages[1].role == "system"
        assert "Known caller details: name=Jane" in messages[1].content
        assert "Still needed: issue" in messages[1].content
        assert [m.role for m in messages[2:]] == ["user", "assistant", "user"]
        assert messages[-1].content == "can someone come today"

    def test_summary_included(self, window) -> None:
        window = window.model_copy(update={"earlier_summary": "3 earlier turns"})
        messages = build_messages(window, "hello")
        assert "Earlier in the call: 3 earlier turns" in messages[1].content


class TestCleanReply:
    """Tests for clean_reply."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('  "We can come by at noon."  ', "We can come by at noon."),
            ("Sure,\n we can help.", "Sure, we can help."),
            ("'", "'"),
            ("", ""),
        ],
    )
    def test_clean(self, raw, expected) -> None:
        assert clean_reply(raw) == expected


class TestFallbackInterpreter:
    """Tests for FallbackInterpreter.interpret."""

    @pytest.mark.asyncio
    async def test_reply(self, window) -> None:
        provider = MockLLMProvider(default_response='"We can be there by two."')
        interpreter = FallbackInterpreter(provider, InterpreterConfig(model="small"))

        reply = await interpreter.interpret(window, "when can you come")

        assert reply == "We can be there by two."
        assert provider.call_history[0]["model"] == "small"
        assert provider.call_history[0]["max_tokens"] == 150

    @pytest.mark.asyncio
    async def test_provider_error(self, window) -> None:
        provider = MockLLMProvider(error=ProviderError("quota"))
        with pytest.raises(InterpreterError) as exc_info:
            await FallbackInterpreter(provider).interpret(window, "hello")
        assert isinstance(exc_info.value.cause, ProviderError)

    @pytest.mark.asyncio
    async def test_timeout(self, window) -> None:
        interpreter = FallbackInterpreter(SlowProvider(), InterpreterConfig(timeout_ms=10))
        with pytest.raises(InterpreterError, match="timed out"):
            await interpreter.interpret(window, "hello")

    @pytest.mark.asyncio
    async def test_empty_reply(self, window) -> None:
        provider = MockLLMProvider(default_response="   ")
        with pytest.raises(InterpreterError, match="empty"):
            await FallbackInterpreter(provider).interpret(window, "hello")
