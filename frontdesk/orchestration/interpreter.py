"""LLM-backed fallback interpreter.

Receives a bounded context window and returns reply text only. All
response policy (styling, capture prompts, escalation) stays with the
orchestrator.
"""

import asyncio

from frontdesk.config.models.interpreter import InterpreterConfig
from frontdesk.conversation.models import ContextWindow
from frontdesk.errors import InterpreterError
from frontdesk.observability.logging import get_logger
from frontdesk.providers.llm import LLMMessage, LLMProvider, ProviderError

logger = get_logger(__name__)

REPLY_INSTRUCTION = (
    "You are the front desk of a home-services company, speaking with a caller "
    "on a live phone call. Return only the next thing to say to the caller: "
    "no notes, labels, quotation marks or stage directions. Keep it to one or "
    "two short spoken sentences. Never state caller details you were not given."
)

_ROLE_MAP = {"caller": "user", "agent": "assistant"}


def build_messages(window: ContextWindow, query: str) -> list[LLMMessage]:
    """Render the context window as LLM messages."""
    state_lines = [
        f"Conversation phase: {window.phase.value}",
        f"Booking in progress: {'yes' if window.booking_locked else 'no'}",
    ]
    if window.facts:
        known = ", ".join(f"{key}={value}" for key, value in sorted(window.facts.items()))
        state_lines.append(f"Known caller details: {known}")
    if window.missing_required:
        state_lines.append(f"Still needed: {', '.join(window.missing_required)}")
    if window.missing_desired:
        state_lines.append(f"Nice to have: {', '.join(window.missing_desired)}")
    if window.earlier_summary:
        state_lines.append(f"Earlier in the call: {window.earlier_summary}")

    messages = [
        LLMMessage(role="system", content=REPLY_INSTRUCTION),
        LLMMessage(role="system", content="\n".join(state_lines)),
    ]
    messages.extend(
        LLMMessage(role=_ROLE_MAP[m.role], content=m.content) for m in window.history
    )
    messages.append(LLMMessage(role="user", content=query))
    return messages


def clean_reply(text: str) -> str:
    """Strip whitespace and wrapping quotes from a generated reply."""
    reply = " ".join(text.split())
    if len(reply) >= 2 and reply[0] == reply[-1] and reply[0] in "\"'":
        reply = reply[1:-1].strip()
    return reply


class FallbackInterpreter:
    """Asks an LLM for a reply when no knowledge source matched."""

    def __init__(self, provider: LLMProvider, config: InterpreterConfig | None = None) -> None:
        self._provider = provider
        self._config = config or InterpreterConfig()

    async def interpret(self, window: ContextWindow, query: str) -> str:
        """Generate a reply under the configured hard timeout.

        Raises:
            InterpreterError: On timeout, provider failure or an empty reply
        """
        messages = build_messages(window, query)
        timeout = self._config.timeout_ms / 1000
        try:
            response = await asyncio.wait_for(
                self._provider.generate(
                    messages,
                    model=self._config.model,
                    max_tokens=self._config.max_tokens,
                    temperature=self._config.temperature,
                ),
                timeout=timeout,
            )
        except TimeoutError as e:
            logger.warning("interpreter_timeout", timeout_ms=self._config.timeout_ms)
            raise InterpreterError("Fallback interpreter timed out", cause=e) from e
        except ProviderError as e:
            logger.warning(
                "interpreter_provider_error",
                provider=self._provider.provider_name,
                error=str(e),
            )
            raise InterpreterError(f"Fallback interpreter failed: {e}", cause=e) from e

        reply = clean_reply(response.content)
        if not reply:
            raise InterpreterError("Fallback interpreter returned an empty reply")

        logger.debug(
            "interpreter_replied",
            provider=self._provider.provider_name,
            model=response.model,
            reply_length=len(reply),
        )
        return reply
