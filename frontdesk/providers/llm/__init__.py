"""LLM providers for the fallback interpreter.

The core only depends on the LLMProvider interface; MockLLMProvider is
shipped for tests and development.
"""

from frontdesk.providers.llm.base import (
    LLMMessage,
    LLMProvider,
    LLMResponse,
    ModelError,
    ProviderError,
    RateLimitError,
    TokenUsage,
)
from frontdesk.providers.llm.mock import MockLLMProvider

__all__ = [
    # Data models
    "LLMMessage",
    "LLMResponse",
    "TokenUsage",
    # Interface
    "LLMProvider",
    # Errors
    "ProviderError",
    "RateLimitError",
    "ModelError",
    # Testing
    "MockLLMProvider",
]
