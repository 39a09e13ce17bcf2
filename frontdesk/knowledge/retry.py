"""Timeout and retry wrapper for knowledge source queries."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from frontdesk.errors import SourceTimeoutError, SourceUnavailableError
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def backoff_delay_ms(attempt: int, base_ms: int, max_ms: int) -> int:
    """Capped exponential delay before retry number ``attempt`` (1-based)."""
    return min(base_ms * (2 ** (attempt - 1)), max_ms)


async def call_with_retry(
    func: Callable[[], Awaitable[T]],
    *,
    source_id: str,
    timeout_seconds: float,
    max_attempts: int = 1,
    backoff_base_ms: int = 0,
    backoff_max_ms: int = 0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``func`` under a hard timeout, retrying transient failures.

    Only SourceUnavailableError is retried; a timeout is final.

    Raises:
        SourceTimeoutError: If an attempt exceeds ``timeout_seconds``
        SourceUnavailableError: If every attempt failed as unavailable
    """
    attempt = 1
    while True:
        try:
            return await asyncio.wait_for(func(), timeout=timeout_seconds)
        except TimeoutError as e:
            raise SourceTimeoutError(
                f"Source {source_id} timed out after {timeout_seconds:.3f}s",
                source_id=source_id,
                cause=e,
            ) from e
        except SourceUnavailableError as e:
            if attempt >= max_attempts:
                raise
            delay_ms = backoff_delay_ms(attempt, backoff_base_ms, backoff_max_ms)
            logger.info(
                "source_query_retry",
                source_id=source_id,
                attempt=attempt,
                delay_ms=delay_ms,
                error=str(e),
            )
            await sleep(delay_ms / 1000)
            attempt += 1
