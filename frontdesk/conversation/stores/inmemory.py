"""In-memory implementation of SessionStore."""

import time
from collections.abc import Callable
from datetime import UTC, datetime

from frontdesk.conversation.models import CallSession
from frontdesk.conversation.store import SessionStore


class InMemorySessionStore(SessionStore):
    """In-memory implementation of SessionStore for testing and development.

    Entries expire after their TTL, measured on the injected clock.
    Sessions are stored as JSON so callers never share live objects
    with the store. Not suitable for production use.
    """

    def __init__(
        self,
        default_ttl_seconds: int = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = default_ttl_seconds
        self._clock = clock
        self._sessions: dict[str, tuple[str, float]] = {}

    async def get(self, call_id: str) -> CallSession | None:
        entry = self._sessions.get(call_id)
        if entry is None:
            return None
        data, expires_at = entry
        if self._clock() >= expires_at:
            del self._sessions[call_id]
            return None
        return CallSession.model_validate_json(data)

    async def save(self, session: CallSession, ttl_seconds: int | None = None) -> str:
        session.updated_at = datetime.now(UTC)
        ttl = ttl_seconds if ttl_seconds is not None else self._default_ttl
        self._sessions[session.call_id] = (
            session.model_dump_json(),
            self._clock() + ttl,
        )
        return session.call_id

    async def delete(self, call_id: str) -> bool:
        if call_id in self._sessions:
            del self._sessions[call_id]
            return True
        return False
