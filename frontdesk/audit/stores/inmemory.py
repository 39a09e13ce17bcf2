"""In-memory implementation of AuditStore."""

from frontdesk.audit.models import AuditEvent
from frontdesk.audit.store import AuditStore
from frontdesk.conversation.models import CallSession


class InMemoryAuditStore(AuditStore):
    """In-memory implementation of AuditStore for testing and development.

    Not suitable for production use.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, CallSession] = {}
        self._events: list[AuditEvent] = []

    async def archive_session(self, session: CallSession) -> str:
        """Archive a deep copy so later mutation cannot alter the record."""
        self._sessions[session.call_id] = session.model_copy(deep=True)
        return session.call_id

    async def get_archived_session(self, call_id: str) -> CallSession | None:
        return self._sessions.get(call_id)

    async def save_event(self, event: AuditEvent) -> None:
        self._events.append(event)

    async def list_events_by_call(
        self,
        call_id: str,
        *,
        limit: int = 100,
    ) -> list[AuditEvent]:
        results = [event for event in self._events if event.call_id == call_id]
        results.sort(key=lambda x: x.timestamp)
        return results[:limit]
