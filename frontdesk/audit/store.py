"""AuditStore abstract interface."""

from abc import ABC, abstractmethod

from frontdesk.audit.models import AuditEvent
from frontdesk.conversation.models import CallSession


class AuditStore(ABC):
    """Abstract interface for the permanent call archive.

    Receives finalized sessions at call end and audit events during the
    call. Historical queries beyond lookup by call id are out of scope.
    """

    @abstractmethod
    async def archive_session(self, session: CallSession) -> str:
        """Archive a finalized session, returning its call id."""
        pass

    @abstractmethod
    async def get_archived_session(self, call_id: str) -> CallSession | None:
        """Get an archived session by call id."""
        pass

    @abstractmethod
    async def save_event(self, event: AuditEvent) -> None:
        """Save an audit event."""
        pass

    @abstractmethod
    async def list_events_by_call(
        self,
        call_id: str,
        *,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """List audit events for a call in chronological order."""
        pass
