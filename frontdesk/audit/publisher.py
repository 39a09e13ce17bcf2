"""Event publishers for the alerting collaborator."""

from abc import ABC, abstractmethod

from frontdesk.audit.models import AuditEvent, AuditEventType
from frontdesk.audit.store import AuditStore
from frontdesk.errors import StoreError
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


class EventPublisher(ABC):
    """Receives structured audit events emitted by the core."""

    @abstractmethod
    async def publish(self, event: AuditEvent) -> None:
        """Publish one event. Implementations must not raise."""
        pass


class InMemoryEventPublisher(EventPublisher):
    """Collects events in a list. Used in tests and development."""

    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def publish(self, event: AuditEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: AuditEventType) -> list[AuditEvent]:
        return [e for e in self.events if e.event_type == event_type]


class AuditStoreEventPublisher(EventPublisher):
    """Writes events to the AuditStore so they are kept with the archive."""

    def __init__(self, store: AuditStore) -> None:
        self._store = store

    async def publish(self, event: AuditEvent) -> None:
        try:
            await self._store.save_event(event)
        except StoreError as e:
            logger.warning(
                "audit_event_save_failed",
                call_id=event.call_id,
                event_type=event.event_type.value,
                error=str(e),
            )
