"""Audit: call archive, audit events and event publishing."""

from frontdesk.audit.models import AuditEvent, AuditEventType
from frontdesk.audit.publisher import (
    AuditStoreEventPublisher,
    EventPublisher,
    InMemoryEventPublisher,
)
from frontdesk.audit.store import AuditStore
from frontdesk.audit.stores import InMemoryAuditStore

__all__ = [
    "AuditEvent",
    "AuditEventType",
    "AuditStore",
    "AuditStoreEventPublisher",
    "EventPublisher",
    "InMemoryAuditStore",
    "InMemoryEventPublisher",
]
