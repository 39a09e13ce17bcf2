"""AuditEvent model for audit domain."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class AuditEventType(str, Enum):
    """Structured events emitted for alerting and audit."""

    LOOP_DETECTED = "loop_detected"
    ESCALATION_TRIGGERED = "escalation_triggered"
    GOVERNANCE_VIOLATION = "governance_violation"
    CASCADE_ERROR = "cascade_error"
    TURN_ABANDONED = "turn_abandoned"
    PHASE_TRANSITION = "phase_transition"
    BOOKING_LOCKED = "booking_locked"
    CALL_ENDED = "call_ended"


MILESTONE_EVENTS: frozenset[AuditEventType] = frozenset({
    AuditEventType.PHASE_TRANSITION,
    AuditEventType.BOOKING_LOCKED,
    AuditEventType.CALL_ENDED,
})


class AuditEvent(BaseModel):
    """Structured event consumed by the alerting subsystem.

    The core never formats or delivers human-readable alerts; it only
    hands these events to an EventPublisher.
    """

    model_config = ConfigDict(frozen=True)

    id: UUID = Field(default_factory=uuid4, description="Unique identifier")
    tenant_id: str = Field(..., description="Owning tenant")
    call_id: str = Field(..., description="Related call")
    event_type: AuditEventType = Field(..., description="Event classification")
    event_data: dict[str, Any] = Field(default_factory=dict, description="Event payload")
    turn: int | None = Field(default=None, description="Related turn index")
    timestamp: datetime = Field(default_factory=utc_now, description="Event time")
