"""Audit domain models."""

from frontdesk.audit.models.event import MILESTONE_EVENTS, AuditEvent, AuditEventType

__all__ = ["AuditEvent", "AuditEventType", "MILESTONE_EVENTS"]
