"""Audit store implementations."""

from frontdesk.audit.stores.inmemory import InMemoryAuditStore

__all__ = ["InMemoryAuditStore"]
