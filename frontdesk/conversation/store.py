"""SessionStore abstract interface."""

from abc import ABC, abstractmethod

from frontdesk.conversation.models import CallSession


class SessionStore(ABC):
    """Abstract interface for the transient session store.

    Holds the serialized CallSession between turns, keyed by call id.
    Every save refreshes the time-to-live. Writes are last-write-wins.

    Implementations raise StoreError subclasses on backend failure.
    """

    @abstractmethod
    async def get(self, call_id: str) -> CallSession | None:
        """Get a session by call id, or None if absent or expired."""
        pass

    @abstractmethod
    async def save(self, session: CallSession, ttl_seconds: int | None = None) -> str:
        """Save a session, returning its call id."""
        pass

    @abstractmethod
    async def delete(self, call_id: str) -> bool:
        """Delete a session."""
        pass
