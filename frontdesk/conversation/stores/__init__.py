"""Session store implementations."""

from frontdesk.conversation.stores.factory import create_session_store
from frontdesk.conversation.stores.inmemory import InMemorySessionStore
from frontdesk.conversation.stores.redis import RedisSessionStore

__all__ = ["InMemorySessionStore", "RedisSessionStore", "create_session_store"]
