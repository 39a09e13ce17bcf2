"""Tests for create_session_store."""

import pytest

from frontdesk.config.models.storage import SessionStoreConfig
from frontdesk.conversation.stores import (
    InMemorySessionStore,
    RedisSessionStore,
    create_session_store,
)
from frontdesk.errors import ConfigurationError


class TestCreateSessionStore:
    """Backend selection from configuration."""

    def test_inmemory_backend(self) -> None:
        store = create_session_store(SessionStoreConfig(backend="inmemory"))
        assert isinstance(store, InMemorySessionStore)

    def test_redis_backend(self) -> None:
        """The client is created lazily; no connection is attempted."""
        store = create_session_store(
            SessionStoreConfig(backend="redis", connection_url="redis://localhost:6379/0")
        )
        assert isinstance(store, RedisSessionStore)

    def test_redis_without_url_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="connection_url"):
            create_session_store(SessionStoreConfig(backend="redis"))
