"""Unit tests for RedisSessionStore against a mocked client."""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from frontdesk.config.models.storage import SessionStoreConfig
from frontdesk.conversation.stores import RedisSessionStore
from frontdesk.errors import StoreConnectionError, StoreError
from tests.factories import SessionFactory


@pytest.fixture
def mock_redis():
    """Create mock Redis client."""
    redis = AsyncMock()
    redis.get = AsyncMock(return_value=None)
    redis.setex = AsyncMock(return_value=True)
    redis.delete = AsyncMock(return_value=1)
    redis.ping = AsyncMock(return_value=True)
    return redis


@pytest.fixture
def store(mock_redis) -> RedisSessionStore:
    return RedisSessionStore(
        mock_redis,
        SessionStoreConfig(backend="redis", ttl_seconds=300, key_prefix="conversation-memory"),
    )


class TestRedisSessionStoreKeys:
    """Tests for Redis key formatting."""

    def test_key_format(self, store: RedisSessionStore) -> None:
        assert store._key("call-42") == "conversation-memory:call-42"

    def test_custom_prefix(self, mock_redis) -> None:
        store = RedisSessionStore(mock_redis, SessionStoreConfig(key_prefix="test_session"))
        assert store._key("call-42") == "test_session:call-42"


class TestRedisSessionStoreSave:
    """Tests for save."""

    @pytest.mark.asyncio
    async def test_save_uses_setex_with_default_ttl(self, store, mock_redis) -> None:
        """Save writes JSON under the call key with the configured TTL."""
        session = SessionFactory.session(call_id="call-42")
        call_id = await store.save(session)

        assert call_id == "call-42"
        key, ttl, payload = mock_redis.setex.call_args.args
        assert key == "conversation-memory:call-42"
        assert ttl == 300
        assert '"call_id":"call-42"' in payload

    @pytest.mark.asyncio
    async def test_save_with_explicit_ttl(self, store, mock_redis) -> None:
        await store.save(SessionFactory.session(), ttl_seconds=60)
        assert mock_redis.setex.call_args.args[1] == 60

    @pytest.mark.asyncio
    async def test_save_wraps_redis_errors(self, store, mock_redis) -> None:
        mock_redis.setex.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreConnectionError) as exc_info:
            await store.save(SessionFactory.session())
        assert isinstance(exc_info.value.cause, RedisConnectionError)


class TestRedisSessionStoreGet:
    """Tests for get."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store, mock_redis) -> None:
        assert await store.get("call-missing") is None
        mock_redis.get.assert_awaited_once_with("conversation-memory:call-missing")

    @pytest.mark.asyncio
    async def test_get_round_trips_saved_payload(self, store, mock_redis) -> None:
        session = SessionFactory.session(call_id="call-42")
        await store.save(session)
        mock_redis.get.return_value = mock_redis.setex.call_args.args[2].encode()

        retrieved = await store.get("call-42")
        assert retrieved is not None
        assert retrieved.call_id == "call-42"
        assert retrieved.config.version == session.config.version

    @pytest.mark.asyncio
    async def test_corrupted_payload_raises_store_error(self, store, mock_redis) -> None:
        mock_redis.get.return_value = b'{"not": "a session"}'

        with pytest.raises(StoreError):
            await store.get("call-42")

    @pytest.mark.asyncio
    async def test_get_wraps_redis_errors(self, store, mock_redis) -> None:
        mock_redis.get.side_effect = RedisConnectionError("down")

        with pytest.raises(StoreConnectionError):
            await store.get("call-42")


class TestRedisSessionStoreDelete:
    """Tests for delete and health check."""

    @pytest.mark.asyncio
    async def test_delete(self, store, mock_redis) -> None:
        assert await store.delete("call-42") is True
        mock_redis.delete.assert_awaited_once_with("conversation-memory:call-42")

    @pytest.mark.asyncio
    async def test_delete_missing(self, store, mock_redis) -> None:
        mock_redis.delete.return_value = 0
        assert await store.delete("call-42") is False

    @pytest.mark.asyncio
    async def test_health_check(self, store, mock_redis) -> None:
        assert await store.health_check() is True
        mock_redis.ping.side_effect = RedisConnectionError("down")
        assert await store.health_check() is False
