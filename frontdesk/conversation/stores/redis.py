"""Redis implementation of SessionStore.

Sessions live under ``{key_prefix}:{call_id}`` and are written with
SETEX, so every save refreshes the TTL.
"""

import redis.asyncio as redis
from pydantic import ValidationError

from frontdesk.config.models.storage import SessionStoreConfig
from frontdesk.conversation.models import CallSession
from frontdesk.conversation.store import SessionStore
from frontdesk.errors import StoreConnectionError, StoreError
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


class RedisSessionStore(SessionStore):
    """Redis implementation of SessionStore."""

    def __init__(
        self,
        client: redis.Redis,
        config: SessionStoreConfig | None = None,
    ) -> None:
        """Initialize Redis session store.

        Args:
            client: Redis client instance
            config: Session store configuration (uses defaults if not provided)
        """
        self._client = client
        self._config = config or SessionStoreConfig(backend="redis")
        self._prefix = self._config.key_prefix

    def _key(self, call_id: str) -> str:
        return f"{self._prefix}:{call_id}"

    async def get(self, call_id: str) -> CallSession | None:
        try:
            data = await self._client.get(self._key(call_id))
        except redis.RedisError as e:
            logger.error("redis_get_error", call_id=call_id, error=str(e))
            raise StoreConnectionError(f"Failed to get session: {e}", cause=e) from e

        if not data:
            logger.debug("session_not_found", call_id=call_id)
            return None

        try:
            session = CallSession.model_validate_json(data)
        except ValidationError as e:
            logger.warning("session_corrupted", call_id=call_id, error=str(e))
            raise StoreError(f"Corrupted session data for {call_id}", cause=e) from e

        logger.debug("session_retrieved", call_id=call_id, turns=len(session.turns))
        return session

    async def save(self, session: CallSession, ttl_seconds: int | None = None) -> str:
        ttl = ttl_seconds if ttl_seconds is not None else self._config.ttl_seconds
        try:
            await self._client.setex(
                self._key(session.call_id),
                ttl,
                session.model_dump_json(),
            )
        except redis.RedisError as e:
            logger.error("redis_save_error", call_id=session.call_id, error=str(e))
            raise StoreConnectionError(f"Failed to save session: {e}", cause=e) from e

        logger.debug(
            "session_saved",
            call_id=session.call_id,
            turns=len(session.turns),
            ttl=ttl,
        )
        return session.call_id

    async def delete(self, call_id: str) -> bool:
        try:
            deleted = await self._client.delete(self._key(call_id))
        except redis.RedisError as e:
            logger.error("redis_delete_error", call_id=call_id, error=str(e))
            raise StoreConnectionError(f"Failed to delete session: {e}", cause=e) from e
        return bool(deleted)

    async def health_check(self) -> bool:
        """Check Redis connection health."""
        try:
            await self._client.ping()
            return True
        except redis.RedisError:
            return False
