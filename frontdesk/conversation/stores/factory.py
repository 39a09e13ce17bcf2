"""Factory for creating session stores from configuration."""

import redis.asyncio as redis

from frontdesk.config.models.storage import SessionStoreConfig
from frontdesk.conversation.store import SessionStore
from frontdesk.conversation.stores.inmemory import InMemorySessionStore
from frontdesk.conversation.stores.redis import RedisSessionStore
from frontdesk.errors import ConfigurationError
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


def create_session_store(config: SessionStoreConfig) -> SessionStore:
    """Create a session store based on configuration.

    Args:
        config: Session store configuration

    Returns:
        Configured SessionStore instance

    Raises:
        ConfigurationError: If the redis backend has no connection URL
    """
    if config.backend == "inmemory":
        logger.info("creating_inmemory_session_store", ttl=config.ttl_seconds)
        return InMemorySessionStore(default_ttl_seconds=config.ttl_seconds)

    if config.backend == "redis":
        if not config.connection_url:
            raise ConfigurationError(
                "storage.session.connection_url is required for the redis backend"
            )
        logger.info(
            "creating_redis_session_store",
            ttl=config.ttl_seconds,
            key_prefix=config.key_prefix,
        )
        client = redis.Redis.from_url(config.connection_url)
        return RedisSessionStore(client, config)

    raise ConfigurationError(f"Unknown session store backend: {config.backend}")
