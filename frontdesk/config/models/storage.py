"""Storage backend configuration models."""

from typing import Literal

from pydantic import BaseModel, Field

SessionBackendType = Literal["inmemory", "redis"]
ArchiveBackendType = Literal["inmemory"]


class SessionStoreConfig(BaseModel):
    """Transient session store configuration.

    Sessions only need to outlive the active call, so the TTL is short
    and refreshed on every save.
    """

    backend: SessionBackendType = Field(
        default="inmemory",
        description="Backend type",
    )
    connection_url: str | None = Field(
        default=None,
        description="Connection URL (from env var)",
    )
    ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="Session TTL, refreshed on every save (seconds)",
    )
    key_prefix: str = Field(
        default="conversation-memory",
        description="Key prefix for stored sessions",
    )


class ArchiveStoreConfig(BaseModel):
    """Permanent archive configuration."""

    backend: ArchiveBackendType = Field(
        default="inmemory",
        description="Backend type",
    )


class StorageConfig(BaseModel):
    """Configuration for all storage backends."""

    session: SessionStoreConfig = Field(
        default_factory=SessionStoreConfig,
        description="Transient session store",
    )
    archive: ArchiveStoreConfig = Field(
        default_factory=ArchiveStoreConfig,
        description="Call archive store",
    )
