"""Knowledge source cascade configuration models."""

from pydantic import BaseModel, Field


class CascadeRetryConfig(BaseModel):
    """Retry policy for individual source queries."""

    max_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts per source query, including the first",
    )
    backoff_base_ms: int = Field(
        default=50,
        ge=0,
        description="Base backoff delay (milliseconds)",
    )
    backoff_max_ms: int = Field(
        default=400,
        ge=0,
        description="Backoff delay cap (milliseconds)",
    )


class CascadeCacheConfig(BaseModel):
    """TTLs and sizing for the process-wide cascade caches."""

    keyword_index_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="Keyword index cache TTL (seconds)",
    )
    query_result_ttl_seconds: int = Field(
        default=300,
        gt=0,
        description="Query result cache TTL (seconds)",
    )
    source_config_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Per-tenant source list cache TTL (seconds)",
    )
    max_entries: int = Field(
        default=10000,
        gt=0,
        description="Maximum entries per cache before oldest are evicted",
    )
    shards: int = Field(
        default=16,
        ge=1,
        description="Lock shards per cache",
    )


class CascadeConfig(BaseModel):
    """Configuration for the knowledge source cascade."""

    query_timeout_ms: int = Field(
        default=800,
        gt=0,
        description="Hard timeout for a single source query (milliseconds)",
    )
    retry: CascadeRetryConfig = Field(
        default_factory=CascadeRetryConfig,
        description="Source query retry policy",
    )
    cache: CascadeCacheConfig = Field(
        default_factory=CascadeCacheConfig,
        description="Cache settings",
    )
    style_seed: int | None = Field(
        default=None,
        description="Seed for response phrasing selection (None = unseeded)",
    )
