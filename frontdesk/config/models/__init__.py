"""Configuration model exports.

This module exports all configuration models for easy access:

    from frontdesk.config.models import CascadeConfig, StorageConfig
"""

from frontdesk.config.models.cascade import (
    CascadeCacheConfig,
    CascadeConfig,
    CascadeRetryConfig,
)
from frontdesk.config.models.interpreter import InterpreterConfig
from frontdesk.config.models.observability import (
    LoggingConfig,
    MetricsConfig,
    ObservabilityConfig,
)
from frontdesk.config.models.storage import (
    ArchiveStoreConfig,
    SessionStoreConfig,
    StorageConfig,
)

__all__ = [
    "ArchiveStoreConfig",
    "CascadeCacheConfig",
    "CascadeConfig",
    "CascadeRetryConfig",
    "InterpreterConfig",
    "LoggingConfig",
    "MetricsConfig",
    "ObservabilityConfig",
    "SessionStoreConfig",
    "StorageConfig",
]
