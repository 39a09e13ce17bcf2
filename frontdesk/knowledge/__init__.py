"""Knowledge source cascade.

Ranked knowledge sources, the caches in front of them, tenant
personality styling and the cascade that ties them together.
"""

from frontdesk.knowledge.cache import TTLCache
from frontdesk.knowledge.cascade import (
    ERROR_FALLBACK_RESPONSE,
    NO_MATCH_RESPONSE,
    KnowledgeCascade,
    order_sources,
)
from frontdesk.knowledge.config_store import (
    DEFAULT_SOURCE_DESCRIPTORS,
    InMemorySourceConfigStore,
    SourceConfigStore,
    parse_source_descriptors,
)
from frontdesk.knowledge.models import (
    AttemptOutcome,
    CascadeOutcome,
    CascadeResult,
    FallbackCategory,
    KnowledgeEntry,
    PersonalityProfile,
    SourceAttempt,
    SourceDescriptor,
    SourceResult,
)
from frontdesk.knowledge.repository import InMemoryKnowledgeRepository, KnowledgeRepository
from frontdesk.knowledge.styling import ResponseStyler

__all__ = [
    "AttemptOutcome",
    "CascadeOutcome",
    "CascadeResult",
    "DEFAULT_SOURCE_DESCRIPTORS",
    "ERROR_FALLBACK_RESPONSE",
    "FallbackCategory",
    "InMemoryKnowledgeRepository",
    "InMemorySourceConfigStore",
    "KnowledgeCascade",
    "KnowledgeEntry",
    "KnowledgeRepository",
    "NO_MATCH_RESPONSE",
    "PersonalityProfile",
    "ResponseStyler",
    "SourceAttempt",
    "SourceConfigStore",
    "SourceDescriptor",
    "SourceResult",
    "TTLCache",
    "order_sources",
    "parse_source_descriptors",
]
