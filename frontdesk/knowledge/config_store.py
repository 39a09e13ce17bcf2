"""Per-tenant source ranking and personality configuration."""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from frontdesk.errors import ConfigurationError
from frontdesk.knowledge.models import PersonalityProfile, SourceDescriptor

COMPANY_QNA = "company_qna"
TRADE_QNA = "trade_qna"
TEMPLATES = "templates"
IN_HOUSE_FALLBACK = "in_house_fallback"

DEFAULT_SOURCE_DESCRIPTORS: tuple[SourceDescriptor, ...] = (
    SourceDescriptor(source_id=COMPANY_QNA, priority=1, confidence_threshold=0.55),
    SourceDescriptor(source_id=TRADE_QNA, priority=2, confidence_threshold=0.75),
    SourceDescriptor(source_id=TEMPLATES, priority=3, confidence_threshold=0.7),
    SourceDescriptor(source_id=IN_HOUSE_FALLBACK, priority=4, confidence_threshold=0.5),
)


def parse_source_descriptors(
    payload: list[SourceDescriptor | dict[str, Any]],
) -> list[SourceDescriptor]:
    """Validate a tenant's source list.

    Raises:
        ConfigurationError: On unknown keys, missing required keys,
            out-of-range values or duplicate source ids
    """
    descriptors: list[SourceDescriptor] = []
    for item in payload:
        if isinstance(item, SourceDescriptor):
            descriptors.append(item)
            continue
        try:
            descriptors.append(SourceDescriptor.model_validate(item))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid source descriptor: {e}", cause=e) from e

    ids = [d.source_id for d in descriptors]
    if len(set(ids)) != len(ids):
        raise ConfigurationError("Duplicate source ids in source configuration")
    return descriptors


class SourceConfigStore(ABC):
    """Abstract interface for tenant cascade configuration.

    Implementations raise StoreError when the backend is unreachable.
    """

    @abstractmethod
    async def get_sources(self, tenant_id: str) -> list[SourceDescriptor] | None:
        """Return the tenant's source descriptors, or None when not configured."""
        pass

    @abstractmethod
    async def get_personality(self, tenant_id: str) -> PersonalityProfile | None:
        """Return the tenant's personality profile, or None when not configured."""
        pass


class InMemorySourceConfigStore(SourceConfigStore):
    """In-memory config store for testing and development."""

    def __init__(self) -> None:
        self._sources: dict[str, list[SourceDescriptor]] = {}
        self._personalities: dict[str, PersonalityProfile] = {}

    def set_sources(
        self, tenant_id: str, sources: list[SourceDescriptor | dict[str, Any]]
    ) -> None:
        self._sources[tenant_id] = parse_source_descriptors(sources)

    def set_personality(self, tenant_id: str, profile: PersonalityProfile) -> None:
        self._personalities[tenant_id] = profile

    async def get_sources(self, tenant_id: str) -> list[SourceDescriptor] | None:
        sources = self._sources.get(tenant_id)
        return list(sources) if sources is not None else None

    async def get_personality(self, tenant_id: str) -> PersonalityProfile | None:
        return self._personalities.get(tenant_id)
