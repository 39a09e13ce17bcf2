"""Knowledge content repository.

Read-side interface over the tenant's QnA entries and fallback
categories. Authoring lives outside this system; whoever edits content
must call ``KnowledgeCascade.invalidate`` afterwards.
"""

from abc import ABC, abstractmethod

from frontdesk.knowledge.models import FallbackCategory, KnowledgeEntry


class KnowledgeRepository(ABC):
    """Abstract interface for knowledge content."""

    @abstractmethod
    async def list_entries(self, tenant_id: str, source_id: str) -> list[KnowledgeEntry]:
        """Return every entry (active or not) of a tenant's source."""
        pass

    @abstractmethod
    async def get_fallback_categories(self, tenant_id: str) -> list[FallbackCategory] | None:
        """Return tenant-specific fallback categories, or None for defaults."""
        pass


class InMemoryKnowledgeRepository(KnowledgeRepository):
    """In-memory repository for testing and development."""

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], list[KnowledgeEntry]] = {}
        self._fallback: dict[str, list[FallbackCategory]] = {}

    def set_entries(
        self, tenant_id: str, source_id: str, entries: list[KnowledgeEntry]
    ) -> None:
        self._entries[(tenant_id, source_id)] = list(entries)

    def add_entry(self, tenant_id: str, source_id: str, entry: KnowledgeEntry) -> None:
        self._entries.setdefault((tenant_id, source_id), []).append(entry)

    def set_fallback_categories(
        self, tenant_id: str, categories: list[FallbackCategory]
    ) -> None:
        self._fallback[tenant_id] = list(categories)

    async def list_entries(self, tenant_id: str, source_id: str) -> list[KnowledgeEntry]:
        return list(self._entries.get((tenant_id, source_id), []))

    async def get_fallback_categories(self, tenant_id: str) -> list[FallbackCategory] | None:
        categories = self._fallback.get(tenant_id)
        return list(categories) if categories is not None else None
