"""Knowledge source interface."""

from abc import ABC, abstractmethod

from frontdesk.knowledge.models import SourceResult


class KnowledgeSource(ABC):
    """A rankable source of candidate replies.

    Sources that take part in the keyword pre-filter expose their keyword
    index through ``load_keywords``; the cascade caches it per tenant.
    """

    uses_prefilter: bool = True

    def __init__(self, source_id: str) -> None:
        self.source_id = source_id

    @abstractmethod
    async def query(self, tenant_id: str, query: str) -> SourceResult:
        """Return the best candidate for ``query``.

        Raises:
            SourceError: If the source cannot answer
        """
        pass

    async def load_keywords(self, tenant_id: str) -> list[str]:
        """Lowercased keyword index used by the pre-filter."""
        return []
