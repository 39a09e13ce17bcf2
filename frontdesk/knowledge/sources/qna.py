"""Question/answer knowledge source."""

from frontdesk.errors import SourceUnavailableError, StoreError
from frontdesk.knowledge.models import KnowledgeEntry, SourceResult
from frontdesk.knowledge.repository import KnowledgeRepository
from frontdesk.knowledge.scoring import blended_confidence, matched_keywords
from frontdesk.knowledge.sources.base import KnowledgeSource
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)


class QnAKnowledgeSource(KnowledgeSource):
    """Scores a tenant's active entries and returns the best one.

    Serves company QnA, trade QnA and templates alike; each is a
    separate instance with its own ``source_id``.
    """

    def __init__(self, source_id: str, repository: KnowledgeRepository) -> None:
        super().__init__(source_id)
        self._repository = repository

    async def _active_entries(self, tenant_id: str) -> list[KnowledgeEntry]:
        try:
            entries = await self._repository.list_entries(tenant_id, self.source_id)
        except StoreError as e:
            raise SourceUnavailableError(
                f"Failed to load entries for {self.source_id}",
                source_id=self.source_id,
                cause=e,
            ) from e
        return [entry for entry in entries if entry.active]

    async def load_keywords(self, tenant_id: str) -> list[str]:
        keywords: set[str] = set()
        for entry in await self._active_entries(tenant_id):
            keywords.update(kw.lower() for kw in entry.keywords)
        logger.debug(
            "keyword_index_built",
            tenant_id=tenant_id,
            source_id=self.source_id,
            keyword_count=len(keywords),
        )
        return sorted(keywords)

    async def query(self, tenant_id: str, query: str) -> SourceResult:
        entries = await self._active_entries(tenant_id)
        if not entries:
            return SourceResult(metadata={"source_id": self.source_id, "reason": "no_entries"})

        best: KnowledgeEntry | None = None
        best_confidence = 0.0
        for entry in entries:
            confidence = blended_confidence(query, entry.question, entry.keywords)
            if confidence > best_confidence:
                best, best_confidence = entry, confidence

        if best is None:
            return SourceResult(metadata={"source_id": self.source_id, "reason": "no_overlap"})

        return SourceResult(
            confidence=best_confidence,
            response=best.answer,
            metadata={
                "source_id": self.source_id,
                "entry_id": best.entry_id,
                "category": best.category,
                "matched_keywords": matched_keywords(query, best.keywords),
            },
        )
