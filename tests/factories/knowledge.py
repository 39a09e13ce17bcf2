"""Test factories for knowledge cascade models."""

import asyncio
from itertools import count

from frontdesk.knowledge.models import KnowledgeEntry, SourceDescriptor, SourceResult
from frontdesk.knowledge.sources.base import KnowledgeSource

_entry_ids = count(1)


class KnowledgeEntryFactory:
    """Factory for creating KnowledgeEntry instances for testing."""

    @staticmethod
    def create(
        *,
        entry_id: str | None = None,
        question: str = "What are your business hours?",
        answer: str = "We are open Monday to Friday, 8am to 6pm.",
        keywords: list[str] | None = None,
        category: str | None = None,
        active: bool = True,
    ) -> KnowledgeEntry:
        return KnowledgeEntry(
            entry_id=entry_id or f"entry-{next(_entry_ids)}",
            question=question,
            answer=answer,
            keywords=keywords if keywords is not None else ["hours", "open"],
            category=category,
            active=active,
        )


class SourceDescriptorFactory:
    """Factory for creating SourceDescriptor instances for testing."""

    @staticmethod
    def create(
        source_id: str,
        priority: int = 1,
        confidence_threshold: float = 0.5,
        enabled: bool = True,
    ) -> SourceDescriptor:
        return SourceDescriptor(
            source_id=source_id,
            priority=priority,
            confidence_threshold=confidence_threshold,
            enabled=enabled,
        )


class StubSource(KnowledgeSource):
    """Knowledge source returning a fixed result.

    Records every query so tests can assert which sources were reached.
    """

    def __init__(
        self,
        source_id: str,
        confidence: float = 0.0,
        response: str | None = "stub response",
        keywords: list[str] | None = None,
        error: Exception | None = None,
        delay_seconds: float = 0.0,
        uses_prefilter: bool = False,
    ) -> None:
        super().__init__(source_id)
        self.result = SourceResult(
            confidence=confidence,
            response=response,
            metadata={"source_id": source_id},
        )
        self.keywords = keywords or []
        self.error = error
        self.delay_seconds = delay_seconds
        self.uses_prefilter = uses_prefilter
        self.queries: list[str] = []
        self.keyword_loads = 0

    async def query(self, tenant_id: str, query: str) -> SourceResult:
        self.queries.append(query)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.result

    async def load_keywords(self, tenant_id: str) -> list[str]:
        self.keyword_loads += 1
        return list(self.keywords)
