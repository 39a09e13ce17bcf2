"""Tests for the knowledge source cascade."""

import asyncio
import random
from unittest.mock import AsyncMock

import pytest

from frontdesk.config.models.cascade import CascadeConfig, CascadeRetryConfig
from frontdesk.errors import SourceUnavailableError, StoreConnectionError
from frontdesk.knowledge import (
    ERROR_FALLBACK_RESPONSE,
    NO_MATCH_RESPONSE,
    AttemptOutcome,
    CascadeOutcome,
    InMemorySourceConfigStore,
    KnowledgeCascade,
    PersonalityProfile,
    ResponseStyler,
    SourceConfigStore,
    SourceResult,
    order_sources,
)
from frontdesk.knowledge.config_store import COMPANY_QNA, IN_HOUSE_FALLBACK, TEMPLATES, TRADE_QNA
from frontdesk.knowledge.sources.base import KnowledgeSource
from tests.factories import SourceDescriptorFactory, StubSource

TENANT_ID = "tenant-acme"


class FlakySource(KnowledgeSource):
    """Unavailable for the first ``failures`` queries."""

    uses_prefilter = False

    def __init__(self, source_id: str, failures: int) -> None:
        super().__init__(source_id)
        self.failures = failures
        self.calls = 0

    async def query(self, tenant_id: str, query: str) -> SourceResult:
        self.calls += 1
        if self.calls <= self.failures:
            raise SourceUnavailableError("warming up", source_id=self.source_id)
        return SourceResult(confidence=0.9, response="recovered")


class SlowIndexSource(StubSource):
    """Keyword index that takes too long to load."""

    async def load_keywords(self, tenant_id: str) -> list[str]:
        self.keyword_loads += 1
        await asyncio.sleep(0.5)
        return list(self.keywords)


@pytest.fixture
def config_store() -> InMemorySourceConfigStore:
    return InMemorySourceConfigStore()


def _config(max_attempts: int = 1, timeout_ms: int = 200) -> CascadeConfig:
    return CascadeConfig(
        query_timeout_ms=timeout_ms,
        retry=CascadeRetryConfig(max_attempts=max_attempts, backoff_base_ms=0, backoff_max_ms=0),
    )


def _cascade(sources, config_store, **kwargs) -> KnowledgeCascade:
    kwargs.setdefault("config", _config())
    return KnowledgeCascade(
        sources=sources,
        config_store=config_store,
        styler=ResponseStyler(random.Random(7)),
        **kwargs,
    )


def _configure(config_store, *specs: tuple[str, int, float]) -> None:
    config_store.set_sources(
        TENANT_ID,
        [
            SourceDescriptorFactory.create(source_id, priority=priority, confidence_threshold=t)
            for source_id, priority, t in specs
        ],
    )


class TestOrderSources:
    """Tests for order_sources."""

    def test_priority_order_and_stable_ties(self) -> None:
        descriptors = [
            SourceDescriptorFactory.create("c", priority=2),
            SourceDescriptorFactory.create("a", priority=1),
            SourceDescriptorFactory.create("b", priority=2),
            SourceDescriptorFactory.create("d", priority=1, enabled=False),
        ]
        assert [d.source_id for d in order_sources(descriptors)] == ["a", "c", "b"]

    def test_allowed_sources(self) -> None:
        descriptors = [
            SourceDescriptorFactory.create("a", priority=1),
            SourceDescriptorFactory.create("b", priority=2),
        ]
        assert [d.source_id for d in order_sources(descriptors, ["b"])] == ["b"]


class TestCascadeMatching:
    """Tests for priority and threshold handling."""

    @pytest.mark.asyncio
    async def test_first_source_over_threshold_wins(self, config_store) -> None:
        s1 = StubSource("s1", confidence=0.9, response="from s1")
        s2 = StubSource("s2", confidence=0.95, response="from s2")
        _configure(config_store, ("s1", 1, 0.8), ("s2", 2, 0.5))

        result = await _cascade([s1, s2], config_store).run(TENANT_ID, "hello")

        assert result.outcome == CascadeOutcome.MATCHED
        assert result.source_id == "s1"
        assert result.response == "from s1"
        assert s2.queries == []

    @pytest.mark.asyncio
    async def test_falls_through_to_lower_priority(self, config_store) -> None:
        """S1 at 0.7 against 0.8 loses to S2 at 0.6 against 0.5."""
        s1 = StubSource("s1", confidence=0.7, response="from s1")
        s2 = StubSource("s2", confidence=0.6, response="from s2")
        _configure(config_store, ("s1", 1, 0.8), ("s2", 2, 0.5))

        result = await _cascade([s1, s2], config_store).run(TENANT_ID, "hello")

        assert result.source_id == "s2"
        assert result.confidence == 0.6
        assert [a.outcome for a in result.trace] == [
            AttemptOutcome.BELOW_THRESHOLD,
            AttemptOutcome.MATCHED,
        ]

    @pytest.mark.asyncio
    async def test_threshold_is_inclusive(self, config_store) -> None:
        _configure(config_store, ("s1", 1, 0.6))
        result = await _cascade(
            [StubSource("s1", confidence=0.6)], config_store
        ).run(TENANT_ID, "hello")
        assert result.matched is True

    @pytest.mark.asyncio
    async def test_declaration_order_does_not_matter(self, config_store) -> None:
        s1 = StubSource("s1", confidence=0.9, response="from s1")
        s2 = StubSource("s2", confidence=0.9, response="from s2")
        _configure(config_store, ("s2", 2, 0.5), ("s1", 1, 0.5))

        result = await _cascade([s2, s1], config_store).run(TENANT_ID, "hello")
        assert result.source_id == "s1"

    @pytest.mark.asyncio
    async def test_exhaustion_returns_full_trace(self, config_store) -> None:
        sources = [StubSource(f"s{i}", confidence=0.1) for i in range(1, 4)]
        _configure(config_store, ("s1", 1, 0.5), ("s2", 2, 0.5), ("s3", 3, 0.5))

        result = await _cascade(sources, config_store).run(TENANT_ID, "hello")

        assert result.outcome == CascadeOutcome.NO_MATCH
        assert result.response == NO_MATCH_RESPONSE
        assert [a.source_id for a in result.trace] == ["s1", "s2", "s3"]
        assert all(a.outcome == AttemptOutcome.BELOW_THRESHOLD for a in result.trace)

    @pytest.mark.asyncio
    async def test_result_without_response_does_not_match(self, config_store) -> None:
        _configure(config_store, ("s1", 1, 0.5))
        result = await _cascade(
            [StubSource("s1", confidence=0.9, response=None)], config_store
        ).run(TENANT_ID, "hello")
        assert result.outcome == CascadeOutcome.NO_MATCH

    @pytest.mark.asyncio
    async def test_disabled_and_disallowed_sources_skipped(self, config_store) -> None:
        s1 = StubSource("s1", confidence=0.9)
        s2 = StubSource("s2", confidence=0.9)
        s3 = StubSource("s3", confidence=0.9)
        config_store.set_sources(TENANT_ID, [
            SourceDescriptorFactory.create("s1", priority=1, enabled=False),
            SourceDescriptorFactory.create("s2", priority=2),
            SourceDescriptorFactory.create("s3", priority=3),
        ])

        result = await _cascade([s1, s2, s3], config_store).run(
            TENANT_ID, "hello", allowed_sources=["s1", "s3"]
        )

        assert result.source_id == "s3"
        assert s1.queries == []
        assert s2.queries == []

    @pytest.mark.asyncio
    async def test_unconfigured_tenant_uses_defaults(self, config_store) -> None:
        sources = [
            StubSource(COMPANY_QNA, confidence=0.1),
            StubSource(TRADE_QNA, confidence=0.1),
            StubSource(TEMPLATES, confidence=0.1),
            StubSource(IN_HOUSE_FALLBACK, confidence=0.5, response="fallback"),
        ]
        result = await _cascade(sources, config_store).run(TENANT_ID, "hello")

        assert [a.source_id for a in result.trace] == [
            COMPANY_QNA,
            TRADE_QNA,
            TEMPLATES,
            IN_HOUSE_FALLBACK,
        ]
        assert result.source_id == IN_HOUSE_FALLBACK


class TestCascadeFailures:
    """Tests for source and configuration failures."""

    @pytest.mark.asyncio
    async def test_source_error_treated_as_zero_confidence(self, config_store) -> None:
        broken = StubSource("s1", error=RuntimeError("boom"))
        healthy = StubSource("s2", confidence=0.9, response="ok")
        _configure(config_store, ("s1", 1, 0.5), ("s2", 2, 0.5))

        result = await _cascade([broken, healthy], config_store).run(TENANT_ID, "hello")

        assert result.source_id == "s2"
        assert result.trace[0].outcome == AttemptOutcome.ERROR
        assert result.trace[0].confidence == 0.0
        assert result.has_errors is True

    @pytest.mark.asyncio
    async def test_timeout(self, config_store) -> None:
        slow = StubSource("s1", confidence=0.9, delay_seconds=0.5)
        fallback = StubSource("s2", confidence=0.5, response="fallback")
        _configure(config_store, ("s1", 1, 0.5), ("s2", 2, 0.5))

        cascade = _cascade([slow, fallback], config_store, config=_config(timeout_ms=20))
        result = await cascade.run(TENANT_ID, "hello")

        assert result.trace[0].outcome == AttemptOutcome.TIMEOUT
        assert result.source_id == "s2"

    @pytest.mark.asyncio
    async def test_keyword_index_timeout(self, config_store) -> None:
        """A slow keyword index load is bounded by the query timeout."""
        slow = SlowIndexSource("s1", confidence=0.9, keywords=["hours"], uses_prefilter=True)
        fallback = StubSource("s2", confidence=0.5, response="fallback")
        _configure(config_store, ("s1", 1, 0.5), ("s2", 2, 0.5))

        cascade = _cascade([slow, fallback], config_store, config=_config(timeout_ms=20))
        result = await cascade.run(TENANT_ID, "what are your hours")

        assert result.trace[0].outcome == AttemptOutcome.TIMEOUT
        assert result.source_id == "s2"
        assert result.response == "fallback"
        assert slow.queries == []

    @pytest.mark.asyncio
    async def test_unavailable_source_retried(self, config_store) -> None:
        flaky = FlakySource("s1", failures=1)
        _configure(config_store, ("s1", 1, 0.5))

        cascade = _cascade([flaky], config_store, config=_config(max_attempts=2))
        result = await cascade.run(TENANT_ID, "hello")

        assert result.response == "recovered"
        assert flaky.calls == 2

    @pytest.mark.asyncio
    async def test_unregistered_source(self, config_store) -> None:
        _configure(config_store, ("ghost", 1, 0.5))
        result = await _cascade([], config_store).run(TENANT_ID, "hello")

        assert result.outcome == CascadeOutcome.NO_MATCH
        assert result.trace[0].detail == "source_not_registered"

    @pytest.mark.asyncio
    async def test_config_unavailable_is_error_fallback(self) -> None:
        store = AsyncMock(spec=SourceConfigStore)
        store.get_sources.side_effect = StoreConnectionError("db down")
        source = StubSource("s1", confidence=0.9)

        result = await _cascade([source], store).run(TENANT_ID, "hello")

        assert result.outcome == CascadeOutcome.ERROR_FALLBACK
        assert result.response == ERROR_FALLBACK_RESPONSE
        assert result.metadata["error_type"] == "ConfigurationError"
        assert source.queries == []


class TestCascadeCaching:
    """Tests for the keyword index, query and config caches."""

    @pytest.mark.asyncio
    async def test_empty_keyword_index_skips_query(self, config_store) -> None:
        source = StubSource("s1", confidence=0.9, keywords=[], uses_prefilter=True)
        _configure(config_store, ("s1", 1, 0.5))
        cascade = _cascade([source], config_store)

        first = await cascade.run(TENANT_ID, "what are your hours")
        await cascade.run(TENANT_ID, "anything else")

        assert first.trace[0].outcome == AttemptOutcome.SKIPPED_PREFILTER
        assert source.queries == []
        assert source.keyword_loads == 1

    @pytest.mark.asyncio
    async def test_prefilter_overlap_queries(self, config_store) -> None:
        source = StubSource("s1", confidence=0.9, keywords=["hours"], uses_prefilter=True)
        _configure(config_store, ("s1", 1, 0.5))

        result = await _cascade([source], config_store).run(TENANT_ID, "what are your hours")

        assert result.matched is True
        assert source.queries == ["what are your hours"]

    @pytest.mark.asyncio
    async def test_query_results_cached(self, config_store) -> None:
        source = StubSource("s1", confidence=0.2)
        _configure(config_store, ("s1", 1, 0.5))
        cascade = _cascade([source], config_store)

        await cascade.run(TENANT_ID, "What are your hours?")
        result = await cascade.run(TENANT_ID, "what are your hours")

        assert len(source.queries) == 1
        assert result.trace[0].cached is True

    @pytest.mark.asyncio
    async def test_invalidate_drops_cached_results(self, config_store) -> None:
        source = StubSource("s1", confidence=0.9, keywords=["hours"], uses_prefilter=True)
        _configure(config_store, ("s1", 1, 0.5))
        cascade = _cascade([source], config_store)

        await cascade.run(TENANT_ID, "hours")
        removed = cascade.invalidate(TENANT_ID, "s1")
        await cascade.run(TENANT_ID, "hours")

        assert removed == 2
        assert len(source.queries) == 2
        assert source.keyword_loads == 2

    @pytest.mark.asyncio
    async def test_invalidate_other_tenant_keeps_cache(self, config_store) -> None:
        source = StubSource("s1", confidence=0.9)
        _configure(config_store, ("s1", 1, 0.5))
        cascade = _cascade([source], config_store)

        await cascade.run(TENANT_ID, "hours")
        assert cascade.invalidate("tenant-other") == 0
        await cascade.run(TENANT_ID, "hours")
        assert len(source.queries) == 1

    @pytest.mark.asyncio
    async def test_source_config_cached_until_invalidated(self, config_store) -> None:
        s1 = StubSource("s1", confidence=0.9, response="from s1")
        s2 = StubSource("s2", confidence=0.9, response="from s2")
        _configure(config_store, ("s1", 1, 0.5))
        cascade = _cascade([s1, s2], config_store)
        await cascade.run(TENANT_ID, "hello")

        _configure(config_store, ("s2", 1, 0.5))
        assert (await cascade.run(TENANT_ID, "hello")).source_id == "s1"

        cascade.invalidate_config(TENANT_ID)
        assert (await cascade.run(TENANT_ID, "hello")).source_id == "s2"


class TestCascadeStyling:
    """Tests for personality styling of matched replies."""

    @pytest.mark.asyncio
    async def test_personality_applied(self, config_store) -> None:
        _configure(config_store, ("s1", 1, 0.5))
        config_store.set_personality(TENANT_ID, PersonalityProfile(is_customized=True, tone="warm"))
        source = StubSource("s1", confidence=0.9, response="We are open until six.")

        result = await _cascade([source], config_store).run(TENANT_ID, "hours")

        assert result.response == "We are open until six!"
        assert result.original_response == "We are open until six."
        assert result.personality_applied is True

    @pytest.mark.asyncio
    async def test_personality_failure_returns_unstyled(self) -> None:
        store = AsyncMock(spec=SourceConfigStore)
        store.get_sources.return_value = [SourceDescriptorFactory.create("s1")]
        store.get_personality.side_effect = StoreConnectionError("db down")
        source = StubSource("s1", confidence=0.9, response="We are open.")

        result = await _cascade([source], store).run(TENANT_ID, "hours")

        assert result.outcome == CascadeOutcome.MATCHED
        assert result.response == "We are open."
        assert result.personality_applied is False
