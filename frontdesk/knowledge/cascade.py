"""Priority-ordered knowledge source cascade.

Tries a tenant's enabled sources in ascending priority order and stops
at the first one whose confidence clears its own threshold. Source
failures count as zero confidence; the cascade itself never raises.
"""

import time
from collections.abc import Callable, Iterable

from frontdesk.config.models.cascade import CascadeConfig
from frontdesk.errors import ConfigurationError, SourceTimeoutError, StoreError
from frontdesk.knowledge.cache import TTLCache, key_belongs_to
from frontdesk.knowledge.config_store import DEFAULT_SOURCE_DESCRIPTORS, SourceConfigStore
from frontdesk.knowledge.models import (
    AttemptOutcome,
    CascadeOutcome,
    CascadeResult,
    PersonalityProfile,
    SourceAttempt,
    SourceDescriptor,
    SourceResult,
)
from frontdesk.knowledge.retry import call_with_retry
from frontdesk.knowledge.scoring import normalize_query_key, prefilter_match
from frontdesk.knowledge.sources.base import KnowledgeSource
from frontdesk.knowledge.styling import ResponseStyler
from frontdesk.observability.logging import get_logger
from frontdesk.observability.metrics import (
    CASCADE_OUTCOMES,
    SOURCE_ERRORS,
    SOURCE_QUERY_LATENCY,
)

logger = get_logger(__name__)

NO_MATCH_RESPONSE = (
    "I want to make sure I give you the best help possible. "
    "Let me connect you with someone who can assist you right away."
)
ERROR_FALLBACK_RESPONSE = (
    "Thank you for contacting us. "
    "I'm connecting you with someone who can help you right away."
)


def order_sources(
    descriptors: Iterable[SourceDescriptor],
    allowed_sources: Iterable[str] | None = None,
) -> list[SourceDescriptor]:
    """Enabled descriptors sorted by priority, ties kept in declaration order."""
    allowed = set(allowed_sources) if allowed_sources is not None else None
    enabled = [
        d for d in descriptors
        if d.enabled and (allowed is None or d.source_id in allowed)
    ]
    return sorted(enabled, key=lambda d: d.priority)


class KnowledgeCascade:
    """Runs the source cascade for a tenant query.

    Holds three process-wide caches: the tenant's resolved source list
    and personality, each source's keyword index, and query results
    keyed by the normalized query. All three are injectable.
    """

    def __init__(
        self,
        sources: Iterable[KnowledgeSource],
        config_store: SourceConfigStore,
        config: CascadeConfig | None = None,
        styler: ResponseStyler | None = None,
        *,
        config_cache: TTLCache | None = None,
        keyword_cache: TTLCache | None = None,
        query_cache: TTLCache | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._sources: dict[str, KnowledgeSource] = {s.source_id: s for s in sources}
        self._config_store = config_store
        self._config = config or CascadeConfig()
        self._styler = styler or ResponseStyler()
        self._clock = clock

        cache_config = self._config.cache
        self._config_cache = config_cache or TTLCache(
            "source_config",
            cache_config.source_config_ttl_seconds,
            max_entries=cache_config.max_entries,
            shards=cache_config.shards,
        )
        self._keyword_cache = keyword_cache or TTLCache(
            "keyword_index",
            cache_config.keyword_index_ttl_seconds,
            max_entries=cache_config.max_entries,
            shards=cache_config.shards,
        )
        self._query_cache = query_cache or TTLCache(
            "query_result",
            cache_config.query_result_ttl_seconds,
            max_entries=cache_config.max_entries,
            shards=cache_config.shards,
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(
        self,
        tenant_id: str,
        query: str,
        *,
        allowed_sources: Iterable[str] | None = None,
    ) -> CascadeResult:
        """Run the cascade for one query.

        Args:
            tenant_id: Tenant whose sources and thresholds apply
            query: Cleaned caller utterance
            allowed_sources: Optional restriction to these source ids

        Returns:
            MATCHED with the winning source, NO_MATCH with the full
            attempt trace, or ERROR_FALLBACK with a safe generic reply
        """
        started = self._clock()
        try:
            descriptors = await self._resolve_sources(tenant_id)
            ordered = order_sources(descriptors, allowed_sources)
            logger.debug(
                "cascade_started",
                tenant_id=tenant_id,
                sources=[f"{d.source_id}({d.priority})" for d in ordered],
            )

            trace: list[SourceAttempt] = []
            for descriptor in ordered:
                attempt, result = await self._attempt(tenant_id, descriptor, query)
                trace.append(attempt)
                if attempt.outcome == AttemptOutcome.MATCHED and result is not None:
                    return await self._matched(tenant_id, descriptor, result, trace, started)

            return self._finish(
                tenant_id,
                CascadeResult(
                    outcome=CascadeOutcome.NO_MATCH,
                    response=NO_MATCH_RESPONSE,
                    trace=trace,
                    metadata={"reason": "no_source_met_threshold"},
                    elapsed_ms=self._elapsed_ms(started),
                ),
            )
        except Exception as e:
            logger.error(
                "cascade_failed",
                tenant_id=tenant_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return self._finish(
                tenant_id,
                CascadeResult(
                    outcome=CascadeOutcome.ERROR_FALLBACK,
                    response=ERROR_FALLBACK_RESPONSE,
                    metadata={"error": str(e), "error_type": type(e).__name__},
                    elapsed_ms=self._elapsed_ms(started),
                ),
            )

    def invalidate(self, tenant_id: str, source_id: str | None = None) -> int:
        """Drop cached keyword indexes and query results.

        Call whenever a source's content changes. Without ``source_id``
        every source of the tenant is invalidated.
        """
        predicate = key_belongs_to(tenant_id, source_id)
        removed = self._keyword_cache.delete_where(predicate)
        removed += self._query_cache.delete_where(predicate)
        logger.info(
            "knowledge_cache_invalidated",
            tenant_id=tenant_id,
            source_id=source_id,
            count=removed,
        )
        return removed

    def invalidate_config(self, tenant_id: str) -> None:
        """Drop the cached source list and personality for a tenant."""
        self._config_cache.delete_where(key_belongs_to(tenant_id))

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    async def _resolve_sources(self, tenant_id: str) -> list[SourceDescriptor]:
        key = (tenant_id, "sources")
        cached = self._config_cache.get(key)
        if cached is not None:
            return cached

        try:
            descriptors = await self._config_store.get_sources(tenant_id)
        except StoreError as e:
            raise ConfigurationError(
                f"Source configuration unavailable for tenant {tenant_id}", cause=e
            ) from e

        if descriptors is None:
            logger.info("source_config_defaulted", tenant_id=tenant_id)
            descriptors = list(DEFAULT_SOURCE_DESCRIPTORS)
        self._config_cache.set(key, descriptors)
        return descriptors

    async def _personality(self, tenant_id: str) -> PersonalityProfile | None:
        key = (tenant_id, "personality")
        cached = self._config_cache.get(key)
        if cached is not None:
            return cached
        try:
            profile = await self._config_store.get_personality(tenant_id)
        except StoreError as e:
            logger.warning("personality_unavailable", tenant_id=tenant_id, error=str(e))
            return None
        profile = profile or PersonalityProfile()
        self._config_cache.set(key, profile)
        return profile

    # ------------------------------------------------------------------
    # Per-source attempt
    # ------------------------------------------------------------------

    async def _attempt(
        self,
        tenant_id: str,
        descriptor: SourceDescriptor,
        query: str,
    ) -> tuple[SourceAttempt, SourceResult | None]:
        source_id = descriptor.source_id
        started = self._clock()

        def attempt(
            outcome: AttemptOutcome,
            confidence: float = 0.0,
            cached: bool = False,
            detail: str | None = None,
        ) -> SourceAttempt:
            elapsed = self._elapsed_ms(started)
            SOURCE_QUERY_LATENCY.labels(source_id=source_id, outcome=outcome.value).observe(
                elapsed / 1000
            )
            return SourceAttempt(
                source_id=source_id,
                priority=descriptor.priority,
                threshold=descriptor.confidence_threshold,
                confidence=confidence,
                elapsed_ms=elapsed,
                outcome=outcome,
                cached=cached,
                detail=detail,
            )

        source = self._sources.get(source_id)
        if source is None:
            SOURCE_ERRORS.labels(source_id=source_id, error_type="not_registered").inc()
            logger.warning("source_not_registered", tenant_id=tenant_id, source_id=source_id)
            return attempt(AttemptOutcome.ERROR, detail="source_not_registered"), None

        try:
            if source.uses_prefilter and not await self.can_source_match(
                tenant_id, source, query
            ):
                logger.debug("source_prefilter_skip", tenant_id=tenant_id, source_id=source_id)
                return attempt(AttemptOutcome.SKIPPED_PREFILTER, detail="no_keyword_overlap"), None

            result, cached = await self._query(tenant_id, source, query)
        except SourceTimeoutError as e:
            SOURCE_ERRORS.labels(source_id=source_id, error_type="timeout").inc()
            logger.warning("source_query_timeout", tenant_id=tenant_id, source_id=source_id)
            return attempt(AttemptOutcome.TIMEOUT, detail=str(e)), None
        except Exception as e:
            SOURCE_ERRORS.labels(source_id=source_id, error_type=type(e).__name__).inc()
            logger.error(
                "source_query_failed",
                tenant_id=tenant_id,
                source_id=source_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return attempt(AttemptOutcome.ERROR, detail=str(e)), None

        if result.response and result.confidence >= descriptor.confidence_threshold:
            return attempt(AttemptOutcome.MATCHED, result.confidence, cached), result

        logger.debug(
            "source_below_threshold",
            tenant_id=tenant_id,
            source_id=source_id,
            confidence=result.confidence,
            threshold=descriptor.confidence_threshold,
        )
        return attempt(AttemptOutcome.BELOW_THRESHOLD, result.confidence, cached), result

    async def can_source_match(self, tenant_id: str, source: KnowledgeSource, query: str) -> bool:
        """Keyword pre-filter; an empty index means the source cannot match.

        Raises:
            SourceTimeoutError: If loading the keyword index exceeds the query timeout
        """
        key = (tenant_id, source.source_id, "keywords")
        keywords = self._keyword_cache.get(key)
        if keywords is None:
            keywords = await call_with_retry(
                lambda: source.load_keywords(tenant_id),
                source_id=source.source_id,
                timeout_seconds=self._config.query_timeout_ms / 1000,
            )
            self._keyword_cache.set(key, keywords)
        return prefilter_match(query, keywords)

    async def _query(
        self,
        tenant_id: str,
        source: KnowledgeSource,
        query: str,
    ) -> tuple[SourceResult, bool]:
        key = (tenant_id, source.source_id, "query", normalize_query_key(query))
        cached = self._query_cache.get(key)
        if cached is not None:
            return cached, True

        retry = self._config.retry
        result = await call_with_retry(
            lambda: source.query(tenant_id, query),
            source_id=source.source_id,
            timeout_seconds=self._config.query_timeout_ms / 1000,
            max_attempts=retry.max_attempts,
            backoff_base_ms=retry.backoff_base_ms,
            backoff_max_ms=retry.backoff_max_ms,
        )
        self._query_cache.set(key, result)
        return result, False

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    async def _matched(
        self,
        tenant_id: str,
        descriptor: SourceDescriptor,
        result: SourceResult,
        trace: list[SourceAttempt],
        started: float,
    ) -> CascadeResult:
        original = result.response or ""
        styled = original
        try:
            profile = await self._personality(tenant_id)
            styled = self._styler.apply(
                original,
                profile,
                descriptor.source_id,
                category=result.metadata.get("category"),
            )
        except Exception as e:
            logger.warning("response_styling_failed", tenant_id=tenant_id, error=str(e))

        return self._finish(
            tenant_id,
            CascadeResult(
                outcome=CascadeOutcome.MATCHED,
                response=styled,
                confidence=result.confidence,
                source_id=descriptor.source_id,
                original_response=original,
                personality_applied=styled != original,
                metadata=dict(result.metadata),
                trace=trace,
                elapsed_ms=self._elapsed_ms(started),
            ),
        )

    def _finish(self, tenant_id: str, result: CascadeResult) -> CascadeResult:
        CASCADE_OUTCOMES.labels(tenant_id=tenant_id, outcome=result.outcome.value).inc()
        logger.info(
            "cascade_completed",
            tenant_id=tenant_id,
            outcome=result.outcome.value,
            source_id=result.source_id,
            confidence=result.confidence,
            sources_checked=len(result.trace),
            elapsed_ms=round(result.elapsed_ms, 2),
        )
        return result

    def _elapsed_ms(self, started: float) -> float:
        return max(0.0, (self._clock() - started) * 1000)
