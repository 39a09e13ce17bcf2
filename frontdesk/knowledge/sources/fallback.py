"""In-house fallback source.

Keyword buckets with canned replies. Always answers with at least the
minimum fallback confidence and never raises, so a cascade ending in it
always has something to say.
"""

from frontdesk.errors import StoreError
from frontdesk.knowledge.config_store import IN_HOUSE_FALLBACK
from frontdesk.knowledge.models import FallbackCategory, SourceResult
from frontdesk.knowledge.repository import KnowledgeRepository
from frontdesk.knowledge.scoring import keyword_match, matched_keywords
from frontdesk.knowledge.sources.base import KnowledgeSource
from frontdesk.knowledge.styling import EMERGENCY_CATEGORY, SERVICE_REQUEST_CATEGORY
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

CATEGORY_MATCH_THRESHOLD = 0.3
MIN_FALLBACK_CONFIDENCE = 0.5

ULTIMATE_FALLBACK_RESPONSE = (
    "Thank you for contacting us. Let me connect you with someone who can help you right away."
)
LOOKUP_FAILED_RESPONSE = (
    "Thank you for calling. I'm here to help you. Let me connect you with the right person."
)

# Checked in this order; the first category over the threshold wins
DEFAULT_FALLBACK_CATEGORIES: tuple[FallbackCategory, ...] = (
    FallbackCategory(
        name=EMERGENCY_CATEGORY,
        response=(
            "This sounds like an emergency situation. "
            "Let me connect you with our emergency service team immediately."
        ),
        keywords=["emergency", "urgent", "help", "broken", "flooding", "no heat", "no air"],
    ),
    FallbackCategory(
        name=SERVICE_REQUEST_CATEGORY,
        response=(
            "I understand you need service assistance. "
            "Let me connect you with our service team right away."
        ),
        keywords=["repair", "fix", "service", "maintenance", "broken", "not working"],
    ),
    FallbackCategory(
        name="booking_request",
        response=(
            "I'd be happy to help you schedule an appointment. "
            "Let me get you connected with our scheduling team."
        ),
        keywords=["appointment", "schedule", "book", "visit", "when", "available"],
    ),
    FallbackCategory(
        name="general_inquiry",
        response=(
            "Thank you for contacting us. "
            "I'm here to help you with any questions you have."
        ),
        keywords=["hours", "location", "contact", "info", "question", "help"],
    ),
)


class InHouseFallbackSource(KnowledgeSource):
    """Category keyword matcher that always returns a reply."""

    uses_prefilter = False

    def __init__(
        self,
        repository: KnowledgeRepository | None = None,
        source_id: str = IN_HOUSE_FALLBACK,
    ) -> None:
        super().__init__(source_id)
        self._repository = repository

    async def _categories(self, tenant_id: str) -> list[FallbackCategory]:
        if self._repository is not None:
            custom = await self._repository.get_fallback_categories(tenant_id)
            if custom:
                return custom
        return list(DEFAULT_FALLBACK_CATEGORIES)

    async def query(self, tenant_id: str, query: str) -> SourceResult:
        try:
            categories = await self._categories(tenant_id)
        except StoreError as e:
            logger.warning("fallback_categories_unavailable", tenant_id=tenant_id, error=str(e))
            return SourceResult(
                confidence=MIN_FALLBACK_CONFIDENCE,
                response=LOOKUP_FAILED_RESPONSE,
                metadata={"source_id": self.source_id, "category": "lookup_failed"},
            )

        for category in categories:
            score = keyword_match(query, category.keywords)
            if score > CATEGORY_MATCH_THRESHOLD:
                return SourceResult(
                    confidence=max(score, MIN_FALLBACK_CONFIDENCE),
                    response=category.response,
                    metadata={
                        "source_id": self.source_id,
                        "category": category.name,
                        "matched_keywords": matched_keywords(query, category.keywords),
                    },
                )

        return SourceResult(
            confidence=MIN_FALLBACK_CONFIDENCE,
            response=ULTIMATE_FALLBACK_RESPONSE,
            metadata={"source_id": self.source_id, "category": "ultimate"},
        )
