"""Knowledge cascade models.

Contains the descriptors that rank a tenant's sources, the per-source
query result, the attempt trace and the cascade's terminal result.
"""

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CascadeOutcome(str, Enum):
    """Terminal states of one cascade run."""

    MATCHED = "MATCHED"
    NO_MATCH = "NO_MATCH"
    ERROR_FALLBACK = "ERROR_FALLBACK"


class AttemptOutcome(str, Enum):
    """What happened when the cascade reached one source."""

    MATCHED = "matched"
    BELOW_THRESHOLD = "below_threshold"
    SKIPPED_PREFILTER = "skipped_prefilter"
    TIMEOUT = "timeout"
    ERROR = "error"


class SourceDescriptor(BaseModel):
    """Rank and admission threshold of one knowledge source for a tenant."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    source_id: str = Field(..., min_length=1, description="Registered source identifier")
    priority: int = Field(..., ge=1, description="1 = highest priority")
    confidence_threshold: float = Field(
        ..., ge=0.0, le=1.0, description="Minimum confidence to stop the cascade"
    )
    enabled: bool = Field(default=True, description="Whether the source is consulted")


class SourceResult(BaseModel):
    """Best candidate a source produced for a query."""

    model_config = ConfigDict(frozen=True)

    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    response: str | None = Field(default=None, description="Candidate reply text")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Match details")


class SourceAttempt(BaseModel):
    """One entry of the cascade's attempt trace."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    priority: int
    threshold: float
    confidence: float = 0.0
    elapsed_ms: float = Field(default=0.0, ge=0.0)
    outcome: AttemptOutcome
    cached: bool = False
    detail: str | None = None


class CascadeResult(BaseModel):
    """Result of running the cascade for one query."""

    model_config = ConfigDict(frozen=True)

    outcome: CascadeOutcome
    response: str = Field(..., description="Reply text, styled when matched")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    source_id: str | None = Field(default=None, description="Winning source")
    original_response: str | None = Field(default=None, description="Reply before styling")
    personality_applied: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)
    trace: list[SourceAttempt] = Field(default_factory=list)
    elapsed_ms: float = Field(default=0.0, ge=0.0)

    @property
    def matched(self) -> bool:
        return self.outcome == CascadeOutcome.MATCHED

    @property
    def has_errors(self) -> bool:
        return self.outcome == CascadeOutcome.ERROR_FALLBACK or any(
            a.outcome in (AttemptOutcome.ERROR, AttemptOutcome.TIMEOUT) for a in self.trace
        )


class KnowledgeEntry(BaseModel):
    """A question/answer (or template) entry served by a QnA source."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(..., min_length=1)
    question: str = Field(..., description="Question or template name matched against")
    answer: str = Field(..., description="Reply text")
    keywords: list[str] = Field(default_factory=list)
    category: str | None = None
    active: bool = True


class FallbackCategory(BaseModel):
    """Keyword bucket of the in-house fallback source."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    response: str = Field(..., min_length=1)
    keywords: list[str] = Field(default_factory=list)


Tone = Literal["warm", "professional", "neutral"]
Formality = Literal["casual", "formal", "neutral"]
EmpathyLevel = Literal["low", "medium", "high"]


class PersonalityProfile(BaseModel):
    """Tenant personality used to post-process matched replies.

    Styling only runs for customized profiles.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    is_customized: bool = False
    tone: Tone = "neutral"
    formality: Formality = "neutral"
    opening_phrases: list[str] = Field(default_factory=list)
    closing_phrases: list[str] = Field(default_factory=list)
    empathy_level: EmpathyLevel = "medium"
