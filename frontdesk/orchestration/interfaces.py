"""Turn input/output models and handler interfaces.

Scenario and booking handlers are external collaborators; the
orchestrator only sees them through TurnHandler.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models import HandlerType, Phase, TurnStatus
from frontdesk.conversation.state import ConversationState
from frontdesk.knowledge.models import CascadeOutcome
from frontdesk.routing.router import RoutingDecision, RoutingSignals


class TurnInput(BaseModel):
    """Everything upstream hands over for one turn.

    Loosely shaped payloads (extracted facts, triage candidates, input
    confidence) are accepted as-is and validated at the ingestion
    boundary.
    """

    model_config = ConfigDict(frozen=True)

    call_id: str = Field(..., min_length=1, description="Telephony call identifier")
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    template_id: str | None = None
    caller_number: str | None = None
    callee_number: str | None = None
    text: str = Field(default="", description="Raw transcript of the caller utterance")
    cleaned_text: str | None = Field(default=None, description="Normalized transcript")
    input_confidence: Any = Field(default=None, description="STT confidence")
    extracted_facts: Any = Field(default=None, description="Extractor payload")
    triage_candidates: Any = Field(default=None, description="Triage payload")
    urgency: str | None = None
    signals: RoutingSignals = Field(default_factory=RoutingSignals)
    allowed_sources: list[str] | None = Field(
        default=None, description="Restrict the cascade to these sources"
    )


class TurnResult(BaseModel):
    """Reply for one turn. Always well-formed, even on failure."""

    model_config = ConfigDict(frozen=True)

    call_id: str
    response: str
    handler: HandlerType | None = None
    routing_reason: str | None = None
    turn: int | None = None
    phase: Phase | None = None
    status: TurnStatus = TurnStatus.COMPLETE
    cascade_outcome: CascadeOutcome | None = None
    source_id: str | None = None
    confidence: float | None = None
    capture_injected: bool = False
    escalated: bool = False
    persisted: bool = False
    latency_ms: int = Field(default=0, ge=0)
    error: str | None = None


class HandlerReply(BaseModel):
    """What a scenario or booking handler produced."""

    text: str
    facts: dict[str, Any] = Field(default_factory=dict, description="fact_id -> value")
    fact_confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    booking_step: str | None = None
    completed_step: str | None = None
    planned_steps: list[str] | None = None
    phase: Phase | None = None


class TurnHandler(ABC):
    """A handler the router can select."""

    @abstractmethod
    async def handle(
        self,
        state: ConversationState,
        turn: TurnInput,
        decision: RoutingDecision,
    ) -> HandlerReply:
        """Produce the reply for this turn."""
        pass
