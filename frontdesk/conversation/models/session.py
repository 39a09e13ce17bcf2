"""Call session models for conversation domain."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models.enums import EndReason, HandlerType, Phase
from frontdesk.conversation.models.fact import Fact, utc_now
from frontdesk.conversation.models.governance import GovernanceConfig
from frontdesk.conversation.models.turn import CaptureProgress, TurnRecord

SCHEMA_VERSION = 1


class CallIdentity(BaseModel):
    """Who is calling whom."""

    model_config = ConfigDict(frozen=True)

    call_id: str = Field(..., min_length=1, description="Telephony call identifier")
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    template_id: str | None = Field(default=None, description="Agent template in use")
    caller_number: str | None = Field(default=None, description="Caller phone number")
    callee_number: str | None = Field(default=None, description="Dialled tenant number")
    started_at: datetime = Field(default_factory=utc_now, description="Call start time")


class PhaseState(BaseModel):
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    current: Phase = Phase.GREETING
    previous: Phase | None = None
    transitioned_at: datetime | None = None
    transition_reason: str | None = None


class BookingState(BaseModel):
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    consent_detected: bool = False
    consent_turn: int | None = None
    mode_locked: bool = False
    current_step: str | None = None
    completed_steps: list[str] = Field(default_factory=list)
    remaining_steps: list[str] = Field(default_factory=list)


class SessionMetrics(BaseModel):
    """Aggregates over committed turns."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    total_turns: int = 0
    total_latency_ms: int = 0
    avg_response_latency_ms: float = 0.0
    external_call_count: int = 0
    scenario_match_count: int = 0
    handler_usage: dict[str, int] = Field(default_factory=dict)
    escalation_triggered: bool = False
    governance_violation_count: int = 0


class LoopState(BaseModel):
    model_config = ConfigDict(frozen=False, validate_assignment=True)

    last_response_text: str | None = None
    consecutive_repeats: int = 0


class GovernanceViolation(BaseModel):
    """A rejected write or disallowed handler, kept for audit."""

    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="Violation category")
    handler: HandlerType | None = Field(default=None, description="Offending handler")
    turn: int = Field(..., ge=0, description="Turn index when it happened")
    detail: dict[str, Any] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=utc_now)


class CallOutcome(BaseModel):
    """Terminal outcome, set once at call end."""

    model_config = ConfigDict(frozen=True)

    end_reason: EndReason = EndReason.UNKNOWN
    duration_ms: int = Field(default=0, ge=0)
    final_phase: Phase = Phase.GREETING
    booking_completed: bool = False
    facts_collected: list[str] = Field(default_factory=list)
    escalated: bool = False
    ended_at: datetime = Field(default_factory=utc_now)
    notes: dict[str, Any] = Field(default_factory=dict)


class CallSession(BaseModel):
    """Serializable state of one call across all its turns.

    Mutated only through ConversationState; persisted to the transient
    session store after every turn.
    """

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    schema_version: int = Field(default=SCHEMA_VERSION, description="Serialized layout version")
    call_id: str = Field(..., min_length=1, description="Telephony call identifier")
    tenant_id: str = Field(..., min_length=1, description="Owning tenant")
    template_id: str | None = Field(default=None, description="Agent template in use")
    caller_number: str | None = Field(default=None, description="Caller phone number")
    callee_number: str | None = Field(default=None, description="Dialled tenant number")
    started_at: datetime = Field(default_factory=utc_now, description="Call start time")
    updated_at: datetime = Field(default_factory=utc_now, description="Last save time")
    facts: dict[str, Fact] = Field(default_factory=dict, description="fact_id -> Fact")
    phase: PhaseState = Field(default_factory=PhaseState)
    booking: BookingState = Field(default_factory=BookingState)
    capture: CaptureProgress = Field(default_factory=CaptureProgress)
    turns: list[TurnRecord] = Field(default_factory=list, description="Append-only ledger")
    metrics: SessionMetrics = Field(default_factory=SessionMetrics)
    loop: LoopState = Field(default_factory=LoopState)
    governance_violations: list[GovernanceViolation] = Field(default_factory=list)
    outcome: CallOutcome | None = Field(default=None, description="Set once at call end")
    config: GovernanceConfig = Field(default_factory=GovernanceConfig)

    @property
    def identity(self) -> CallIdentity:
        return CallIdentity(
            call_id=self.call_id,
            tenant_id=self.tenant_id,
            template_id=self.template_id,
            caller_number=self.caller_number,
            callee_number=self.callee_number,
            started_at=self.started_at,
        )
