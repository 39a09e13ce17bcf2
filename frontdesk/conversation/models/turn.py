"""Turn record models.

A TurnDraft is filled in while a turn is open and frozen into a
TurnRecord when the turn is committed or abandoned.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models.enums import HandlerType, Phase, TurnStatus
from frontdesk.conversation.models.fact import utc_now


class CaptureEntry(BaseModel):
    """Capture status of one goal field."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    captured: bool = False
    turn: int | None = None


class CaptureProgress(BaseModel):
    """Progress toward the configured capture goals."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    required: dict[str, CaptureEntry] = Field(default_factory=dict)
    desired: dict[str, CaptureEntry] = Field(default_factory=dict)
    optional: dict[str, CaptureEntry] = Field(default_factory=dict)
    turns_without_progress: int = Field(default=0, ge=0)


class CallerInput(BaseModel):
    """What the caller said this turn."""

    raw: str = ""
    cleaned: str = ""
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class TriageCandidate(BaseModel):
    """A scenario considered by triage."""

    scenario_id: str
    name: str | None = None
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class TriageInfo(BaseModel):
    candidates: list[TriageCandidate] = Field(default_factory=list)
    top_scenario_id: str | None = None
    urgency: str | None = None


class RejectedHandler(BaseModel):
    handler: HandlerType
    reason: str


class RoutingInfo(BaseModel):
    """Which handler was chosen, and why the others were not."""

    handler: HandlerType | None = None
    reasons: list[str] = Field(default_factory=list)
    rejected: list[RejectedHandler] = Field(default_factory=list)
    phase: Phase = Phase.GREETING
    capture_injected: bool = False


class ResponseInfo(BaseModel):
    handler: HandlerType | None = None
    text: str = ""
    latency_ms: int = Field(default=0, ge=0)


class FactDelta(BaseModel):
    """Facts written during a turn."""

    new_facts: list[str] = Field(default_factory=list)
    updated_facts: list[str] = Field(default_factory=list)
    phase_changed: bool = False


class TurnSnapshot(BaseModel):
    """State captured at commit time."""

    facts: dict[str, Any] = Field(default_factory=dict)
    phase: Phase = Phase.GREETING
    booking_locked: bool = False
    capture: CaptureProgress = Field(default_factory=CaptureProgress)


class TurnDraft(BaseModel):
    """Mutable builder for the turn currently in progress."""

    model_config = ConfigDict(frozen=False, validate_assignment=True)

    turn: int = Field(..., ge=0)
    started_at: datetime = Field(default_factory=utc_now)
    caller: CallerInput = Field(default_factory=CallerInput)
    triage: TriageInfo = Field(default_factory=TriageInfo)
    routing: RoutingInfo = Field(default_factory=RoutingInfo)
    response: ResponseInfo = Field(default_factory=ResponseInfo)
    delta: FactDelta = Field(default_factory=FactDelta)

    def add_fact_delta(self, fact_id: str, is_new: bool) -> None:
        target = self.delta.new_facts if is_new else self.delta.updated_facts
        if fact_id not in target:
            target.append(fact_id)

    def build(self, snapshot: TurnSnapshot, status: TurnStatus) -> "TurnRecord":
        return TurnRecord(
            turn=self.turn,
            started_at=self.started_at,
            caller=self.caller,
            triage=self.triage,
            routing=self.routing,
            response=self.response,
            delta=self.delta,
            snapshot=snapshot,
            status=status,
        )


class TurnRecord(BaseModel):
    """Immutable record of one caller-input/system-response exchange."""

    model_config = ConfigDict(frozen=True)

    turn: int = Field(..., ge=0, description="Turn index")
    started_at: datetime = Field(..., description="When the turn opened")
    committed_at: datetime = Field(default_factory=utc_now, description="When it closed")
    caller: CallerInput = Field(default_factory=CallerInput)
    triage: TriageInfo = Field(default_factory=TriageInfo)
    routing: RoutingInfo = Field(default_factory=RoutingInfo)
    response: ResponseInfo = Field(default_factory=ResponseInfo)
    delta: FactDelta = Field(default_factory=FactDelta)
    snapshot: TurnSnapshot = Field(default_factory=TurnSnapshot)
    status: TurnStatus = TurnStatus.COMPLETE
