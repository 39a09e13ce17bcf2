"""Conversation domain models.

Contains all Pydantic models for call state:
- CallSession for the serialized per-call state
- Facts for governed caller data
- TurnRecords for individual exchanges
- GovernanceConfig for per-tenant rules
"""

from frontdesk.conversation.models.context import ContextMessage, ContextWindow
from frontdesk.conversation.models.enums import (
    PHASE_ORDER,
    CaptureTier,
    EndReason,
    EscalationTrigger,
    FactSource,
    GovernanceReason,
    HandlerType,
    LoopAction,
    Phase,
    RouteStep,
    TurnStatus,
)
from frontdesk.conversation.models.fact import Fact, FactWriteResult, utc_now
from frontdesk.conversation.models.governance import (
    DEFAULT_CONFIG_VERSION,
    CaptureGoal,
    CaptureGoals,
    GovernanceConfig,
)
from frontdesk.conversation.models.session import (
    SCHEMA_VERSION,
    BookingState,
    CallIdentity,
    CallOutcome,
    CallSession,
    GovernanceViolation,
    LoopState,
    PhaseState,
    SessionMetrics,
)
from frontdesk.conversation.models.turn import (
    CallerInput,
    CaptureEntry,
    CaptureProgress,
    FactDelta,
    RejectedHandler,
    ResponseInfo,
    RoutingInfo,
    TriageCandidate,
    TriageInfo,
    TurnDraft,
    TurnRecord,
    TurnSnapshot,
)

__all__ = [
    # Enums
    "PHASE_ORDER",
    "CaptureTier",
    "EndReason",
    "EscalationTrigger",
    "FactSource",
    "GovernanceReason",
    "HandlerType",
    "LoopAction",
    "Phase",
    "RouteStep",
    "TurnStatus",
    # Context
    "ContextMessage",
    "ContextWindow",
    # Facts
    "Fact",
    "FactWriteResult",
    "utc_now",
    # Governance config
    "DEFAULT_CONFIG_VERSION",
    "CaptureGoal",
    "CaptureGoals",
    "GovernanceConfig",
    # Session models
    "SCHEMA_VERSION",
    "BookingState",
    "CallIdentity",
    "CallOutcome",
    "CallSession",
    "GovernanceViolation",
    "LoopState",
    "PhaseState",
    "SessionMetrics",
    # Turn models
    "CallerInput",
    "CaptureEntry",
    "CaptureProgress",
    "FactDelta",
    "RejectedHandler",
    "ResponseInfo",
    "RoutingInfo",
    "TriageCandidate",
    "TriageInfo",
    "TurnDraft",
    "TurnRecord",
    "TurnSnapshot",
]
