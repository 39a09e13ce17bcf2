"""Enums for conversation domain."""

from enum import Enum


class FactSource(str, Enum):
    """Where a fact came from.

    Only these sources are accepted by the governed write path.
    """

    SELF_IDENTIFIED = "self_identified"
    EXTRACTED = "extracted"
    CONFIRMED = "confirmed"
    EXTERNAL_ID = "external_id"
    TRIAGE = "triage"
    BOOKING = "booking"


class Phase(str, Enum):
    """Conversation phase, in monotonic order."""

    GREETING = "GREETING"
    DISCOVERY = "DISCOVERY"
    BOOKING = "BOOKING"
    COMPLETE = "COMPLETE"


PHASE_ORDER: dict[Phase, int] = {
    Phase.GREETING: 0,
    Phase.DISCOVERY: 1,
    Phase.BOOKING: 2,
    Phase.COMPLETE: 3,
}


class HandlerType(str, Enum):
    """Subsystems that produce replies or write state during a turn."""

    SCENARIO = "scenario"
    BOOKING = "booking"
    FALLBACK = "fallback"
    ESCALATION = "escalation"
    CAPTURE_INJECTION = "capture_injection"
    EXTRACTOR = "extractor"
    TRIAGE = "triage"


class CaptureTier(str, Enum):
    """Priority tier of a capture goal."""

    REQUIRED = "required"
    DESIRED = "desired"
    OPTIONAL = "optional"


class EscalationTrigger(str, Enum):
    """Signals that may hand the caller to a human."""

    EXPLICIT_REQUEST = "explicit_request"
    FRUSTRATION_DETECTED = "frustration_detected"
    LOOP_DETECTED = "loop_detected"


class LoopAction(str, Enum):
    """What to do once a response loop is detected."""

    NONE = "none"
    ESCALATE = "escalate"
    REPHRASE = "rephrase"


class RouteStep(str, Enum):
    """Steps the turn router evaluates, in configured order."""

    ESCALATION = "escalation"
    BOOKING_LOCKED = "booking_locked"
    CAPTURE_INJECTION = "capture_injection"
    BOOKING_CONSENT = "booking_consent"
    SCENARIO_MATCH = "scenario_match"
    FALLBACK_DEFAULT = "fallback_default"


class TurnStatus(str, Enum):
    """Whether a turn record ran to completion."""

    COMPLETE = "complete"
    INCOMPLETE = "incomplete"


class GovernanceReason(str, Enum):
    """Reason codes returned by governance checks."""

    # Allow reasons
    SCENARIO_ALLOWED = "scenario_allowed"
    BOOKING_MODE_LOCKED = "booking_mode_locked"
    BOOKING_ALLOWED = "booking_allowed"
    FALLBACK_DEFAULT = "fallback_default"
    FALLBACK_ALLOWED = "fallback_allowed"
    ESCALATION_APPROVED = "escalation_approved"
    WRITE_ALLOWED = "write_allowed"

    # Deny reasons
    HANDLER_DISABLED = "handler_disabled"
    CONFIDENCE_BELOW_THRESHOLD = "confidence_below_threshold"
    BLOCKED_IN_BOOKING_MODE = "blocked_in_booking_mode"
    NO_CONSENT = "no_consent"
    CONSENT_CONFIDENCE_LOW = "consent_confidence_low"
    TRIGGER_NOT_CONFIGURED = "trigger_not_configured"
    WRITE_NOT_AUTHORIZED = "write_not_authorized"


class EndReason(str, Enum):
    """Why a call ended."""

    CALLER_HANGUP = "caller_hangup"
    BOOKING_COMPLETED = "booking_completed"
    ESCALATED = "escalated"
    RESOLVED = "resolved"
    TIMEOUT = "timeout"
    ERROR = "error"
    UNKNOWN = "unknown"
