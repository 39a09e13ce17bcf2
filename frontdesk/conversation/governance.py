"""Handler governance checks.

Pure functions of (governance config, booking state, signal) that decide
whether a handler may run or write facts this turn. None of them mutate
state; ConversationState records side effects such as the escalation
flag on approval.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models import (
    BookingState,
    EscalationTrigger,
    GovernanceConfig,
    GovernanceReason,
    HandlerType,
)

# Handlers whose output derives from capture or booking flows
ALWAYS_WRITE_HANDLERS: frozenset[HandlerType] = frozenset({
    HandlerType.EXTRACTOR,
    HandlerType.BOOKING,
    HandlerType.SCENARIO,
    HandlerType.TRIAGE,
    HandlerType.CAPTURE_INJECTION,
})


class GovernanceDecision(BaseModel):
    """Result of a governance check."""

    model_config = ConfigDict(frozen=True)

    allowed: bool
    reason: GovernanceReason
    detail: dict[str, Any] = Field(default_factory=dict)


def check_scenario_handler(
    config: GovernanceConfig,
    booking: BookingState,
    match_confidence: float,
) -> GovernanceDecision:
    """Admit the scenario matcher for this turn."""
    rules = config.handlers.scenario
    if not rules.enabled:
        return GovernanceDecision(allowed=False, reason=GovernanceReason.HANDLER_DISABLED)

    if match_confidence < rules.min_confidence:
        return GovernanceDecision(
            allowed=False,
            reason=GovernanceReason.CONFIDENCE_BELOW_THRESHOLD,
            detail={
                "match_confidence": match_confidence,
                "min_confidence": rules.min_confidence,
            },
        )

    if booking.mode_locked and not rules.allow_in_booking_mode:
        return GovernanceDecision(
            allowed=False, reason=GovernanceReason.BLOCKED_IN_BOOKING_MODE
        )

    return GovernanceDecision(
        allowed=True,
        reason=GovernanceReason.SCENARIO_ALLOWED,
        detail={"match_confidence": match_confidence},
    )


def check_booking_handler(
    config: GovernanceConfig,
    booking: BookingState,
    consent_detected: bool = False,
    consent_confidence: float = 0.0,
) -> GovernanceDecision:
    """Admit the booking flow for this turn.

    A locked booking is always admitted, whatever the consent arguments,
    so an in-progress booking is never abandoned mid-flow. Otherwise a
    consent signal is required (this turn or recorded earlier on the
    session) and a fresh signal must clear the confidence floor.
    """
    if booking.mode_locked:
        return GovernanceDecision(allowed=True, reason=GovernanceReason.BOOKING_MODE_LOCKED)

    rules = config.handlers.booking
    if not rules.enabled:
        return GovernanceDecision(allowed=False, reason=GovernanceReason.HANDLER_DISABLED)

    if rules.requires_consent:
        if not consent_detected and not booking.consent_detected:
            return GovernanceDecision(allowed=False, reason=GovernanceReason.NO_CONSENT)

        if consent_detected and consent_confidence < rules.consent_confidence:
            return GovernanceDecision(
                allowed=False,
                reason=GovernanceReason.CONSENT_CONFIDENCE_LOW,
                detail={
                    "consent_confidence": consent_confidence,
                    "min_confidence": rules.consent_confidence,
                },
            )

    return GovernanceDecision(allowed=True, reason=GovernanceReason.BOOKING_ALLOWED)


def check_fallback_handler(config: GovernanceConfig) -> GovernanceDecision:
    """Admit the fallback interpreter unless explicitly disabled."""
    rules = config.handlers.fallback
    if not rules.enabled:
        return GovernanceDecision(allowed=False, reason=GovernanceReason.HANDLER_DISABLED)
    reason = (
        GovernanceReason.FALLBACK_DEFAULT if rules.is_default
        else GovernanceReason.FALLBACK_ALLOWED
    )
    return GovernanceDecision(allowed=True, reason=reason)


def check_escalation(
    config: GovernanceConfig,
    trigger: EscalationTrigger | str,
) -> GovernanceDecision:
    """Approve an escalation only for configured trigger types."""
    rules = config.handlers.escalation
    if not rules.enabled:
        return GovernanceDecision(allowed=False, reason=GovernanceReason.HANDLER_DISABLED)

    try:
        trigger = EscalationTrigger(trigger)
    except ValueError:
        return GovernanceDecision(
            allowed=False,
            reason=GovernanceReason.TRIGGER_NOT_CONFIGURED,
            detail={"trigger": str(trigger)},
        )

    if trigger not in rules.triggers:
        return GovernanceDecision(
            allowed=False,
            reason=GovernanceReason.TRIGGER_NOT_CONFIGURED,
            detail={"trigger": trigger.value},
        )

    return GovernanceDecision(
        allowed=True,
        reason=GovernanceReason.ESCALATION_APPROVED,
        detail={"trigger": trigger.value},
    )


def can_handler_write_facts(
    config: GovernanceConfig,
    handler: HandlerType | str,
) -> GovernanceDecision:
    """Authorize a handler to write facts.

    Capture and booking derived handlers always may. The fallback
    interpreter may only when the tenant config says so. Anything else
    is denied.
    """
    try:
        handler = HandlerType(handler)
    except ValueError:
        return GovernanceDecision(
            allowed=False,
            reason=GovernanceReason.WRITE_NOT_AUTHORIZED,
            detail={"handler": str(handler)},
        )

    if handler in ALWAYS_WRITE_HANDLERS:
        return GovernanceDecision(allowed=True, reason=GovernanceReason.WRITE_ALLOWED)

    if handler == HandlerType.FALLBACK and config.handlers.fallback.can_write_facts:
        return GovernanceDecision(allowed=True, reason=GovernanceReason.WRITE_ALLOWED)

    return GovernanceDecision(
        allowed=False,
        reason=GovernanceReason.WRITE_NOT_AUTHORIZED,
        detail={"handler": handler.value},
    )
