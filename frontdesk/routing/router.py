"""Turn router.

Walks the tenant's configured route steps in order and returns the first
handler governance admits. Booking consent may lock booking mode as a
side effect; escalation approval flags the session.
"""

import random

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.capture import CaptureInjectionCheck
from frontdesk.conversation.models import (
    EscalationTrigger,
    HandlerType,
    RejectedHandler,
    RouteStep,
)
from frontdesk.conversation.state import ConversationState
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

CAPTURE_TRANSITIONS: tuple[str, ...] = (
    "By the way,",
    "Also,",
    "Before we continue,",
    "Just to make sure I have this right,",
)


class RoutingSignals(BaseModel):
    """Upstream detector output the router decides on."""

    model_config = ConfigDict(frozen=True)

    explicit_escalation: bool = False
    frustration_detected: bool = False
    loop_detected: bool = False
    booking_consent: bool = False
    consent_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    scenario_id: str | None = None
    scenario_confidence: float = Field(default=0.0, ge=0.0, le=1.0)


class RoutingStepTrace(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: str
    result: str
    reason: str | None = None


class RoutingDecision(BaseModel):
    """Which handler produces this turn's reply, and why."""

    model_config = ConfigDict(frozen=True)

    handler: HandlerType | None = Field(..., description="None on passthrough")
    reason: str
    governance: list[RoutingStepTrace] = Field(default_factory=list)
    rejected: list[RejectedHandler] = Field(default_factory=list)
    capture: CaptureInjectionCheck | None = None
    escalation_trigger: EscalationTrigger | None = None
    scenario_id: str | None = None
    passthrough: bool = False

    @property
    def reasons(self) -> list[str]:
        return [self.reason] + [t.reason for t in self.governance if t.reason]


def apply_capture_injection(
    response: str | None,
    prompt: str | None,
    rng: random.Random | None = None,
) -> str:
    """Append a capture prompt to a reply with a transition phrase.

    With no reply the prompt is used on its own.
    """
    if not prompt:
        return response or ""
    if response and response.strip():
        transition = (rng or random).choice(CAPTURE_TRANSITIONS)
        return f"{response.strip()} {transition} {prompt}"
    return prompt


def _trace(step: str, result: str, reason: str | None = None) -> RoutingStepTrace:
    return RoutingStepTrace(step=step, result=result, reason=reason)


class TurnRouter:
    """Chooses the handler for a turn from governance decisions."""

    def route(self, state: ConversationState, signals: RoutingSignals) -> RoutingDecision:
        """Route one turn.

        Steps run in the order of ``router.priority``; the fallback
        default is always the last resort. A disabled governance config
        yields a passthrough decision with no handler.
        """
        if not state.config.enabled:
            return self._passthrough(state, "governance_disabled")

        trace: list[RoutingStepTrace] = []
        rejected: list[RejectedHandler] = []

        steps = [s for s in state.config.router.priority if s != RouteStep.FALLBACK_DEFAULT]
        for step in steps:
            decision = self._run_step(step, state, signals, trace, rejected)
            if decision is not None:
                self._log(state, decision)
                return decision

        decision = self._fallback(state, trace, rejected)
        self._log(state, decision)
        return decision

    def _run_step(
        self,
        step: RouteStep,
        state: ConversationState,
        signals: RoutingSignals,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        if step == RouteStep.ESCALATION:
            return self._escalation(state, signals, trace, rejected)
        if step == RouteStep.BOOKING_LOCKED:
            return self._booking_locked(state, trace, rejected)
        if step == RouteStep.CAPTURE_INJECTION:
            return self._capture_injection(state, trace, rejected)
        if step == RouteStep.BOOKING_CONSENT:
            return self._booking_consent(state, signals, trace, rejected)
        if step == RouteStep.SCENARIO_MATCH:
            return self._scenario(state, signals, trace, rejected)
        return None

    def _escalation(
        self,
        state: ConversationState,
        signals: RoutingSignals,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        triggers = []
        if signals.explicit_escalation:
            triggers.append(EscalationTrigger.EXPLICIT_REQUEST)
        if signals.frustration_detected:
            triggers.append(EscalationTrigger.FRUSTRATION_DETECTED)
        if signals.loop_detected:
            triggers.append(EscalationTrigger.LOOP_DETECTED)

        for trigger in triggers:
            check = state.should_trigger_escalation(trigger)
            if check.allowed:
                trace.append(
                    _trace("escalation", result="triggered", reason=trigger.value)
                )
                return RoutingDecision(
                    handler=HandlerType.ESCALATION,
                    reason=trigger.value,
                    governance=trace,
                    rejected=rejected,
                    escalation_trigger=trigger,
                )
            rejected.append(
                RejectedHandler(handler=HandlerType.ESCALATION, reason=check.reason.value)
            )

        trace.append(_trace("escalation", result="not_triggered"))
        return None

    def _booking_locked(
        self,
        state: ConversationState,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        if state.booking_locked:
            check = state.check_booking_handler()
            if check.allowed:
                trace.append(
                    _trace("booking_locked", result="locked", reason=check.reason.value)
                )
                return RoutingDecision(
                    handler=HandlerType.BOOKING,
                    reason=check.reason.value,
                    governance=trace,
                    rejected=rejected,
                )
        trace.append(_trace("booking_locked", result="not_locked"))
        return None

    def _capture_injection(
        self,
        state: ConversationState,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        check = state.should_inject_capture_prompt()
        if check.inject:
            trace.append(
                _trace("capture_injection", result="inject", reason=check.reason)
            )
            return RoutingDecision(
                handler=HandlerType.CAPTURE_INJECTION,
                reason="capture_injection_required",
                governance=trace,
                rejected=rejected,
                capture=check,
            )
        trace.append(
            _trace("capture_injection", result="not_needed", reason=check.reason)
        )
        return None

    def _booking_consent(
        self,
        state: ConversationState,
        signals: RoutingSignals,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        if not signals.booking_consent:
            return None

        check = state.check_booking_handler(True, signals.consent_confidence)
        if not check.allowed:
            trace.append(
                _trace("booking_consent", result="rejected", reason=check.reason.value)
            )
            rejected.append(RejectedHandler(handler=HandlerType.BOOKING, reason=check.reason.value))
            return None

        state.set_booking_consent()
        if state.config.handlers.booking.lock_after_consent:
            state.lock_booking_mode()
        trace.append(
            _trace("booking_consent", result="consent_detected", reason=check.reason.value)
        )
        return RoutingDecision(
            handler=HandlerType.BOOKING,
            reason="booking_consent_detected",
            governance=trace,
            rejected=rejected,
        )

    def _scenario(
        self,
        state: ConversationState,
        signals: RoutingSignals,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision | None:
        if not signals.scenario_id or signals.scenario_confidence <= 0:
            return None

        check = state.check_scenario_handler(signals.scenario_confidence)
        if check.allowed:
            trace.append(
                _trace("scenario_match", result="matched", reason=check.reason.value)
            )
            return RoutingDecision(
                handler=HandlerType.SCENARIO,
                reason="scenario_matched_above_threshold",
                governance=trace,
                rejected=rejected,
                scenario_id=signals.scenario_id,
            )
        trace.append(
            _trace("scenario_match", result="rejected", reason=check.reason.value)
        )
        rejected.append(RejectedHandler(handler=HandlerType.SCENARIO, reason=check.reason.value))
        return None

    def _fallback(
        self,
        state: ConversationState,
        trace: list[RoutingStepTrace],
        rejected: list[RejectedHandler],
    ) -> RoutingDecision:
        check = state.check_fallback_handler()
        if check.allowed:
            trace.append(
                _trace("fallback_default", result="allowed", reason=check.reason.value)
            )
            reason = check.reason.value
        else:
            logger.warning(
                "fallback_disabled_failing_open",
                call_id=state.call_id,
                reason=check.reason.value,
            )
            trace.append(
                _trace("fallback_default", result="fail_open", reason=check.reason.value)
            )
            reason = "fallback_fail_open"
        return RoutingDecision(
            handler=HandlerType.FALLBACK,
            reason=reason,
            governance=trace,
            rejected=rejected,
        )

    def _passthrough(self, state: ConversationState, reason: str) -> RoutingDecision:
        logger.debug("routing_passthrough", call_id=state.call_id, reason=reason)
        return RoutingDecision(handler=None, reason=reason, passthrough=True)

    def _log(self, state: ConversationState, decision: RoutingDecision) -> None:
        logger.info(
            "turn_routed",
            call_id=state.call_id,
            handler=decision.handler.value if decision.handler else None,
            reason=decision.reason,
            rejected=[r.handler.value for r in decision.rejected],
            capture_field=decision.capture.field if decision.capture else None,
        )
