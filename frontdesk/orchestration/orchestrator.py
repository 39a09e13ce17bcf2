"""Turn orchestrator.

Glues session state, routing, the knowledge cascade and the handlers
together for one turn:

1. Hydrate the call's ConversationState (load or create)
2. Record caller input and triage, commit extracted facts
3. Route the turn through governance
4. Execute the chosen handler
5. Check the outgoing reply for loops
6. Record the response, commit the turn, persist, publish audit events

Every public entry point returns a well-formed result; the only
exception that escapes is asyncio.CancelledError, after the open turn
has been abandoned.
"""

import asyncio
import random
import time
from typing import Any

from frontdesk.audit.models import MILESTONE_EVENTS, AuditEventType
from frontdesk.audit.publisher import EventPublisher, InMemoryEventPublisher
from frontdesk.audit.store import AuditStore
from frontdesk.conversation.governance_config import GovernanceConfigLoader
from frontdesk.conversation.ingestion import (
    ingest_caller_input,
    ingest_extracted_facts,
    ingest_triage_candidates,
)
from frontdesk.conversation.models import (
    CallIdentity,
    CallOutcome,
    EndReason,
    EscalationTrigger,
    FactSource,
    HandlerType,
    LoopAction,
    Phase,
    RejectedHandler,
    TurnStatus,
)
from frontdesk.conversation.state import ConversationState
from frontdesk.conversation.store import SessionStore
from frontdesk.errors import ConfigurationError, InterpreterError
from frontdesk.knowledge.cascade import ERROR_FALLBACK_RESPONSE, KnowledgeCascade
from frontdesk.knowledge.models import AttemptOutcome, CascadeResult
from frontdesk.observability.logging import bind_call_context, clear_call_context, get_logger
from frontdesk.observability.metrics import PERSISTENCE_ERRORS, TURN_COUNT, TURN_LATENCY
from frontdesk.orchestration.handlers import CaptureFirstBookingHandler, EscalationHandler
from frontdesk.orchestration.interfaces import HandlerReply, TurnHandler, TurnInput, TurnResult
from frontdesk.orchestration.interpreter import FallbackInterpreter
from frontdesk.routing.router import RoutingDecision, TurnRouter, apply_capture_injection

logger = get_logger(__name__)

SAFE_RESPONSE = ERROR_FALLBACK_RESPONSE
REPHRASE_PREFIX = "Let me put that another way."

# Fact sources used when a handler's reply carries facts
HANDLER_FACT_SOURCES: dict[HandlerType, FactSource] = {
    HandlerType.BOOKING: FactSource.BOOKING,
    HandlerType.SCENARIO: FactSource.TRIAGE,
    HandlerType.CAPTURE_INJECTION: FactSource.EXTRACTED,
    HandlerType.FALLBACK: FactSource.EXTRACTED,
}


class TurnOrchestrator:
    """Processes conversation turns for live calls."""

    def __init__(
        self,
        session_store: SessionStore,
        config_loader: GovernanceConfigLoader,
        cascade: KnowledgeCascade,
        interpreter: FallbackInterpreter | None = None,
        audit_store: AuditStore | None = None,
        publisher: EventPublisher | None = None,
        router: TurnRouter | None = None,
        handlers: dict[HandlerType, TurnHandler] | None = None,
        session_ttl_seconds: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session_store: Transient per-call session store
            config_loader: Tenant governance config loader
            cascade: Knowledge source cascade
            interpreter: LLM fallback used when the cascade finds nothing
            audit_store: Permanent archive for finished calls
            publisher: Receiver of structured audit events
            router: Turn router
            handlers: External scenario/booking/escalation handlers
            session_ttl_seconds: TTL for saved sessions (store default if None)
            rng: Random source for capture-prompt phrasing
        """
        self._session_store = session_store
        self._config_loader = config_loader
        self._cascade = cascade
        self._interpreter = interpreter
        self._audit_store = audit_store
        self._publisher = publisher or InMemoryEventPublisher()
        self._router = router or TurnRouter()
        self._handlers: dict[HandlerType, TurnHandler] = {
            HandlerType.ESCALATION: EscalationHandler(),
            HandlerType.BOOKING: CaptureFirstBookingHandler(),
        }
        self._handlers.update(handlers or {})
        self._session_ttl_seconds = session_ttl_seconds
        self._rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def process_turn(self, turn: TurnInput) -> TurnResult:
        """Process one caller turn and return the reply.

        Args:
            turn: Caller input and upstream signals for this turn

        Returns:
            TurnResult with the reply; INCOMPLETE status on internal failure
        """
        started = time.perf_counter()
        bind_call_context(turn.call_id, turn.tenant_id)
        try:
            try:
                state = await self._hydrate(turn)
            except ConfigurationError as e:
                logger.error("tenant_config_invalid", error=str(e))
                return self._failure(turn, started, error=f"configuration: {e}")
            except Exception as e:
                logger.error("session_hydrate_failed", error=str(e), error_type=type(e).__name__)
                return self._failure(turn, started, error=f"hydrate: {e}")

            try:
                return await self._run_turn(state, turn, started)
            except asyncio.CancelledError:
                state.abandon_turn("cancelled")
                logger.info("turn_cancelled")
                raise
            except Exception as e:
                logger.error("turn_failed", error=str(e), error_type=type(e).__name__)
                state.abandon_turn("error")
                await self._publish(state)
                return self._failure(turn, started, error=str(e), phase=state.phase)
        finally:
            clear_call_context()

    async def _hydrate(self, turn: TurnInput) -> ConversationState:
        identity = CallIdentity(
            call_id=turn.call_id,
            tenant_id=turn.tenant_id,
            template_id=turn.template_id,
            caller_number=turn.caller_number,
            callee_number=turn.callee_number,
        )
        return await ConversationState.load_or_create(
            turn.call_id,
            identity,
            self._session_store,
            ttl_seconds=self._session_ttl_seconds,
            config_loader=lambda: self._config_loader.load(turn.tenant_id),
        )

    async def _run_turn(
        self,
        state: ConversationState,
        turn: TurnInput,
        started: float,
    ) -> TurnResult:
        draft = state.start_turn()
        bind_call_context(turn.call_id, turn.tenant_id, draft.turn)

        caller = ingest_caller_input(turn.text, turn.cleaned_text, turn.input_confidence)
        state.record_caller_input(caller)

        candidates = ingest_triage_candidates(turn.triage_candidates)
        if candidates:
            state.record_triage(candidates, candidates[0].scenario_id, turn.urgency)

        if state.phase == Phase.GREETING and caller.cleaned:
            state.transition_phase(Phase.DISCOVERY, "caller_engaged")

        ingested = ingest_extracted_facts(turn.extracted_facts)
        for fact in ingested.facts:
            state.commit_fact(
                fact.fact_id,
                fact.value,
                fact.source,
                fact.confidence,
                writer=HandlerType.EXTRACTOR,
            )

        decision = self._available(self._router.route(state, turn.signals))
        handler = decision.handler or self._passthrough_handler(turn)
        state.record_routing(
            handler,
            decision.reasons,
            decision.rejected,
            capture_injected=decision.capture is not None,
        )

        text, cascade_result = await self._execute(state, turn, decision, handler, caller.cleaned)

        loop = state.check_response_loop(text)
        if loop.is_loop and handler != HandlerType.ESCALATION:
            if loop.action == LoopAction.ESCALATE:
                check = state.should_trigger_escalation(EscalationTrigger.LOOP_DETECTED)
                if check.allowed:
                    handler = HandlerType.ESCALATION
                    reply = await self._handlers[HandlerType.ESCALATION].handle(
                        state, turn, decision
                    )
                    text = reply.text
            elif loop.action == LoopAction.REPHRASE:
                text = f"{REPHRASE_PREFIX} {text}"

        latency_ms = int((time.perf_counter() - started) * 1000)
        state.record_response(handler, text, latency_ms)
        record = state.commit_turn()
        persisted = await state.save()

        if cascade_result is not None and cascade_result.has_errors:
            state.emit_event(
                AuditEventType.CASCADE_ERROR,
                {
                    "outcome": cascade_result.outcome.value,
                    "failed_sources": [
                        a.source_id for a in cascade_result.trace
                        if a.outcome in (AttemptOutcome.ERROR, AttemptOutcome.TIMEOUT)
                    ],
                },
                turn=record.turn if record else None,
            )
        await self._publish(state)

        TURN_COUNT.labels(
            tenant_id=turn.tenant_id, handler=handler.value, status=TurnStatus.COMPLETE.value
        ).inc()
        TURN_LATENCY.labels(tenant_id=turn.tenant_id).observe(latency_ms / 1000)
        logger.info(
            "turn_processed",
            handler=handler.value,
            phase=state.phase.value,
            latency_ms=latency_ms,
            persisted=persisted,
        )

        return TurnResult(
            call_id=turn.call_id,
            response=text,
            handler=handler,
            routing_reason=decision.reason,
            turn=record.turn if record else None,
            phase=state.phase,
            status=TurnStatus.COMPLETE,
            cascade_outcome=cascade_result.outcome if cascade_result else None,
            source_id=cascade_result.source_id if cascade_result else None,
            confidence=cascade_result.confidence if cascade_result else None,
            capture_injected=decision.capture is not None,
            escalated=handler == HandlerType.ESCALATION,
            persisted=persisted,
            latency_ms=latency_ms,
        )

    def _available(self, decision: RoutingDecision) -> RoutingDecision:
        """Send a scenario match to the fallback when no scenario handler is registered."""
        if decision.handler != HandlerType.SCENARIO or HandlerType.SCENARIO in self._handlers:
            return decision
        logger.warning("scenario_handler_unavailable", scenario_id=decision.scenario_id)
        rejected = RejectedHandler(
            handler=HandlerType.SCENARIO, reason="scenario_handler_unavailable"
        )
        return decision.model_copy(
            update={
                "handler": HandlerType.FALLBACK,
                "reason": "scenario_handler_unavailable",
                "rejected": [*decision.rejected, rejected],
            }
        )

    def _passthrough_handler(self, turn: TurnInput) -> HandlerType:
        if turn.signals.scenario_id and HandlerType.SCENARIO in self._handlers:
            return HandlerType.SCENARIO
        return HandlerType.FALLBACK

    # ------------------------------------------------------------------
    # Handler execution
    # ------------------------------------------------------------------

    async def _execute(
        self,
        state: ConversationState,
        turn: TurnInput,
        decision: RoutingDecision,
        handler: HandlerType,
        query: str,
    ) -> tuple[str, CascadeResult | None]:
        if handler == HandlerType.CAPTURE_INJECTION:
            prompt = decision.capture.prompt if decision.capture else None
            result = await self._cascade.run(
                turn.tenant_id, query, allowed_sources=turn.allowed_sources
            )
            base = result.response if result.matched else None
            return apply_capture_injection(base, prompt, self._rng), result

        external = self._handlers.get(handler)
        if external is not None and handler != HandlerType.FALLBACK:
            reply = await external.handle(state, turn, decision)
            self._apply_reply(state, handler, reply)
            return reply.text, None

        return await self._knowledge_reply(state, turn, query)

    async def _knowledge_reply(
        self,
        state: ConversationState,
        turn: TurnInput,
        query: str,
    ) -> tuple[str, CascadeResult]:
        """Cascade first, then the interpreter, then the cascade's safe reply."""
        result = await self._cascade.run(
            turn.tenant_id, query, allowed_sources=turn.allowed_sources
        )
        if result.matched or self._interpreter is None:
            return result.response, result

        check = state.check_fallback_handler()
        if not check.allowed:
            state.record_violation(
                "disallowed_handler",
                handler=HandlerType.FALLBACK,
                detail={"reason": check.reason.value},
            )
            return result.response, result

        state.record_external_call()
        try:
            reply = await self._interpreter.interpret(state.get_context_window(), query)
        except InterpreterError as e:
            logger.warning("interpreter_fallback_used", error=str(e))
            return result.response, result
        return reply, result

    def _apply_reply(
        self,
        state: ConversationState,
        handler: HandlerType,
        reply: HandlerReply,
    ) -> None:
        source = HANDLER_FACT_SOURCES.get(handler, FactSource.EXTRACTED)
        for fact_id, value in reply.facts.items():
            state.commit_fact(fact_id, value, source, reply.fact_confidence, writer=handler)

        if handler == HandlerType.BOOKING:
            previous_step = state.session.booking.current_step
            if reply.planned_steps is not None:
                state.plan_booking_steps(reply.planned_steps)
            if previous_step and previous_step != reply.booking_step:
                state.complete_booking_step(previous_step)
            if reply.completed_step:
                state.complete_booking_step(reply.completed_step)
            if reply.booking_step:
                state.set_booking_step(reply.booking_step)

        if reply.phase is not None:
            state.transition_phase(reply.phase, f"{handler.value}_handler")

    # ------------------------------------------------------------------
    # Call end
    # ------------------------------------------------------------------

    async def end_call(
        self,
        call_id: str,
        tenant_id: str,
        end_reason: EndReason | str = EndReason.UNKNOWN,
        notes: dict[str, Any] | None = None,
    ) -> CallOutcome | None:
        """Finalize a call: set the outcome, archive, drop the transient copy.

        If archiving fails the transient copy is kept (and refreshed) so
        the session is not lost. Returns None when no session exists.
        """
        bind_call_context(call_id, tenant_id)
        try:
            try:
                session = await self._session_store.get(call_id)
            except Exception as e:
                PERSISTENCE_ERRORS.labels(operation="load").inc()
                logger.error("end_call_load_failed", error=str(e), error_type=type(e).__name__)
                return None

            if session is None:
                logger.warning("end_call_session_missing")
                return None

            state = ConversationState(
                session, store=self._session_store, ttl_seconds=self._session_ttl_seconds
            )
            state.set_outcome(end_reason, notes)

            archived = await self._archive(state)
            try:
                if archived:
                    await state.delete()
                else:
                    await state.save()
                await self._publish(state)
            except Exception as e:
                PERSISTENCE_ERRORS.labels(operation="finalize").inc()
                logger.error(
                    "end_call_finalize_failed", error=str(e), error_type=type(e).__name__
                )
            return state.session.outcome
        finally:
            clear_call_context()

    async def _archive(self, state: ConversationState) -> bool:
        if self._audit_store is None:
            logger.debug("archive_skipped_no_store")
            return True
        try:
            await self._audit_store.archive_session(state.session)
        except Exception as e:
            PERSISTENCE_ERRORS.labels(operation="archive").inc()
            logger.error("session_archive_failed", error=str(e), error_type=type(e).__name__)
            return False
        logger.info("session_archived", turns=len(state.session.turns))
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _publish(self, state: ConversationState) -> None:
        include_milestones = state.config.audit.log_milestones
        for event in state.drain_events():
            if event.event_type in MILESTONE_EVENTS and not include_milestones:
                continue
            await self._publisher.publish(event)

    def _failure(
        self,
        turn: TurnInput,
        started: float,
        error: str,
        phase: Phase | None = None,
    ) -> TurnResult:
        latency_ms = int((time.perf_counter() - started) * 1000)
        TURN_COUNT.labels(
            tenant_id=turn.tenant_id, handler="none", status=TurnStatus.INCOMPLETE.value
        ).inc()
        return TurnResult(
            call_id=turn.call_id,
            response=SAFE_RESPONSE,
            phase=phase,
            status=TurnStatus.INCOMPLETE,
            latency_ms=latency_ms,
            error=error,
        )
