"""Governed per-call conversation state.

ConversationState wraps a CallSession and is the only sanctioned way to
mutate it: facts go through ``commit_fact``, phase and booking changes
through their own methods, and turn records through the
``start_turn``/``commit_turn`` pair.
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from frontdesk.audit.models import AuditEvent, AuditEventType
from frontdesk.conversation.capture import (
    CaptureGoalTracker,
    CaptureInjectionCheck,
    NextCaptureField,
)
from frontdesk.conversation.governance import (
    GovernanceDecision,
    can_handler_write_facts,
    check_booking_handler,
    check_escalation,
    check_fallback_handler,
    check_scenario_handler,
)
from frontdesk.conversation.loop import LoopCheck, LoopDetector
from frontdesk.conversation.models import (
    PHASE_ORDER,
    CallerInput,
    CallIdentity,
    CallOutcome,
    CallSession,
    CaptureTier,
    ContextMessage,
    ContextWindow,
    EndReason,
    EscalationTrigger,
    Fact,
    FactSource,
    FactWriteResult,
    GovernanceConfig,
    GovernanceViolation,
    HandlerType,
    Phase,
    RejectedHandler,
    TriageCandidate,
    TurnDraft,
    TurnRecord,
    TurnSnapshot,
    TurnStatus,
)
from frontdesk.conversation.store import SessionStore
from frontdesk.errors import StoreError
from frontdesk.observability.logging import get_logger
from frontdesk.observability.metrics import (
    ESCALATIONS,
    GOVERNANCE_VIOLATIONS,
    LOOPS_DETECTED,
    PERSISTENCE_ERRORS,
)

logger = get_logger(__name__)

VALID_FACT_SOURCES: frozenset[str] = frozenset(s.value for s in FactSource)

# Rough characters-per-token ratio used to honour max_token_budget
CHARS_PER_TOKEN = 4


class ConversationState:
    """Governed state of one call.

    Owns the fact store, capture tracker, loop detector, turn ledger,
    phase and booking sub-state. Persists itself to the transient
    session store between turns; persistence failures are logged and
    never raised.
    """

    def __init__(
        self,
        session: CallSession,
        store: SessionStore | None = None,
        ttl_seconds: int | None = None,
    ) -> None:
        self._session = session
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._draft: TurnDraft | None = None
        self._progress_this_turn = False
        self._events: list[AuditEvent] = []
        self._capture = CaptureGoalTracker(session)
        self._loop = LoopDetector(session.loop, session.config.router.loop_detection)

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        identity: CallIdentity,
        config: GovernanceConfig | None = None,
        store: SessionStore | None = None,
        ttl_seconds: int | None = None,
    ) -> "ConversationState":
        """Start a fresh session: empty facts, GREETING, zeroed metrics."""
        session = CallSession(
            call_id=identity.call_id,
            tenant_id=identity.tenant_id,
            template_id=identity.template_id,
            caller_number=identity.caller_number,
            callee_number=identity.callee_number,
            started_at=identity.started_at,
            config=config or GovernanceConfig(),
        )
        state = cls(session, store=store, ttl_seconds=ttl_seconds)
        state._capture.initialize()
        logger.info(
            "session_created",
            call_id=identity.call_id,
            tenant_id=identity.tenant_id,
            config_version=session.config.version,
        )
        return state

    @classmethod
    async def load_or_create(
        cls,
        call_id: str,
        identity: CallIdentity,
        store: SessionStore,
        config: GovernanceConfig | None = None,
        ttl_seconds: int | None = None,
        config_loader: Callable[[], Awaitable[GovernanceConfig]] | None = None,
    ) -> "ConversationState":
        """Resume a persisted session, or start a new one.

        Never raises on store failure: the call continues on a fresh
        in-memory session. A resumed session keeps the governance config
        it was created with; ``config_loader`` is only awaited when a new
        session has to be created and no ``config`` was given.

        Raises:
            ConfigurationError: If ``config_loader`` rejects the tenant config
        """
        try:
            session = await store.get(call_id)
        except StoreError as e:
            PERSISTENCE_ERRORS.labels(operation="load").inc()
            logger.warning("session_load_failed", call_id=call_id, error=str(e))
            session = None

        if session is not None:
            logger.debug("session_resumed", call_id=call_id, turns=len(session.turns))
            return cls(session, store=store, ttl_seconds=ttl_seconds)

        if config is None and config_loader is not None:
            config = await config_loader()
        return cls.create(identity, config=config, store=store, ttl_seconds=ttl_seconds)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def session(self) -> CallSession:
        return self._session

    @property
    def call_id(self) -> str:
        return self._session.call_id

    @property
    def tenant_id(self) -> str:
        return self._session.tenant_id

    @property
    def config(self) -> GovernanceConfig:
        return self._session.config

    @property
    def phase(self) -> Phase:
        return self._session.phase.current

    @property
    def booking_locked(self) -> bool:
        return self._session.booking.mode_locked

    @property
    def current_turn(self) -> TurnDraft | None:
        return self._draft

    @property
    def turn_index(self) -> int:
        return self._draft.turn if self._draft else len(self._session.turns)

    def get_fact(self, fact_id: str) -> Any | None:
        fact = self._session.facts.get(fact_id)
        return fact.value if fact else None

    def has_fact(self, fact_id: str) -> bool:
        return fact_id in self._session.facts

    def get_facts_simple(self) -> dict[str, Any]:
        return {key: fact.value for key, fact in self._session.facts.items()}

    # ------------------------------------------------------------------
    # Facts
    # ------------------------------------------------------------------

    def commit_fact(
        self,
        fact_id: str,
        value: Any,
        source: FactSource | str,
        confidence: float = 0.0,
        *,
        writer: HandlerType | str | None = None,
    ) -> FactWriteResult:
        """Write a fact. The only sanctioned write path for the fact store.

        Rejects sources outside the whitelist with ``invalid_source`` and
        writers that governance does not authorize with
        ``unauthorized_writer``; in both cases the fact store is
        unchanged. Otherwise stores or overwrites the fact, updates
        capture progress and records a fact delta on the open turn.
        """
        source_value = source.value if isinstance(source, FactSource) else source
        if source_value not in VALID_FACT_SOURCES:
            logger.warning(
                "fact_rejected_invalid_source",
                call_id=self.call_id,
                fact_id=fact_id,
                source=str(source_value),
            )
            return FactWriteResult(success=False, reason="invalid_source")

        if not 0.0 <= confidence <= 1.0:
            logger.warning(
                "fact_rejected_invalid_confidence",
                call_id=self.call_id,
                fact_id=fact_id,
                confidence=confidence,
            )
            return FactWriteResult(success=False, reason="invalid_confidence")

        if writer is not None:
            decision = can_handler_write_facts(self.config, writer)
            if not decision.allowed:
                self.record_violation(
                    "unauthorized_fact_write",
                    handler=writer,
                    detail={"fact_id": fact_id, "reason": decision.reason.value},
                )
                return FactWriteResult(success=False, reason="unauthorized_writer")

        turn = self.turn_index
        existing = self._session.facts.get(fact_id)
        fact_source = FactSource(source_value)
        self._session.facts[fact_id] = Fact(
            value=value,
            confidence=confidence,
            source=fact_source,
            captured_turn=turn,
            confirmed=fact_source == FactSource.CONFIRMED,
            previous_value=existing.value if existing else None,
        )
        is_new = existing is None

        if self._draft is not None:
            self._draft.add_fact_delta(fact_id, is_new)

        tier = self._capture.record_capture(fact_id, turn)
        if tier in (CaptureTier.REQUIRED, CaptureTier.DESIRED):
            self._progress_this_turn = True

        logger.debug(
            "fact_committed",
            call_id=self.call_id,
            fact_id=fact_id,
            source=source_value,
            confidence=confidence,
            is_new=is_new,
        )
        return FactWriteResult(success=True, is_new=is_new)

    # ------------------------------------------------------------------
    # Phase and booking
    # ------------------------------------------------------------------

    def transition_phase(self, new_phase: Phase | str, reason: str) -> bool:
        """Move to a later phase, or re-enter BOOKING.

        Unknown phase names and backward moves are logged and ignored.
        Leaving BOOKING releases the booking lock.
        """
        try:
            target = Phase(new_phase)
        except ValueError:
            logger.warning("phase_rejected_unknown", call_id=self.call_id, phase=str(new_phase))
            return False

        current = self._session.phase.current
        if target == current:
            return False
        if PHASE_ORDER[target] < PHASE_ORDER[current] and target != Phase.BOOKING:
            logger.warning(
                "phase_rejected_backward",
                call_id=self.call_id,
                current=current.value,
                requested=target.value,
            )
            return False

        phase = self._session.phase
        phase.previous = current
        phase.current = target
        phase.transitioned_at = datetime.now(UTC)
        phase.transition_reason = reason

        if current == Phase.BOOKING:
            self._session.booking.mode_locked = False
        if self._draft is not None:
            self._draft.delta.phase_changed = True

        self.emit_event(
            AuditEventType.PHASE_TRANSITION,
            {"from": current.value, "to": target.value, "reason": reason},
        )
        logger.info(
            "phase_transitioned",
            call_id=self.call_id,
            from_phase=current.value,
            to_phase=target.value,
            reason=reason,
        )
        return True

    def set_booking_consent(self, turn: int | None = None) -> None:
        booking = self._session.booking
        booking.consent_detected = True
        booking.consent_turn = turn if turn is not None else self.turn_index
        logger.info("booking_consent_detected", call_id=self.call_id, turn=booking.consent_turn)

    def lock_booking_mode(self) -> None:
        """Lock the booking flow. Forces the BOOKING phase."""
        self.transition_phase(Phase.BOOKING, "booking_mode_locked")
        self._session.booking.mode_locked = True
        self.emit_event(AuditEventType.BOOKING_LOCKED, {})
        logger.info("booking_mode_locked", call_id=self.call_id)

    def plan_booking_steps(self, steps: list[str]) -> None:
        booking = self._session.booking
        booking.remaining_steps = [s for s in steps if s not in booking.completed_steps]

    def set_booking_step(self, step: str) -> None:
        self._session.booking.current_step = step

    def complete_booking_step(self, step: str) -> None:
        booking = self._session.booking
        if step not in booking.completed_steps:
            booking.completed_steps.append(step)
        booking.remaining_steps = [s for s in booking.remaining_steps if s != step]
        if booking.current_step == step:
            booking.current_step = None

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def start_turn(self) -> TurnDraft:
        """Open a new turn record. An unfinished open turn is abandoned."""
        if self._draft is not None:
            self.abandon_turn("superseded")
        self._draft = TurnDraft(turn=len(self._session.turns))
        self._progress_this_turn = False
        logger.debug("turn_started", call_id=self.call_id, turn=self._draft.turn)
        return self._draft

    def _require_draft(self, what: str) -> TurnDraft | None:
        if self._draft is None:
            logger.warning("no_open_turn", call_id=self.call_id, operation=what)
        return self._draft

    def record_caller_input(self, caller: CallerInput) -> None:
        draft = self._require_draft("record_caller_input")
        if draft is not None:
            draft.caller = caller

    def record_triage(
        self,
        candidates: list[TriageCandidate],
        top_scenario_id: str | None = None,
        urgency: str | None = None,
    ) -> None:
        draft = self._require_draft("record_triage")
        if draft is not None:
            draft.triage.candidates = candidates
            draft.triage.top_scenario_id = top_scenario_id
            draft.triage.urgency = urgency

    def record_routing(
        self,
        handler: HandlerType | None,
        reasons: list[str],
        rejected: list[RejectedHandler] | None = None,
        capture_injected: bool = False,
    ) -> None:
        draft = self._require_draft("record_routing")
        if draft is not None:
            draft.routing.handler = handler
            draft.routing.reasons = reasons
            draft.routing.rejected = rejected or []
            draft.routing.phase = self.phase
            draft.routing.capture_injected = capture_injected

    def record_response(self, handler: HandlerType | None, text: str, latency_ms: int) -> None:
        draft = self._require_draft("record_response")
        if draft is not None:
            draft.response.handler = handler
            draft.response.text = text
            draft.response.latency_ms = max(0, int(latency_ms))

    def record_external_call(self) -> None:
        self._session.metrics.external_call_count += 1

    def _snapshot(self) -> TurnSnapshot:
        return TurnSnapshot(
            facts=self.get_facts_simple(),
            phase=self.phase,
            booking_locked=self.booking_locked,
            capture=self._session.capture.model_copy(deep=True),
        )

    def commit_turn(self) -> TurnRecord | None:
        """Close the open turn, append it and update aggregate metrics."""
        draft = self._require_draft("commit_turn")
        if draft is None:
            return None

        if not self._progress_this_turn:
            self._capture.record_turn_without_progress()

        record = draft.build(self._snapshot(), TurnStatus.COMPLETE)
        self._session.turns.append(record)
        self._draft = None

        metrics = self._session.metrics
        metrics.total_turns = len(self._session.turns)
        metrics.total_latency_ms += record.response.latency_ms
        metrics.avg_response_latency_ms = metrics.total_latency_ms / metrics.total_turns

        handler = record.routing.handler or record.response.handler
        if handler is not None:
            metrics.handler_usage[handler.value] = metrics.handler_usage.get(handler.value, 0) + 1
            if handler == HandlerType.SCENARIO:
                metrics.scenario_match_count += 1

        logger.debug(
            "turn_committed",
            call_id=self.call_id,
            turn=record.turn,
            handler=handler.value if handler else None,
            latency_ms=record.response.latency_ms,
        )
        return record

    def abandon_turn(self, reason: str) -> TurnRecord | None:
        """Drop the open turn without appending it to the ledger.

        Returns the turn as an INCOMPLETE record for diagnostics.
        """
        if self._draft is None:
            return None
        record = self._draft.build(self._snapshot(), TurnStatus.INCOMPLETE)
        self._draft = None
        self.emit_event(AuditEventType.TURN_ABANDONED, {"reason": reason}, turn=record.turn)
        logger.info("turn_abandoned", call_id=self.call_id, turn=record.turn, reason=reason)
        return record

    # ------------------------------------------------------------------
    # Governance
    # ------------------------------------------------------------------

    def check_scenario_handler(self, match_confidence: float) -> GovernanceDecision:
        return check_scenario_handler(self.config, self._session.booking, match_confidence)

    def check_booking_handler(
        self,
        consent_detected: bool = False,
        consent_confidence: float = 0.0,
    ) -> GovernanceDecision:
        return check_booking_handler(
            self.config, self._session.booking, consent_detected, consent_confidence
        )

    def check_fallback_handler(self) -> GovernanceDecision:
        return check_fallback_handler(self.config)

    def can_handler_write_facts(self, handler: HandlerType | str) -> GovernanceDecision:
        return can_handler_write_facts(self.config, handler)

    def should_trigger_escalation(
        self, trigger: EscalationTrigger | str
    ) -> GovernanceDecision:
        """Check an escalation trigger; approval flags the session."""
        decision = check_escalation(self.config, trigger)
        if decision.allowed:
            self._session.metrics.escalation_triggered = True
            trigger_value = decision.detail.get("trigger", str(trigger))
            ESCALATIONS.labels(tenant_id=self.tenant_id, trigger=trigger_value).inc()
            self.emit_event(AuditEventType.ESCALATION_TRIGGERED, {"trigger": trigger_value})
            logger.info("escalation_triggered", call_id=self.call_id, trigger=trigger_value)
        return decision

    def record_violation(
        self,
        kind: str,
        handler: HandlerType | str | None = None,
        detail: dict[str, Any] | None = None,
    ) -> None:
        """Record a governance violation on the session and publish it."""
        try:
            handler_type = HandlerType(handler) if handler is not None else None
        except ValueError:
            handler_type = None
        detail = dict(detail or {})
        if handler is not None and handler_type is None:
            detail["handler"] = str(handler)

        violation = GovernanceViolation(
            kind=kind,
            handler=handler_type,
            turn=self.turn_index,
            detail=detail,
        )
        self._session.governance_violations.append(violation)
        self._session.metrics.governance_violation_count += 1
        GOVERNANCE_VIOLATIONS.labels(tenant_id=self.tenant_id, violation=kind).inc()
        self.emit_event(
            AuditEventType.GOVERNANCE_VIOLATION,
            {"kind": kind, "handler": handler_type.value if handler_type else None, **detail},
        )
        logger.warning(
            "governance_violation",
            call_id=self.call_id,
            kind=kind,
            handler=handler_type.value if handler_type else detail.get("handler"),
        )

    # ------------------------------------------------------------------
    # Capture goals and loop detection
    # ------------------------------------------------------------------

    def get_missing_required_fields(self) -> list[str]:
        return self._capture.get_missing_required_fields()

    def get_missing_desired_fields(self) -> list[str]:
        return self._capture.get_missing_desired_fields()

    def should_inject_capture_prompt(self) -> CaptureInjectionCheck:
        return self._capture.should_inject_capture_prompt()

    def get_next_capture_field(self) -> NextCaptureField | None:
        return self._capture.get_next_capture_field()

    def are_required_goals_met(self) -> bool:
        return self._capture.are_required_goals_met()

    def check_response_loop(self, response_text: str | None) -> LoopCheck:
        result = self._loop.check(response_text)
        if result.is_loop:
            LOOPS_DETECTED.labels(tenant_id=self.tenant_id).inc()
            self.emit_event(
                AuditEventType.LOOP_DETECTED,
                {
                    "consecutive_repeats": result.consecutive_repeats,
                    "action": result.action.value,
                },
            )
            logger.warning(
                "response_loop_detected",
                call_id=self.call_id,
                consecutive_repeats=result.consecutive_repeats,
                action=result.action.value,
            )
        return result

    # ------------------------------------------------------------------
    # Context window
    # ------------------------------------------------------------------

    def get_context_window(self, max_turns: int | None = None) -> ContextWindow:
        """Recent turns as alternating caller/agent messages plus state.

        History is trimmed oldest-first to fit the tenant's token budget.
        """
        window_config = self.config.context_window
        limit = max_turns if max_turns is not None else window_config.max_turns
        turns = self._session.turns
        recent = turns[-limit:] if limit > 0 else []
        older = turns[: len(turns) - len(recent)]

        history: list[ContextMessage] = []
        for turn in recent:
            caller_text = turn.caller.cleaned or turn.caller.raw
            history.append(ContextMessage(role="caller", content=caller_text))
            if turn.response.text:
                history.append(ContextMessage(role="agent", content=turn.response.text))

        budget_chars = window_config.max_token_budget * CHARS_PER_TOKEN
        while history and sum(len(m.content) for m in history) > budget_chars:
            history.pop(0)

        earlier_summary = None
        if older and window_config.summarize_older_turns:
            earlier_summary = self._summarize(older)

        return ContextWindow(
            phase=self.phase,
            booking_locked=self.booking_locked,
            turn_count=len(turns),
            max_turns=limit,
            history=history,
            facts=self.get_facts_simple() if window_config.always_include_facts else None,
            missing_required=self.get_missing_required_fields(),
            missing_desired=self.get_missing_desired_fields(),
            turns_without_progress=self._session.capture.turns_without_progress,
            earlier_summary=earlier_summary,
        )

    @staticmethod
    def _summarize(turns: list[TurnRecord]) -> str:
        handlers = sorted({t.routing.handler.value for t in turns if t.routing.handler})
        topics = [t.caller.cleaned for t in turns[-3:] if t.caller.cleaned]
        summary = f"{len(turns)} earlier turns"
        if handlers:
            summary += f" handled by {', '.join(handlers)}"
        if topics:
            summary += "; caller said: " + " | ".join(topic[:80] for topic in topics)
        return summary

    # ------------------------------------------------------------------
    # Outcome, events and diagnostics
    # ------------------------------------------------------------------

    def set_outcome(
        self,
        end_reason: EndReason | str = EndReason.UNKNOWN,
        notes: dict[str, Any] | None = None,
    ) -> bool:
        """Set the terminal outcome. Only the first call has effect."""
        if self._session.outcome is not None:
            logger.warning("outcome_already_set", call_id=self.call_id)
            return False
        try:
            reason = EndReason(end_reason)
        except ValueError:
            reason = EndReason.UNKNOWN

        now = datetime.now(UTC)
        duration_ms = int((now - self._session.started_at).total_seconds() * 1000)
        self._session.outcome = CallOutcome(
            end_reason=reason,
            duration_ms=max(0, duration_ms),
            final_phase=self.phase,
            booking_completed=bool(self._session.booking.completed_steps),
            facts_collected=list(self._session.facts),
            escalated=self._session.metrics.escalation_triggered,
            ended_at=now,
            notes=notes or {},
        )
        self.emit_event(AuditEventType.CALL_ENDED, {"end_reason": reason.value})
        logger.info(
            "outcome_set",
            call_id=self.call_id,
            end_reason=reason.value,
            final_phase=self.phase.value,
            turns=len(self._session.turns),
        )
        return True

    def emit_event(
        self,
        event_type: AuditEventType,
        data: dict[str, Any],
        turn: int | None = None,
    ) -> None:
        """Queue an audit event for the next drain."""
        self._events.append(
            AuditEvent(
                tenant_id=self.tenant_id,
                call_id=self.call_id,
                event_type=event_type,
                event_data=data,
                turn=turn if turn is not None else self.turn_index,
            )
        )

    def drain_events(self) -> list[AuditEvent]:
        """Return and clear events emitted since the last drain."""
        events, self._events = self._events, []
        return events

    def get_debug_state(self) -> dict[str, Any]:
        return {
            "call_id": self.call_id,
            "tenant_id": self.tenant_id,
            "governance_enabled": self.config.enabled,
            "config_version": self.config.version,
            "phase": self.phase.value,
            "booking_locked": self.booking_locked,
            "facts_count": len(self._session.facts),
            "turns_count": len(self._session.turns),
            "capture": {
                "missing_required": self.get_missing_required_fields(),
                "missing_desired": self.get_missing_desired_fields(),
                "turns_without_progress": self._session.capture.turns_without_progress,
            },
            "metrics": self._session.metrics.model_dump(),
            "violations": len(self._session.governance_violations),
        }

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> bool:
        """Persist to the transient store, refreshing the TTL."""
        if self._store is None:
            logger.debug("session_save_skipped_no_store", call_id=self.call_id)
            return False
        try:
            await self._store.save(self._session, ttl_seconds=self._ttl_seconds)
        except StoreError as e:
            PERSISTENCE_ERRORS.labels(operation="save").inc()
            logger.error("session_save_failed", call_id=self.call_id, error=str(e))
            return False
        return True

    async def delete(self) -> bool:
        """Remove the transient copy."""
        if self._store is None:
            return False
        try:
            return await self._store.delete(self.call_id)
        except StoreError as e:
            PERSISTENCE_ERRORS.labels(operation="delete").inc()
            logger.warning("session_delete_failed", call_id=self.call_id, error=str(e))
            return False
