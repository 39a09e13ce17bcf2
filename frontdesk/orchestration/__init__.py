"""Turn orchestration: per-turn glue between state, routing and handlers."""

from frontdesk.orchestration.handlers import CaptureFirstBookingHandler, EscalationHandler
from frontdesk.orchestration.interfaces import HandlerReply, TurnHandler, TurnInput, TurnResult
from frontdesk.orchestration.interpreter import FallbackInterpreter
from frontdesk.orchestration.orchestrator import TurnOrchestrator

__all__ = [
    "CaptureFirstBookingHandler",
    "EscalationHandler",
    "FallbackInterpreter",
    "HandlerReply",
    "TurnHandler",
    "TurnInput",
    "TurnOrchestrator",
    "TurnResult",
]
