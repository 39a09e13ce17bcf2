"""Turn routing: ordered, governance-driven handler selection."""

from frontdesk.routing.router import (
    CAPTURE_TRANSITIONS,
    RoutingDecision,
    RoutingSignals,
    RoutingStepTrace,
    TurnRouter,
    apply_capture_injection,
)

__all__ = [
    "CAPTURE_TRANSITIONS",
    "RoutingDecision",
    "RoutingSignals",
    "RoutingStepTrace",
    "TurnRouter",
    "apply_capture_injection",
]
