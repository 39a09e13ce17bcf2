"""Built-in handlers used when no external one is registered."""

from frontdesk.conversation.state import ConversationState
from frontdesk.orchestration.interfaces import HandlerReply, TurnHandler, TurnInput
from frontdesk.routing.router import RoutingDecision

ESCALATION_RESPONSE = (
    "I'm connecting you with a member of our team now. Please stay on the line."
)
BOOKING_CONFIRM_RESPONSE = (
    "Perfect, I have everything I need. Let me confirm your appointment details."
)
BOOKING_CONFIRM_STEP = "confirm"


class EscalationHandler(TurnHandler):
    """Hands the caller over with a fixed transfer line."""

    def __init__(self, response: str = ESCALATION_RESPONSE) -> None:
        self._response = response

    async def handle(
        self,
        state: ConversationState,
        turn: TurnInput,
        decision: RoutingDecision,
    ) -> HandlerReply:
        return HandlerReply(text=self._response)


class CaptureFirstBookingHandler(TurnHandler):
    """Booking flow that collects missing capture fields, then confirms.

    One step per missing required or desired field, followed by a
    confirmation step.
    """

    async def handle(
        self,
        state: ConversationState,
        turn: TurnInput,
        decision: RoutingDecision,
    ) -> HandlerReply:
        missing = state.get_missing_required_fields() + state.get_missing_desired_fields()
        planned = [f"collect_{field}" for field in missing] + [BOOKING_CONFIRM_STEP]

        next_field = state.get_next_capture_field()
        if next_field is not None:
            return HandlerReply(
                text=f"Let's get you scheduled. {next_field.prompt}",
                booking_step=f"collect_{next_field.field}",
                planned_steps=planned,
            )
        return HandlerReply(
            text=BOOKING_CONFIRM_RESPONSE,
            booking_step=BOOKING_CONFIRM_STEP,
            planned_steps=planned,
        )
