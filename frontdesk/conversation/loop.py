"""Response loop detection."""

from pydantic import BaseModel, ConfigDict

from frontdesk.conversation.models import LoopAction, LoopState
from frontdesk.conversation.models.governance import LoopDetectionConfig


class LoopCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_loop: bool
    consecutive_repeats: int
    action: LoopAction = LoopAction.NONE


def normalize_response(text: str | None) -> str:
    """Lowercase and collapse whitespace."""
    return " ".join((text or "").lower().split())


class LoopDetector:
    """Counts consecutive identical outgoing replies.

    The counter lives on the session's LoopState so it survives between
    turns. An empty reply never counts as a repeat.
    """

    def __init__(self, state: LoopState, config: LoopDetectionConfig) -> None:
        self._state = state
        self._config = config

    def check(self, response_text: str | None) -> LoopCheck:
        """Compare against the previous reply and update the counter."""
        if not self._config.enabled:
            return LoopCheck(is_loop=False, consecutive_repeats=0)

        normalized = normalize_response(response_text)
        if normalized and normalized == normalize_response(self._state.last_response_text):
            self._state.consecutive_repeats += 1
        else:
            self._state.consecutive_repeats = 0
        self._state.last_response_text = response_text

        repeats = self._state.consecutive_repeats
        if repeats >= self._config.max_repeated_responses:
            return LoopCheck(
                is_loop=True,
                consecutive_repeats=repeats,
                action=self._config.on_loop,
            )
        return LoopCheck(is_loop=False, consecutive_repeats=repeats)
