"""Context window handed to the fallback interpreter."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models.enums import Phase


class ContextMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["caller", "agent"]
    content: str


class ContextWindow(BaseModel):
    """Bounded view of the call for interpretive handlers.

    Recent turns interleaved caller/agent, current facts (when the tenant
    includes them), phase, booking lock and the capture gaps.
    """

    model_config = ConfigDict(frozen=True)

    phase: Phase
    booking_locked: bool
    turn_count: int
    max_turns: int
    history: list[ContextMessage] = Field(default_factory=list)
    facts: dict[str, Any] | None = None
    missing_required: list[str] = Field(default_factory=list)
    missing_desired: list[str] = Field(default_factory=list)
    turns_without_progress: int = 0
    earlier_summary: str | None = Field(
        default=None, description="Short digest of turns outside the window"
    )
