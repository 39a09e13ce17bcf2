"""Fact models for the governed fact store."""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models.enums import FactSource


def utc_now() -> datetime:
    """Return current UTC time."""
    return datetime.now(UTC)


class Fact(BaseModel):
    """A governed piece of information learned about the caller.

    Facts are replaced, never edited: overwriting a fact produces a new
    Fact that carries the prior value in ``previous_value``.
    """

    model_config = ConfigDict(frozen=True)

    value: Any = Field(..., description="Captured value")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Capture confidence")
    source: FactSource = Field(..., description="Provenance")
    captured_turn: int = Field(..., ge=0, description="Turn index when captured")
    captured_at: datetime = Field(default_factory=utc_now, description="Capture time")
    confirmed: bool = Field(default=False, description="Caller confirmed the value")
    previous_value: Any | None = Field(default=None, description="Value this fact replaced")


class FactWriteResult(BaseModel):
    """Outcome of a governed fact write."""

    model_config = ConfigDict(frozen=True)

    success: bool
    reason: str | None = None
    is_new: bool = False
