"""Capture goal tracking.

Reports which configured fields are still missing and whether the
router should prompt for one this turn.
"""

from pydantic import BaseModel, ConfigDict

from frontdesk.conversation.models import (
    CallSession,
    CaptureEntry,
    CaptureTier,
    Phase,
)

DEFAULT_FIELD_PROMPTS: dict[str, str] = {
    "name": "May I have your name?",
    "name.first": "May I have your first name?",
    "name.last": "And your last name?",
    "phone": "What's the best number to reach you?",
    "address": "What's the service address?",
    "issue": "What can we help you with today?",
    "email": "And what's your email address?",
}


def field_prompt(field: str) -> str:
    """Return the spoken prompt used to ask for a field."""
    return DEFAULT_FIELD_PROMPTS.get(field, f"Could you tell me your {field}?")


class CaptureInjectionCheck(BaseModel):
    """Whether to prompt for a missing field this turn."""

    model_config = ConfigDict(frozen=True)

    inject: bool
    reason: str
    field: str | None = None
    tier: CaptureTier | None = None
    prompt: str | None = None


class NextCaptureField(BaseModel):
    model_config = ConfigDict(frozen=True)

    field: str
    tier: CaptureTier
    prompt: str


class CaptureGoalTracker:
    """Evaluates the fact store against the configured capture goals.

    Operates on the CallSession it is given. A field counts as captured
    once it is in the fact store or marked captured in the progress map.
    """

    def __init__(self, session: CallSession) -> None:
        self._session = session

    def _tier_map(self, tier: CaptureTier) -> dict[str, CaptureEntry]:
        return getattr(self._session.capture, tier.value)

    def initialize(self) -> None:
        """Seed the progress maps from the config, keeping existing entries."""
        goals = self._session.config.capture_goals
        for tier in CaptureTier:
            entries = self._tier_map(tier)
            for field in getattr(goals, tier.value).fields:
                entries.setdefault(field, CaptureEntry())

    def _missing(self, tier: CaptureTier) -> list[str]:
        fields = getattr(self._session.config.capture_goals, tier.value).fields
        entries = self._tier_map(tier)
        missing = []
        for field in fields:
            entry = entries.get(field)
            if (entry is None or not entry.captured) and field not in self._session.facts:
                missing.append(field)
        return missing

    def get_missing_required_fields(self) -> list[str]:
        return self._missing(CaptureTier.REQUIRED)

    def get_missing_desired_fields(self) -> list[str]:
        return self._missing(CaptureTier.DESIRED)

    def are_required_goals_met(self) -> bool:
        return not self.get_missing_required_fields()

    def record_capture(self, field: str, turn: int) -> CaptureTier | None:
        """Mark a field captured.

        Returns the tier it belongs to, or None for fields that are not
        capture goals. Required and desired captures count as progress.
        """
        tier = self._session.config.capture_goals.tier_of(field)
        if tier is None:
            return None
        self._tier_map(tier)[field] = CaptureEntry(captured=True, turn=turn)
        if tier in (CaptureTier.REQUIRED, CaptureTier.DESIRED):
            self._session.capture.turns_without_progress = 0
        return tier

    def record_turn_without_progress(self) -> None:
        self._session.capture.turns_without_progress += 1

    def should_inject_capture_prompt(self) -> CaptureInjectionCheck:
        """Decide whether to prompt for a missing field this turn.

        Gated on the turns-without-progress threshold. Required fields
        come first; desired fields are only prompted during DISCOVERY.
        """
        rules = self._session.config.router.capture_injection
        if not rules.enabled:
            return CaptureInjectionCheck(inject=False, reason="capture_injection_disabled")

        if self._session.capture.turns_without_progress < rules.max_turns_without_progress:
            return CaptureInjectionCheck(inject=False, reason="progress_threshold_not_reached")

        missing_required = self.get_missing_required_fields()
        if missing_required:
            field = missing_required[0]
            return CaptureInjectionCheck(
                inject=True,
                reason="required_field_missing",
                field=field,
                tier=CaptureTier.REQUIRED,
                prompt=field_prompt(field),
            )

        if self._session.phase.current == Phase.DISCOVERY:
            missing_desired = self.get_missing_desired_fields()
            if missing_desired:
                field = missing_desired[0]
                return CaptureInjectionCheck(
                    inject=True,
                    reason="desired_field_missing",
                    field=field,
                    tier=CaptureTier.DESIRED,
                    prompt=field_prompt(field),
                )

        return CaptureInjectionCheck(inject=False, reason="all_goals_met")

    def get_next_capture_field(self) -> NextCaptureField | None:
        """Next field to ask for, ignoring the injection threshold."""
        for tier, missing in (
            (CaptureTier.REQUIRED, self.get_missing_required_fields()),
            (CaptureTier.DESIRED, self.get_missing_desired_fields()),
        ):
            if missing:
                return NextCaptureField(
                    field=missing[0], tier=tier, prompt=field_prompt(missing[0])
                )
        return None
