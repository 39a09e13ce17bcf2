"""Per-tenant governance configuration models.

A GovernanceConfig is loaded once at call start and treated as read-only
for the rest of the call. Every section rejects unknown keys.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from frontdesk.conversation.models.enums import (
    CaptureTier,
    EscalationTrigger,
    LoopAction,
    RouteStep,
)

DEFAULT_CONFIG_VERSION = "default"

Verbosity = Literal["minimal", "standard", "verbose"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class CaptureGoal(_StrictModel):
    """Fields to capture at one priority tier."""

    fields: list[str] = Field(default_factory=list, description="Fact ids to capture")
    deadline: str = Field(default="none", description="Phase by which fields are due")
    on_missing: str = Field(default="ignore", description="Action when still missing")


class CaptureGoals(_StrictModel):
    """Required, desired and optional capture tiers."""

    required: CaptureGoal = Field(
        default_factory=lambda: CaptureGoal(
            fields=["name", "issue"],
            deadline="before_booking_confirmation",
            on_missing="router_prompts",
        )
    )
    desired: CaptureGoal = Field(
        default_factory=lambda: CaptureGoal(
            fields=["phone", "address"],
            deadline="end_of_discovery",
            on_missing="log_warning",
        )
    )
    optional: CaptureGoal = Field(default_factory=CaptureGoal)

    def tier_of(self, field: str) -> CaptureTier | None:
        """Return the tier a field is declared in, if any."""
        if field in self.required.fields:
            return CaptureTier.REQUIRED
        if field in self.desired.fields:
            return CaptureTier.DESIRED
        if field in self.optional.fields:
            return CaptureTier.OPTIONAL
        return None

    @model_validator(mode="after")
    def check_tiers_disjoint(self) -> "CaptureGoals":
        """A field may be declared in at most one tier."""
        seen: dict[str, str] = {}
        for tier in ("required", "desired", "optional"):
            goal: CaptureGoal = getattr(self, tier)
            for field in goal.fields:
                if field in seen:
                    raise ValueError(
                        f"capture field '{field}' declared in both "
                        f"'{seen[field]}' and '{tier}'"
                    )
                seen[field] = tier
        return self


class ContextWindowConfig(_StrictModel):
    """How much history the fallback interpreter sees."""

    max_turns: int = Field(default=6, ge=1, le=50)
    summarize_older_turns: bool = True
    always_include_facts: bool = True
    max_token_budget: int = Field(default=600, gt=0)


class ScenarioHandlerConfig(_StrictModel):
    enabled: bool = True
    min_confidence: float = Field(default=0.75, ge=0.0, le=1.0)
    allow_in_booking_mode: bool = False


class BookingHandlerConfig(_StrictModel):
    enabled: bool = True
    requires_consent: bool = True
    consent_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    lock_after_consent: bool = True


class FallbackHandlerConfig(_StrictModel):
    enabled: bool = True
    is_default: bool = True
    can_write_facts: bool = False


class EscalationHandlerConfig(_StrictModel):
    enabled: bool = True
    triggers: list[EscalationTrigger] = Field(
        default_factory=lambda: [
            EscalationTrigger.EXPLICIT_REQUEST,
            EscalationTrigger.FRUSTRATION_DETECTED,
            EscalationTrigger.LOOP_DETECTED,
        ]
    )


class HandlersConfig(_StrictModel):
    """Per-handler admission rules."""

    scenario: ScenarioHandlerConfig = Field(default_factory=ScenarioHandlerConfig)
    booking: BookingHandlerConfig = Field(default_factory=BookingHandlerConfig)
    fallback: FallbackHandlerConfig = Field(default_factory=FallbackHandlerConfig)
    escalation: EscalationHandlerConfig = Field(default_factory=EscalationHandlerConfig)


class CaptureInjectionConfig(_StrictModel):
    enabled: bool = True
    max_turns_without_progress: int = Field(default=2, ge=0)


class LoopDetectionConfig(_StrictModel):
    enabled: bool = True
    max_repeated_responses: int = Field(default=2, ge=1)
    on_loop: LoopAction = LoopAction.ESCALATE


class RouterConfig(_StrictModel):
    """Turn router ordering and side rules."""

    priority: list[RouteStep] = Field(
        default_factory=lambda: [
            RouteStep.ESCALATION,
            RouteStep.BOOKING_LOCKED,
            RouteStep.CAPTURE_INJECTION,
            RouteStep.BOOKING_CONSENT,
            RouteStep.SCENARIO_MATCH,
            RouteStep.FALLBACK_DEFAULT,
        ]
    )
    capture_injection: CaptureInjectionConfig = Field(
        default_factory=CaptureInjectionConfig
    )
    loop_detection: LoopDetectionConfig = Field(default_factory=LoopDetectionConfig)

    @model_validator(mode="after")
    def check_priority_unique(self) -> "RouterConfig":
        """Each route step may appear once."""
        if len(set(self.priority)) != len(self.priority):
            raise ValueError("router.priority contains duplicate steps")
        return self


class AuditConfig(_StrictModel):
    log_turn_records: bool = True
    log_milestones: bool = True
    verbosity: Verbosity = "standard"


class GovernanceConfig(_StrictModel):
    """Governance rules for one tenant.

    Declares capture goals, context-window sizing, handler admission
    rules, router ordering and loop detection. Missing sections fall
    back to defaults; unknown keys are rejected.
    """

    version: str = Field(default=DEFAULT_CONFIG_VERSION, min_length=1)
    enabled: bool = True
    capture_goals: CaptureGoals = Field(default_factory=CaptureGoals)
    context_window: ContextWindowConfig = Field(default_factory=ContextWindowConfig)
    handlers: HandlersConfig = Field(default_factory=HandlersConfig)
    router: RouterConfig = Field(default_factory=RouterConfig)
    audit: AuditConfig = Field(default_factory=AuditConfig)
