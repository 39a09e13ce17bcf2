"""Tenant personality styling for matched replies."""

import random
import re

from frontdesk.knowledge.config_store import COMPANY_QNA
from frontdesk.knowledge.models import PersonalityProfile

EMERGENCY_CATEGORY = "emergency"
SERVICE_REQUEST_CATEGORY = "service_request"

# Replies shorter than this get no closing phrase
CLOSING_MIN_LENGTH = 50

CASUAL_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("We recommend", "We'd suggest"),
    ("Please contact", "Feel free to reach out"),
    ("We are pleased", "We're happy"),
)

FORMAL_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("We'd", "We would"),
    ("can't", "cannot"),
    ("won't", "will not"),
)

_EXCLAMATIONS = re.compile(r"!+")
_WHITESPACE = re.compile(r"\s+")


def add_warmth(response: str) -> str:
    if "!" not in response and not response.endswith("?") and response.endswith("."):
        return response[:-1] + "!"
    return response


def make_professional(response: str) -> str:
    return _WHITESPACE.sub(" ", _EXCLAMATIONS.sub(".", response)).strip()


def _replace_all(response: str, replacements: tuple[tuple[str, str], ...]) -> str:
    for old, new in replacements:
        response = response.replace(old, new)
    return response


class ResponseStyler:
    """Applies a tenant's personality to a matched reply.

    Phrase selection draws from the injected ``rng`` so a seeded styler
    is deterministic.
    """

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def apply(
        self,
        response: str,
        profile: PersonalityProfile | None,
        source_id: str,
        category: str | None = None,
    ) -> str:
        """Return the styled reply.

        Args:
            response: Reply produced by the winning source
            profile: Tenant personality; uncustomized profiles are a no-op
            source_id: Winning source, opening phrases only apply to company QnA
            category: Match category, drives empathy phrasing

        Returns:
            Styled reply text
        """
        if profile is None or not profile.is_customized:
            return response

        styled = response
        if profile.tone == "warm" and "!" not in styled:
            styled = add_warmth(styled)
        elif profile.tone == "professional" and "!" in styled:
            styled = make_professional(styled)

        if profile.formality == "casual":
            styled = _replace_all(styled, CASUAL_REPLACEMENTS)
        elif profile.formality == "formal":
            styled = _replace_all(styled, FORMAL_REPLACEMENTS)

        if source_id == COMPANY_QNA and profile.opening_phrases:
            styled = f"{self._rng.choice(profile.opening_phrases)} {styled}"

        if profile.closing_phrases and len(styled) > CLOSING_MIN_LENGTH:
            styled = f"{styled} {self._rng.choice(profile.closing_phrases)}"

        if profile.empathy_level == "high":
            styled = self._add_empathy(styled, category)

        return styled

    @staticmethod
    def _add_empathy(response: str, category: str | None) -> str:
        if category == EMERGENCY_CATEGORY or "problem" in response.lower():
            return f"I understand this can be concerning. {response}"
        if category == SERVICE_REQUEST_CATEGORY:
            return f"I'd be happy to help you with that. {response}"
        return response
