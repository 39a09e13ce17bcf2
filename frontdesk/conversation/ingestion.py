"""Ingestion boundary for upstream payloads.

Extractors, triage and STT hand over loosely shaped data. Everything
passes through here before it reaches the session, and malformed parts
fail closed: unusable entries are dropped and reported, confidences that
cannot be read become 0.0. Nothing is guessed.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from frontdesk.conversation.models import CallerInput, TriageCandidate
from frontdesk.observability.logging import get_logger

logger = get_logger(__name__)

UNSCORED_CONFIDENCE = 0.0


def coerce_confidence(value: Any) -> float:
    """Read a confidence in [0, 1], or UNSCORED_CONFIDENCE if unusable."""
    if isinstance(value, bool) or not isinstance(value, int | float):
        return UNSCORED_CONFIDENCE
    if value != value or value < 0.0 or value > 1.0:  # NaN or out of range
        return UNSCORED_CONFIDENCE
    return float(value)


class ExtractedFact(BaseModel):
    """A candidate fact ready for the governed write path.

    ``source`` is left as the upstream string; the write path owns the
    whitelist check.
    """

    model_config = ConfigDict(frozen=True)

    fact_id: str = Field(..., min_length=1)
    value: Any
    source: str
    confidence: float = Field(default=UNSCORED_CONFIDENCE, ge=0.0, le=1.0)


class RejectedEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    reason: str


class IngestedFacts(BaseModel):
    facts: list[ExtractedFact] = Field(default_factory=list)
    rejected: list[RejectedEntry] = Field(default_factory=list)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def ingest_extracted_facts(
    payload: Mapping[str, Any] | Iterable[Mapping[str, Any]] | None,
    default_source: str = "extracted",
) -> IngestedFacts:
    """Map an extractor payload into ExtractedFacts.

    Accepts either ``{fact_id: value}`` / ``{fact_id: {"value", "confidence",
    "source"}}`` or a list of ``{"fact_id", "value", ...}`` mappings.
    """
    result = IngestedFacts()
    if payload is None:
        return result

    if isinstance(payload, Mapping):
        items: list[tuple[Any, Any]] = list(payload.items())
    elif not isinstance(payload, (list, tuple)):
        result.rejected.append(RejectedEntry(key=repr(payload)[:40], reason="malformed"))
        items = []
    else:
        items = []
        for entry in payload:
            if isinstance(entry, Mapping):
                items.append((entry.get("fact_id"), entry))
            else:
                result.rejected.append(RejectedEntry(key=repr(entry)[:40], reason="malformed"))

    for fact_id, raw in items:
        if not isinstance(fact_id, str) or not fact_id.strip():
            result.rejected.append(RejectedEntry(key=repr(fact_id)[:40], reason="invalid_fact_id"))
            continue

        if isinstance(raw, Mapping):
            value = raw.get("value")
            confidence = coerce_confidence(raw.get("confidence"))
            source = raw.get("source") or default_source
        else:
            value = raw
            confidence = UNSCORED_CONFIDENCE
            source = default_source

        if _is_empty(value):
            result.rejected.append(RejectedEntry(key=fact_id, reason="empty_value"))
            continue
        if isinstance(value, str):
            value = value.strip()

        result.facts.append(
            ExtractedFact(
                fact_id=fact_id.strip(),
                value=value,
                source=str(source),
                confidence=confidence,
            )
        )

    if result.rejected:
        logger.debug(
            "ingestion_entries_rejected",
            rejected=[r.model_dump() for r in result.rejected],
        )
    return result


def ingest_caller_input(
    raw: str | None,
    cleaned: str | None = None,
    confidence: Any = None,
) -> CallerInput:
    """Normalize an STT result into a CallerInput."""
    raw_text = (raw or "").strip()
    cleaned_text = " ".join((cleaned if cleaned is not None else raw_text).split())
    return CallerInput(
        raw=raw_text,
        cleaned=cleaned_text,
        confidence=coerce_confidence(confidence),
    )


def ingest_triage_candidates(payload: Iterable[Any] | None) -> list[TriageCandidate]:
    """Keep well-formed triage candidates, highest confidence first."""
    candidates: list[TriageCandidate] = []
    if not isinstance(payload, (list, tuple)):
        if payload is not None:
            logger.debug("triage_payload_malformed", payload_type=type(payload).__name__)
        return candidates
    for entry in payload:
        if not isinstance(entry, Mapping):
            continue
        scenario_id = entry.get("scenario_id")
        if not isinstance(scenario_id, str) or not scenario_id:
            continue
        name = entry.get("name")
        candidates.append(
            TriageCandidate(
                scenario_id=scenario_id,
                name=name if isinstance(name, str) else None,
                confidence=coerce_confidence(entry.get("confidence")),
            )
        )
    candidates.sort(key=lambda c: c.confidence, reverse=True)
    return candidates
