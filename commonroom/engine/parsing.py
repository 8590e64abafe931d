"""
commonroom.engine.parsing — Completion Response Parsing & Fallback
====================================================================

The completion service returns free-form text.  Turning it into a
suggestion happens in three steps:

1. **Extract** the first balanced ``{...}`` region, tolerating prose or
   markdown fences around it.
2. **Validate** the untyped ``dict`` against :class:`SuggestionPayload`
   (Pydantic), coercing the loose shapes models tend to produce.
3. **Promote** to a :class:`SuggestionDraft` bound to the target date.

Any failure raises :class:`MalformedUpstreamResponse`; the generator
answers that with :func:`fallback_suggestion`, which cannot fail.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from commonroom import constants
from commonroom.database.models import EventType, SuggestionStatus
from commonroom.engine.targets import TargetDate, isoformat_utc
from commonroom.errors import MalformedUpstreamResponse


# ---------------------------------------------------------------------------
# Typed result
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class SuggestionDraft:
    """A generated suggestion that has not been persisted yet."""

    title: str
    description: str
    event_type: EventType
    suggested_date: datetime
    duration: int
    expected_engagement: float
    reasoning: str | None = None
    location: str | None = None
    context_factors: list[str] = field(default_factory=list)
    required_facilities: list[str] = field(default_factory=list)
    based_on_event_ids: list[str] = field(default_factory=list)
    recommended_capacity: int | None = None
    estimated_cost: float | None = None
    status: SuggestionStatus = SuggestionStatus.PENDING
    is_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "event_type": self.event_type.value,
            "suggested_date": isoformat_utc(self.suggested_date),
            "duration": self.duration,
            "expected_engagement": self.expected_engagement,
            "reasoning": self.reasoning,
            "location": self.location,
            "context_factors": list(self.context_factors),
            "required_facilities": list(self.required_facilities),
            "recommended_capacity": self.recommended_capacity,
            "estimated_cost": self.estimated_cost,
            "status": self.status.value,
            "is_fallback": self.is_fallback,
        }


# ---------------------------------------------------------------------------
# Step 1 — extraction
# ---------------------------------------------------------------------------
def _balanced_end(text: str, start: int) -> int | None:
    """Index one past the ``}`` closing the ``{`` at *start*, or ``None``."""
    depth = 0
    in_string = False
    escaped = False
    for i in range(start, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return i + 1
    return None


def extract_json_object(text: str | None) -> str | None:
    """Return the first balanced ``{...}`` region of *text*, if any."""
    if not text:
        return None
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is not None:
            return text[start:end]
        start = text.find("{", start + 1)
    return None


# ---------------------------------------------------------------------------
# Step 2 — validation
# ---------------------------------------------------------------------------
def _as_str_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, (list, tuple)):
        return [str(v).strip() for v in value if v is not None and str(v).strip()]
    return [str(value)]


class SuggestionPayload(BaseModel):
    """Shape the completion service is asked to return."""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
        allow_inf_nan=False,
    )

    title: str = Field(min_length=1, max_length=constants.MAX_TITLE_LENGTH)
    description: str = Field(min_length=1)
    event_type: EventType = Field(default=EventType.OTHER, alias="eventType")
    reasoning: str | None = None
    context_factors: list[str] = Field(default_factory=list, alias="contextFactors")
    required_facilities: list[str] = Field(
        default_factory=list, alias="requiredFacilities"
    )
    location: str | None = Field(default=None, max_length=constants.MAX_LOCATION_LENGTH)
    recommended_capacity: int | None = Field(
        default=None,
        alias="recommendedCapacity",
        ge=0,
        le=constants.MAX_RECOMMENDED_CAPACITY,
    )
    estimated_cost: float | None = Field(
        default=None, alias="estimatedCost", ge=0, le=constants.MAX_ESTIMATED_COST
    )
    expected_engagement: float = Field(default=0.0, alias="expectedEngagement")
    duration: int = Field(
        default=constants.DEFAULT_DURATION_MINUTES,
        gt=0,
        le=constants.MAX_DURATION_MINUTES,
    )

    @field_validator("event_type", mode="before")
    @classmethod
    def _normalise_event_type(cls, value: Any) -> Any:
        if value is None:
            return EventType.OTHER
        # Models sometimes echo the "A|B|C" choice list back
        candidate = str(value).split("|")[0].strip().upper()
        return candidate if candidate in EventType.__members__ else EventType.OTHER

    @field_validator("context_factors", "required_facilities", mode="before")
    @classmethod
    def _coerce_str_list(cls, value: Any) -> list[str]:
        return _as_str_list(value)

    @field_validator("recommended_capacity", "duration", mode="before")
    @classmethod
    def _round_whole_numbers(cls, value: Any) -> Any:
        # inf/nan are left for the int check to reject
        if isinstance(value, float) and math.isfinite(value):
            return round(value)
        return value

    @field_validator("duration", mode="before")
    @classmethod
    def _default_duration(cls, value: Any) -> Any:
        return constants.DEFAULT_DURATION_MINUTES if value in (None, 0) else value

    @field_validator("expected_engagement", mode="before")
    @classmethod
    def _default_engagement(cls, value: Any) -> Any:
        return 0.0 if value is None else value

    @field_validator("expected_engagement")
    @classmethod
    def _clamp_engagement(cls, value: float) -> float:
        return max(0.0, min(100.0, value))


# ---------------------------------------------------------------------------
# Step 3 — promotion
# ---------------------------------------------------------------------------
def parse_completion(text: str | None, target: TargetDate) -> SuggestionDraft:
    """Parse a completion into a PENDING draft for *target*.

    Raises
    ------
    MalformedUpstreamResponse
        If no JSON object is present, it doesn't parse, it isn't an
        object, or required fields are missing or invalid.
    """
    region = extract_json_object(text)
    if region is None:
        raise MalformedUpstreamResponse("No JSON object found in completion")

    try:
        raw = json.loads(region)
    except json.JSONDecodeError as exc:
        raise MalformedUpstreamResponse(f"Completion JSON did not parse: {exc}") from exc
    if not isinstance(raw, dict):
        raise MalformedUpstreamResponse("Completion JSON is not an object")

    try:
        payload = SuggestionPayload.model_validate(raw)
    except ValidationError as exc:
        raise MalformedUpstreamResponse(
            f"Completion JSON failed validation: {exc.error_count()} error(s)"
        ) from exc

    return SuggestionDraft(
        title=payload.title,
        description=payload.description,
        event_type=payload.event_type,
        suggested_date=target.date,
        duration=payload.duration,
        expected_engagement=payload.expected_engagement,
        reasoning=payload.reasoning,
        location=payload.location,
        context_factors=payload.context_factors or [target.context],
        required_facilities=payload.required_facilities,
        recommended_capacity=payload.recommended_capacity,
        estimated_cost=payload.estimated_cost,
    )


def fallback_suggestion(target: TargetDate) -> SuggestionDraft:
    """Deterministic suggestion templated purely from the target date."""
    return SuggestionDraft(
        title=f"{target.context} Community Event",
        description=(
            f"A special event designed for {target.context.lower()} "
            "to bring residents together."
        ),
        event_type=EventType.FESTIVAL if target.is_festival else EventType.SOCIAL,
        suggested_date=target.date,
        duration=constants.DEFAULT_DURATION_MINUTES,
        expected_engagement=constants.FALLBACK_ENGAGEMENT,
        reasoning=f"Perfect timing for {target.context} celebration",
        context_factors=[target.context],
        required_facilities=list(constants.FALLBACK_FACILITIES),
        recommended_capacity=constants.FALLBACK_CAPACITY,
        estimated_cost=constants.FALLBACK_COST,
        is_fallback=True,
    )
