"""
commonroom.engine.targets — Target Dates & Calendar Context
=============================================================

A *target date* is a calendar slot (with a human label such as
"Weekend Saturday" or "Raksha Bandhan Festival") for which exactly one
suggestion is generated.  The list is configuration, loaded from
``config.yaml``; nothing here hardcodes which dates are used.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def isoformat_utc(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat()


def parse_datetime(raw: str | datetime) -> datetime:
    """Parse an ISO-8601 string (``Z`` suffix accepted) into aware UTC."""
    if isinstance(raw, datetime):
        return as_utc(raw)
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def part_of_day(value: datetime) -> str:
    hour = as_utc(value).hour
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    if hour < 21:
        return "evening"
    return "night"


def calendar_context(value: datetime) -> str:
    """``datetime(2025, 8, 2, 18)`` → ``"Saturday evening"``."""
    value = as_utc(value)
    return f"{value.strftime('%A')} {part_of_day(value)}"


@dataclass(frozen=True, slots=True)
class TargetDate:
    """One configured slot to generate a suggestion for."""

    date: datetime
    context: str
    type: str = "weekend"
    description: str = ""

    @property
    def is_festival(self) -> bool:
        return self.type == "festival"

    @property
    def calendar_label(self) -> str:
        return calendar_context(self.date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": isoformat_utc(self.date),
            "context": self.context,
            "type": self.type,
            "description": self.description,
            "calendar_label": self.calendar_label,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> TargetDate:
        """Build from a config mapping.

        Raises
        ------
        KeyError
            If ``date`` or ``context`` is missing.
        ValueError
            If ``date`` is not ISO-8601.
        """
        return cls(
            date=parse_datetime(raw["date"]),
            context=str(raw["context"]),
            type=str(raw.get("type", "weekend")),
            description=str(raw.get("description", "")),
        )
