"""
commonroom.engine.prompts — Completion Prompt Builder
=======================================================

Builds the single natural-language prompt sent to the completion service
for one target date.  The inputs are plain snapshots (no ORM objects) so
prompt construction is pure and easy to test.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from commonroom.database.models import EventType
from commonroom.engine.targets import TargetDate, isoformat_utc

EVENT_TYPE_CHOICES = "|".join(t.value for t in EventType)


@dataclass(frozen=True, slots=True)
class FacilitySnapshot:
    id: str
    name: str
    type: str
    capacity: int
    amenities: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class PastEventSnapshot:
    id: str
    title: str
    type: str
    engagement: float
    attendance_rate: float
    rating: float
    success_factors: tuple[str, ...] = ()
    cost: float | None = None
    facility_id: str | None = None


@dataclass(frozen=True, slots=True)
class CommunitySnapshot:
    """Everything the generator knows about a community."""

    id: str
    name: str
    residents_count: int
    facilities: tuple[FacilitySnapshot, ...] = field(default_factory=tuple)
    # Most recent first
    past_events: tuple[PastEventSnapshot, ...] = field(default_factory=tuple)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "residents_count": self.residents_count,
            "facilities_count": len(self.facilities),
            "past_events_count": len(self.past_events),
        }


def _facility_line(f: FacilitySnapshot) -> str:
    amenities = ", ".join(f.amenities) if f.amenities else "no listed amenities"
    return f"- {f.name} ({f.type}, capacity: {f.capacity}, ID: {f.id}): {amenities}"


def _past_event_block(e: PastEventSnapshot) -> str:
    factors = ", ".join(e.success_factors) if e.success_factors else "not recorded"
    cost = f"₹{e.cost:g}" if e.cost is not None else "N/A"
    return (
        f"- {e.title} ({e.type}):\n"
        f"  * Engagement Score: {e.engagement:g}/100\n"
        f"  * Attendance Rate: {e.attendance_rate:g}%\n"
        f"  * Rating: {e.rating:g}/5\n"
        f"  * Success Factors: {factors}\n"
        f"  * Cost: {cost}"
    )


def build_prompt(
    community: CommunitySnapshot,
    target: TargetDate,
    *,
    history_limit: int = 3,
) -> str:
    """Return the prompt asking for exactly one suggestion for *target*."""
    facilities = "\n".join(_facility_line(f) for f in community.facilities)
    recent = community.past_events[:history_limit]
    history = "\n".join(_past_event_block(e) for e in recent)
    anchor = recent[0].title if recent else "successful events"
    date = isoformat_utc(target.date)

    return f"""You are an expert event planner for shared-living communities. Suggest 1 PERFECT event for "{community.name}" for the specific date: {date} ({target.context}).

**Community Details:**
- Name: {community.name}
- Total Residents: {community.residents_count}

**Available Facilities:**
{facilities or "- No facilities recorded"}

**Past Successful Events:**
{history or "- No past events recorded"}

**Target Date Context:**
- Date: {date}
- Calendar: {target.calendar_label}
- Context: {target.context}
- Type: {target.type}
- Description: {target.description}

**Requirements:**
- Suggest EXACTLY 1 event that fits this specific date and context
- Base the suggestion on past successful patterns from this community
- Consider the target date context ({target.context})
- Match the event to the available facilities
- Provide realistic cost estimates

**Response Format (a single JSON object, no extra text):**
{{
  "title": "Event Title",
  "description": "Detailed description explaining why this event is perfect for {target.context}",
  "eventType": "{EVENT_TYPE_CHOICES}",
  "reasoning": "Why this event will be successful based on past data and context",
  "contextFactors": ["{target.context}", "Based on past {anchor}"],
  "requiredFacilities": ["Facility ID needed"],
  "location": "Name of the place where the event is held, without any ID",
  "recommendedCapacity": 50,
  "estimatedCost": 2000,
  "expectedEngagement": 85,
  "duration": 180
}}

Focus on ONE perfect event that leverages this community's past successes and fits the specific date context.
"""
