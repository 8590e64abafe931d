"""
tests/test_prompts.py — Prompt Builder
========================================
"""

from __future__ import annotations

from commonroom.engine.prompts import (
    CommunitySnapshot,
    FacilitySnapshot,
    PastEventSnapshot,
    build_prompt,
)
from tests.factories import REFERENCE_TARGETS

SATURDAY = REFERENCE_TARGETS[0]


def _snapshot(events: int = 4) -> CommunitySnapshot:
    return CommunitySnapshot(
        id="c1",
        name="Sunrise PG",
        residents_count=24,
        facilities=(
            FacilitySnapshot(
                id="f1",
                name="Rooftop Terrace",
                type="ROOFTOP",
                capacity=80,
                amenities=("BBQ Area", "City View"),
            ),
        ),
        past_events=tuple(
            PastEventSnapshot(
                id=f"e{i}",
                title=f"Event {i}",
                type="SOCIAL",
                engagement=90 - i,
                attendance_rate=80.5,
                rating=4.5,
                success_factors=("Great food",),
                cost=1200,
            )
            for i in range(events)
        ),
    )


class TestBuildPrompt:
    def test_embeds_community_and_facilities(self):
        prompt = build_prompt(_snapshot(), SATURDAY)
        assert '"Sunrise PG"' in prompt
        assert "Total Residents: 24" in prompt
        assert "Rooftop Terrace (ROOFTOP, capacity: 80, ID: f1): BBQ Area, City View" in prompt

    def test_quotes_only_recent_history(self):
        prompt = build_prompt(_snapshot(events=5), SATURDAY, history_limit=3)
        for i in range(3):
            assert f"Event {i} (SOCIAL)" in prompt
        assert "Event 3" not in prompt
        assert "Engagement Score: 90/100" in prompt
        assert "Based on past Event 0" in prompt

    def test_target_context(self):
        prompt = build_prompt(_snapshot(), SATURDAY)
        assert "2025-08-02T18:00:00+00:00 (Weekend Saturday)" in prompt
        assert "Calendar: Saturday evening" in prompt
        assert "Type: weekend" in prompt

    def test_asks_for_exactly_one_json_object(self):
        prompt = build_prompt(_snapshot(), SATURDAY)
        assert "EXACTLY 1 event" in prompt
        for key in (
            "title", "description", "eventType", "reasoning", "contextFactors",
            "requiredFacilities", "location", "recommendedCapacity",
            "estimatedCost", "expectedEngagement", "duration",
        ):
            assert f'"{key}"' in prompt
        assert "SOCIAL|FESTIVAL|EDUCATIONAL|SPORTS|CULTURAL|OTHER" in prompt

    def test_empty_community(self):
        empty = CommunitySnapshot(id="c2", name="New PG", residents_count=0)
        prompt = build_prompt(empty, SATURDAY)
        assert "No facilities recorded" in prompt
        assert "No past events recorded" in prompt

    def test_summary(self):
        assert _snapshot(events=2).summary() == {
            "id": "c1",
            "name": "Sunrise PG",
            "residents_count": 24,
            "facilities_count": 1,
            "past_events_count": 2,
        }
