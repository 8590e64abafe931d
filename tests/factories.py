"""
tests/factories.py — Test Data Builders
=========================================

Plain helpers shared by the fixtures in ``conftest.py`` and by tests
that need more than one community or a custom completion reply.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from commonroom.database.models import Community, User, UserRole
from commonroom.engine.targets import TargetDate, parse_datetime
from commonroom.services.access import Principal

# Two weeks before the first reference target date
NOW = datetime(2025, 7, 20, 12, 0, tzinfo=UTC)

REFERENCE_TARGETS = (
    TargetDate(
        date=parse_datetime("2025-08-02T18:00:00Z"),
        context="Weekend Saturday",
        type="weekend",
        description="Saturday evening perfect for social events",
    ),
    TargetDate(
        date=parse_datetime("2025-08-03T16:00:00Z"),
        context="Weekend Sunday",
        type="weekend",
        description="Sunday afternoon ideal for recreational activities",
    ),
    TargetDate(
        date=parse_datetime("2025-08-09T17:00:00Z"),
        context="Raksha Bandhan Festival",
        type="festival",
        description="Traditional festival celebration",
    ),
)


def completion_json(**overrides) -> str:
    """A well-formed completion reply wrapped in a little prose."""
    payload = {
        "title": "Rooftop Movie Marathon",
        "description": "Back-to-back classics under the stars.",
        "eventType": "SOCIAL",
        "reasoning": "Movie nights scored highly in the past.",
        "contextFactors": ["Weekend Saturday", "Based on past Weekend Movie Night"],
        "requiredFacilities": ["Rooftop Terrace"],
        "location": "Rooftop Terrace",
        "recommendedCapacity": 60,
        "estimatedCost": 1800,
        "expectedEngagement": 88,
        "duration": 240,
    }
    payload.update(overrides)
    return "Here is my suggestion:\n```json\n" + json.dumps(payload) + "\n```\nEnjoy!"


@dataclass
class CommunityFixture:
    id: str
    owner_id: str
    resident_ids: list[str] = field(default_factory=list)

    @property
    def owner(self) -> Principal:
        return Principal(user_id=self.owner_id, role=UserRole.OWNER)

    @property
    def resident(self) -> Principal:
        return Principal(user_id=self.resident_ids[0], role=UserRole.RESIDENT)


def make_community(engine: Engine, name: str = "Sunrise PG", residents: int = 2) -> CommunityFixture:
    """Insert an owner, a community and *residents* residents."""
    with Session(engine) as session:
        owner = User(name=f"{name} Owner", role=UserRole.OWNER)
        session.add(owner)
        session.flush()
        community = Community(name=name, owner_id=owner.id)
        session.add(community)
        session.flush()
        members = [
            User(name=f"{name} Resident {i}", role=UserRole.RESIDENT, community_id=community.id)
            for i in range(residents)
        ]
        session.add_all(members)
        session.flush()
        result = CommunityFixture(
            id=community.id,
            owner_id=owner.id,
            resident_ids=[m.id for m in members],
        )
        session.commit()
    return result
