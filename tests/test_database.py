"""
tests/test_database.py — Engine Factory, Session Helper & Models
==================================================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import select

from commonroom.database.engine import create_db_engine, get_session, init_db, run_db
from commonroom.database.models import (
    Community,
    Event,
    EventAnalytic,
    EventSuggestion,
    EventType,
    SuggestionStatus,
    User,
    UserRole,
)
from tests.factories import NOW


class TestCreateEngine:
    def test_requires_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL is not set"):
            create_db_engine()

    def test_reads_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        engine = create_db_engine()
        assert engine.dialect.name == "sqlite"

    def test_in_memory_sqlite_is_shared_across_sessions(self):
        engine = create_db_engine("sqlite://")
        init_db(engine)
        with get_session(engine) as session:
            session.add(User(name="Owner", role=UserRole.OWNER))
        with get_session(engine) as session:
            assert session.scalar(select(User.name)) == "Owner"


class TestGetSession:
    def test_rolls_back_on_error(self, db_engine):
        with pytest.raises(ZeroDivisionError):
            with get_session(db_engine) as session:
                session.add(User(name="Ghost", role=UserRole.RESIDENT))
                session.flush()
                1 / 0
        with get_session(db_engine) as session:
            assert session.scalar(select(User).where(User.name == "Ghost")) is None

    def test_values_survive_commit(self, db_engine):
        with get_session(db_engine) as session:
            user = User(name="Reader", role=UserRole.RESIDENT)
            session.add(user)
        assert user.name == "Reader"
        assert user.id


class TestRunDb:
    def test_runs_sync_callable_off_loop(self):
        assert asyncio.run(run_db(sum, [1, 2, 3])) == 6


class TestModels:
    def test_suggestion_defaults(self, db_session, community):
        s = EventSuggestion(
            community_id=community.id,
            title="Board Game Night",
            description="Bring a friend.",
            suggested_event_type=EventType.SOCIAL,
        )
        db_session.add(s)
        db_session.flush()
        assert len(s.id) == 32
        assert s.status == SuggestionStatus.PENDING
        assert s.suggested_duration == 180
        assert s.context_factors == []

    def test_event_analytics_is_one_to_one(self, db_session, community):
        event = Event(
            community_id=community.id,
            title="Yoga",
            event_type=EventType.CULTURAL,
            start_date=NOW,
            end_date=NOW,
        )
        event.analytics = EventAnalytic(community_id=community.id, engagement_score=81.0)
        db_session.add(event)
        db_session.flush()
        assert event.analytics.event_id == event.id

    def test_community_owner_relationship(self, db_session, community):
        c = db_session.get(Community, community.id)
        assert c.owner.role == UserRole.OWNER
        assert sorted(r.id for r in c.residents) == sorted(community.resident_ids)
