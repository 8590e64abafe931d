"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os
from unittest.mock import MagicMock

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of commonroom.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import fakeredis  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from commonroom.config import CommonRoomConfig  # noqa: E402
from commonroom.database.engine import create_db_engine, init_db  # noqa: E402
from commonroom.engine.catalog import DemoCatalog, default_catalog  # noqa: E402
from commonroom.engine.clock import FixedClock  # noqa: E402
from commonroom.services.completion_client import CompletionClient  # noqa: E402
from commonroom.services.rotation_store import RotationStore  # noqa: E402
from commonroom.services.seeding_service import SeedingService  # noqa: E402
from commonroom.services.suggestion_generator import SuggestionGenerator  # noqa: E402
from commonroom.services.suggestion_service import SuggestionService  # noqa: E402

from tests.factories import (  # noqa: E402
    NOW,
    REFERENCE_TARGETS,
    CommunityFixture,
    completion_json,
    make_community,
)


# ---------------------------------------------------------------------------
# Infrastructure
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all CommonRoom tables.

    Every session (and thread) shares the same in-memory database.
    """
    engine = create_db_engine("sqlite://")
    init_db(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def store(redis_client) -> RotationStore:
    return RotationStore(redis_client)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def config() -> CommonRoomConfig:
    return CommonRoomConfig(target_dates=REFERENCE_TARGETS, seeding_lock_wait=0.1)


@pytest.fixture
def catalog() -> DemoCatalog:
    return default_catalog()


@pytest.fixture
def completion() -> MagicMock:
    """A completion client that always answers with a valid suggestion."""
    client = MagicMock(spec=CompletionClient)
    client.is_available = True
    client.complete.return_value = completion_json()
    return client


@pytest.fixture
def dispatcher() -> MagicMock:
    return MagicMock()


@pytest.fixture
def seeding(db_engine, store, catalog, clock, config) -> SeedingService:
    return SeedingService(db_engine, store, catalog, clock=clock, config=config)


@pytest.fixture
def generator(completion, config) -> SuggestionGenerator:
    return SuggestionGenerator(
        completion,
        prompt_history_limit=config.prompt_history_limit,
        call_timeout=config.completion_timeout,
    )


@pytest.fixture
def service(db_engine, store, seeding, generator, config, clock, dispatcher) -> SuggestionService:
    return SuggestionService(
        db_engine,
        store,
        seeding,
        generator,
        config=config,
        clock=clock,
        dispatcher=dispatcher,
    )


# ---------------------------------------------------------------------------
# Communities
# ---------------------------------------------------------------------------
@pytest.fixture
def community(db_engine) -> CommunityFixture:
    return make_community(db_engine)


@pytest.fixture
def other_community(db_engine) -> CommunityFixture:
    return make_community(db_engine, name="Lakeside PG", residents=1)
