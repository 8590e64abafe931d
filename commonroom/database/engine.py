"""
commonroom.database.engine — Database Connection & Async Helper
=================================================================

**Why this file exists:**
One place decides how a URL becomes an :class:`Engine`.  Production talks
to PostgreSQL through a sized pool; tests and local demos hand in a
``sqlite://`` URL and get a single shared in-memory connection.

SQLAlchemy + psycopg2 is synchronous.  FastAPI runs plain ``def`` routes
on its threadpool, so the services stay synchronous; ``run_db`` is for the
few ``async def`` callers (the app lifespan) that must reach them.

Usage::

    engine = create_db_engine()                 # DATABASE_URL from .env
    engine = create_db_engine("sqlite://")      # throwaway, schema via init_db
    init_db(engine)

    with get_session(engine) as session:
        session.add(Facility(...))
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from commonroom.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(url: str | None = None) -> Engine:
    """Build an :class:`Engine` for *url*, or ``DATABASE_URL`` when omitted.

    SQLite URLs skip pool sizing; an in-memory SQLite database is pinned to
    one connection (``StaticPool``) so every session sees the same tables.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    parsed = make_url(url)
    if parsed.get_backend_name() == "sqlite":
        in_memory = parsed.database in (None, "", ":memory:")
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool if in_memory else None,
        )
        logger.info("SQLite engine created → %s", parsed.database or "memory")
        return engine

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


def init_db(engine: Engine) -> None:
    """Create every CommonRoom table that does not exist yet.

    Deployed databases are migrated with ``alembic upgrade head``; this is
    for SQLite demos and the test suite.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success, rolls back on error.

    ``expire_on_commit`` is off so attributes read inside the block stay
    usable after it closes (results are serialised after commit).
    """
    session = Session(engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Await a synchronous call on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)
