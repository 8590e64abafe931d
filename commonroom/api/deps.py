"""
commonroom.api.deps — FastAPI dependency injection
====================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from commonroom.config import CommonRoomConfig, load_config
from commonroom.database.engine import create_db_engine
from commonroom.database.models import UserRole
from commonroom.engine.catalog import default_catalog
from commonroom.engine.clock import Clock, SystemClock
from commonroom.services.access import Principal
from commonroom.services.broadcast_dispatcher import (
    BroadcastDispatcher,
    dispatcher_from_env,
)
from commonroom.services.completion_client import CompletionClient
from commonroom.services.rotation_store import RotationStore, create_redis_client
from commonroom.services.seeding_service import SeedingService
from commonroom.services.suggestion_generator import SuggestionGenerator
from commonroom.services.suggestion_service import SuggestionService

_WEAK_SECRETS = frozenset({
    "commonroom-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


# ---------------------------------------------------------------------------
# Process-wide singletons
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> CommonRoomConfig:
    return load_config(os.getenv("COMMONROOM_CONFIG", "config.yaml"))


@lru_cache(maxsize=1)
def get_store() -> RotationStore:
    return RotationStore(create_redis_client())


@lru_cache(maxsize=1)
def get_clock() -> Clock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_completion_client() -> CompletionClient:
    return CompletionClient.from_env(get_config())


@lru_cache(maxsize=1)
def get_dispatcher() -> BroadcastDispatcher:
    return dispatcher_from_env()


def get_suggestion_service(
    engine: Annotated[Engine, Depends(get_engine)],
    store: Annotated[RotationStore, Depends(get_store)],
    cfg: Annotated[CommonRoomConfig, Depends(get_config)],
    clock: Annotated[Clock, Depends(get_clock)],
    client: Annotated[CompletionClient, Depends(get_completion_client)],
    dispatcher: Annotated[BroadcastDispatcher, Depends(get_dispatcher)],
) -> SuggestionService:
    seeding = SeedingService(engine, store, default_catalog(), clock=clock, config=cfg)
    generator = SuggestionGenerator(
        client,
        prompt_history_limit=cfg.prompt_history_limit,
        call_timeout=cfg.completion_timeout,
    )
    return SuggestionService(
        engine,
        store,
        seeding,
        generator,
        config=cfg,
        clock=clock,
        dispatcher=dispatcher,
    )


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------
def create_access_token(user_id: str, role: UserRole | str) -> str:
    """Issue a bearer token carrying ``sub`` and ``role``."""
    return jwt.encode(
        {"sub": user_id, "role": str(role)}, JWT_SECRET, algorithm=JWT_ALGORITHM
    )


def get_principal(
    authorization: Annotated[str | None, Header()] = None,
) -> Principal:
    """Validate the bearer JWT and return the caller. Raises 401/403."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Unknown role")
    return Principal(user_id=str(user_id), role=role)
