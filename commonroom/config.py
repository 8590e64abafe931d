"""
commonroom.config — YAML Configuration Loader
===============================================

**Why this file exists:**
Secrets and connection strings (``DATABASE_URL``, ``REDIS_URL``,
``JWT_SECRET``, ``COMPLETION_API_KEY``) live in the environment.  Everything
that tunes *behavior* — which dates to suggest for, how long to cache,
which completion model to call — lives in ``config.yaml``.

Usage::

    from commonroom.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.completion_model)       # "gemini-2.0-flash-exp"
    print(cfg.target_dates[0].context)  # "Weekend Saturday"
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import yaml

from commonroom import constants
from commonroom.engine.targets import TargetDate

DEFAULT_APP_NAME = "CommonRoom Suggestions API"


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CommonRoomConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    app_name: str = DEFAULT_APP_NAME

    # Completion service
    completion_model: str = constants.DEFAULT_COMPLETION_MODEL
    completion_timeout: float = constants.DEFAULT_COMPLETION_TIMEOUT
    completion_max_retries: int = constants.DEFAULT_COMPLETION_MAX_RETRIES
    generation_budget: float = constants.DEFAULT_GENERATION_BUDGET

    # Rotation store
    suggestion_cache_ttl: int = constants.SUGGESTION_CACHE_TTL
    broadcast_ttl: int = constants.BROADCAST_TTL
    seeding_lock_ttl: int = constants.SEEDING_LOCK_TTL
    seeding_lock_wait: float = constants.SEEDING_LOCK_WAIT

    # History windows
    history_limit: int = constants.HISTORY_LIMIT
    prompt_history_limit: int = constants.PROMPT_HISTORY_LIMIT

    # Broadcast
    default_broadcast_channels: tuple[str, ...] = constants.DEFAULT_BROADCAST_CHANNELS
    allowed_broadcast_channels: frozenset[str] = constants.BROADCAST_CHANNELS

    # One suggestion is generated per entry, in order
    target_dates: tuple[TargetDate, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> CommonRoomConfig:
    """Read *path* and return a :class:`CommonRoomConfig` instance.

    Keys that are absent fall back to :mod:`commonroom.constants`.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a target date entry lacks ``date`` or ``context``.
    ValueError
        If a target date is not ISO-8601 or no target dates are configured.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return config_from_mapping(raw)


def config_from_mapping(raw: dict) -> CommonRoomConfig:
    """Build a config from an already-parsed mapping (see :func:`load_config`)."""
    target_dates = tuple(TargetDate.from_dict(t) for t in raw.get("target_dates") or [])
    if not target_dates:
        raise ValueError("config.yaml must list at least one entry under target_dates")

    completion = raw.get("completion") or {}
    cache = raw.get("cache") or {}
    seeding = raw.get("seeding") or {}
    history = raw.get("history") or {}
    broadcast = raw.get("broadcast") or {}

    allowed = frozenset(broadcast.get("allowed_channels") or constants.BROADCAST_CHANNELS)
    default_channels = tuple(
        broadcast.get("default_channels") or constants.DEFAULT_BROADCAST_CHANNELS
    )
    unknown = set(default_channels) - allowed
    if unknown:
        raise ValueError(f"Default broadcast channels not allowed: {sorted(unknown)}")

    return CommonRoomConfig(
        app_name=raw.get("app_name", DEFAULT_APP_NAME),
        completion_model=completion.get("model", constants.DEFAULT_COMPLETION_MODEL),
        completion_timeout=float(
            completion.get("timeout_seconds", constants.DEFAULT_COMPLETION_TIMEOUT)
        ),
        completion_max_retries=int(
            completion.get("max_retries", constants.DEFAULT_COMPLETION_MAX_RETRIES)
        ),
        generation_budget=float(
            completion.get("generation_budget_seconds", constants.DEFAULT_GENERATION_BUDGET)
        ),
        suggestion_cache_ttl=int(
            cache.get("suggestion_ttl_seconds", constants.SUGGESTION_CACHE_TTL)
        ),
        broadcast_ttl=int(cache.get("broadcast_ttl_seconds", constants.BROADCAST_TTL)),
        seeding_lock_ttl=int(seeding.get("lock_ttl_seconds", constants.SEEDING_LOCK_TTL)),
        seeding_lock_wait=float(
            seeding.get("lock_wait_seconds", constants.SEEDING_LOCK_WAIT)
        ),
        history_limit=int(history.get("events", constants.HISTORY_LIMIT)),
        prompt_history_limit=int(
            history.get("prompt_events", constants.PROMPT_HISTORY_LIMIT)
        ),
        default_broadcast_channels=default_channels,
        allowed_broadcast_channels=allowed,
        target_dates=target_dates,
    )
