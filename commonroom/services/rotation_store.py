"""
commonroom.services.rotation_store — Redis-backed Cross-Request State
=======================================================================

Holds every piece of state shared between requests:

- the global demonstration-set rotation counter,
- per-community seeding markers (and the advisory lease guarding them),
- per-community suggestion cache entries,
- broadcast records.

Key Format::

    community:last_assigned_demo_set           → "7"
    community:demo_seeding:{community_id}      → SeedingRecord JSON
    community:demo_seeding_lock:{community_id} → lease token (TTL)
    community:suggestions:{community_id}       → cached batch JSON (TTL)
    broadcast:{broadcast_id}                   → broadcast JSON (TTL)

The counter is advanced with ``SET NX`` + ``INCR``, both atomic, so two
first-time seeders never draw the same counter value.  Fairness across a
catalog resize is best-effort only.
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

import redis
from redis.exceptions import LockError

from commonroom import constants

logger = logging.getLogger(__name__)


def create_redis_client(url: str | None = None) -> redis.Redis:
    """Build a client from *url* or ``REDIS_URL`` (default local DB 0)."""
    url = url or os.getenv("REDIS_URL", "redis://localhost:6379/0")
    return redis.Redis.from_url(url, decode_responses=True)


@dataclass(frozen=True, slots=True)
class SeedingRecord:
    """Written once per community, after its demonstration content lands."""

    set_index: int
    set_id: str
    catalog_version: int
    seeded_at: str
    facilities_count: int
    events_count: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SeedingRecord:
        return cls(
            set_index=int(raw["set_index"]),
            set_id=str(raw["set_id"]),
            catalog_version=int(raw.get("catalog_version", 1)),
            seeded_at=str(raw["seeded_at"]),
            facilities_count=int(raw.get("facilities_count", 0)),
            events_count=int(raw.get("events_count", 0)),
        )


class RotationStore:
    """Thin, typed facade over a ``redis.Redis`` client."""

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    # -------------------------------------------------------------------
    # Generic JSON helpers
    # -------------------------------------------------------------------
    def get_json(self, key: str) -> Any | None:
        raw = self._redis.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set_json(self, key: str, value: Any, ttl_seconds: int | None = None) -> None:
        self._redis.set(key, json.dumps(value), ex=ttl_seconds)

    def delete(self, key: str) -> None:
        self._redis.delete(key)

    def ping(self) -> bool:
        return bool(self._redis.ping())

    # -------------------------------------------------------------------
    # Rotation counter
    # -------------------------------------------------------------------
    def next_rotation_index(self, catalog_length: int) -> int:
        """Atomically advance the global counter and map it onto the catalog.

        The counter stores the last assigned position; an absent counter
        behaves as ``-1`` so the very first community receives index 0.
        """
        if catalog_length <= 0:
            raise ValueError("catalog_length must be positive")
        self._redis.set(constants.ROTATION_COUNTER_KEY, -1, nx=True)
        position = int(self._redis.incr(constants.ROTATION_COUNTER_KEY))
        index = position % catalog_length
        logger.debug("Rotation counter advanced to %d → set index %d", position, index)
        return index

    def last_rotation_position(self) -> int | None:
        raw = self._redis.get(constants.ROTATION_COUNTER_KEY)
        return None if raw is None else int(raw)

    # -------------------------------------------------------------------
    # Seeding markers
    # -------------------------------------------------------------------
    def get_seeding_record(self, community_id: str) -> SeedingRecord | None:
        raw = self.get_json(constants.SEEDING_MARKER_PREFIX + community_id)
        return SeedingRecord.from_dict(raw) if raw else None

    def put_seeding_record(self, community_id: str, record: SeedingRecord) -> None:
        self.set_json(constants.SEEDING_MARKER_PREFIX + community_id, record.to_dict())

    def delete_seeding_record(self, community_id: str) -> None:
        self.delete(constants.SEEDING_MARKER_PREFIX + community_id)

    @contextmanager
    def seeding_lock(
        self,
        community_id: str,
        *,
        ttl_seconds: int = constants.SEEDING_LOCK_TTL,
        wait_seconds: float = constants.SEEDING_LOCK_WAIT,
    ) -> Iterator[bool]:
        """Advisory per-community lease around check-and-seed.

        Yields ``True`` when the lease is held, ``False`` if it could not be
        acquired within *wait_seconds*.  The lease expires on its own after
        *ttl_seconds* should the holder die mid-seed.
        """
        lock = self._redis.lock(
            constants.SEEDING_LOCK_PREFIX + community_id,
            timeout=ttl_seconds,
            blocking_timeout=wait_seconds,
        )
        acquired = lock.acquire()
        try:
            yield acquired
        finally:
            if acquired:
                try:
                    lock.release()
                except LockError:
                    logger.warning(
                        "Seeding lease for community %s expired before release",
                        community_id,
                    )

    # -------------------------------------------------------------------
    # Suggestion cache
    # -------------------------------------------------------------------
    def get_cached_suggestions(self, community_id: str) -> dict[str, Any] | None:
        return self.get_json(constants.SUGGESTION_CACHE_PREFIX + community_id)

    def cache_suggestions(
        self, community_id: str, batch: dict[str, Any], ttl_seconds: int
    ) -> None:
        self.set_json(constants.SUGGESTION_CACHE_PREFIX + community_id, batch, ttl_seconds)

    def invalidate_suggestions(self, community_id: str) -> None:
        self.delete(constants.SUGGESTION_CACHE_PREFIX + community_id)
        logger.debug("Suggestion cache invalidated for community %s", community_id)

    # -------------------------------------------------------------------
    # Broadcast records
    # -------------------------------------------------------------------
    def put_broadcast(
        self, broadcast_id: str, record: dict[str, Any], ttl_seconds: int
    ) -> None:
        self.set_json(constants.BROADCAST_PREFIX + broadcast_id, record, ttl_seconds)

    def get_broadcast(self, broadcast_id: str) -> dict[str, Any] | None:
        return self.get_json(constants.BROADCAST_PREFIX + broadcast_id)
