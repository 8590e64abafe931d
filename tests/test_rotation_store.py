"""
tests/test_rotation_store.py — Redis Rotation Store
=====================================================

Runs against ``fakeredis`` (with Lua, for redis-py's Lock scripts).
"""

from __future__ import annotations

import pytest

from commonroom import constants
from commonroom.services.rotation_store import RotationStore, SeedingRecord


def _record(**overrides) -> SeedingRecord:
    fields = {
        "set_index": 0,
        "set_id": "social_pg",
        "catalog_version": 1,
        "seeded_at": "2025-07-20T12:00:00+00:00",
        "facilities_count": 3,
        "events_count": 3,
    }
    fields.update(overrides)
    return SeedingRecord(**fields)


class TestRotationCounter:
    def test_uninitialised_counter_starts_at_zero(self, store: RotationStore):
        assert store.last_rotation_position() is None
        assert store.next_rotation_index(3) == 0
        assert store.last_rotation_position() == 0

    def test_cycles_round_robin(self, store: RotationStore):
        assert [store.next_rotation_index(3) for _ in range(7)] == [0, 1, 2, 0, 1, 2, 0]

    def test_wraps_from_last_position(self, store: RotationStore, redis_client):
        redis_client.set(constants.ROTATION_COUNTER_KEY, 2)
        assert store.next_rotation_index(3) == 0

    def test_catalog_resize_uses_current_length(self, store: RotationStore):
        store.next_rotation_index(3)
        store.next_rotation_index(3)
        assert store.next_rotation_index(2) == 0

    @pytest.mark.parametrize("length", [0, -1])
    def test_non_positive_length_rejected(self, store: RotationStore, length):
        with pytest.raises(ValueError):
            store.next_rotation_index(length)


class TestSeedingRecords:
    def test_put_get_delete(self, store: RotationStore):
        assert store.get_seeding_record("c1") is None
        store.put_seeding_record("c1", _record())
        assert store.get_seeding_record("c1") == _record()
        store.delete_seeding_record("c1")
        assert store.get_seeding_record("c1") is None

    def test_marker_key_and_no_expiry(self, store: RotationStore, redis_client):
        store.put_seeding_record("c1", _record())
        key = constants.SEEDING_MARKER_PREFIX + "c1"
        assert redis_client.exists(key)
        assert redis_client.ttl(key) == -1

    def test_from_dict_tolerates_older_records(self):
        record = SeedingRecord.from_dict(
            {"set_index": 1, "set_id": "sports_pg", "seeded_at": "2025-01-01T00:00:00+00:00"}
        )
        assert record.catalog_version == 1
        assert record.facilities_count == 0


class TestSeedingLock:
    def test_lock_is_exclusive(self, store: RotationStore):
        with store.seeding_lock("c1", ttl_seconds=30, wait_seconds=0.05) as first:
            assert first is True
            with store.seeding_lock("c1", ttl_seconds=30, wait_seconds=0.05) as second:
                assert second is False
        with store.seeding_lock("c1", ttl_seconds=30, wait_seconds=0.05) as again:
            assert again is True

    def test_locks_are_per_community(self, store: RotationStore):
        with store.seeding_lock("c1", wait_seconds=0.05) as a:
            with store.seeding_lock("c2", wait_seconds=0.05) as b:
                assert a and b

    def test_lease_has_ttl(self, store: RotationStore, redis_client):
        with store.seeding_lock("c1", ttl_seconds=30, wait_seconds=0.05):
            ttl = redis_client.ttl(constants.SEEDING_LOCK_PREFIX + "c1")
            assert 0 < ttl <= 30
        assert not redis_client.exists(constants.SEEDING_LOCK_PREFIX + "c1")


class TestSuggestionCacheAndBroadcasts:
    def test_cache_round_trip_with_ttl(self, store: RotationStore, redis_client):
        batch = {"suggestions": [{"title": "x"}], "generated_at": "now"}
        store.cache_suggestions("c1", batch, ttl_seconds=600)
        assert store.get_cached_suggestions("c1") == batch
        assert 0 < redis_client.ttl(constants.SUGGESTION_CACHE_PREFIX + "c1") <= 600

    def test_invalidate(self, store: RotationStore):
        store.cache_suggestions("c1", {"suggestions": []}, ttl_seconds=600)
        store.invalidate_suggestions("c1")
        assert store.get_cached_suggestions("c1") is None

    def test_broadcast_record(self, store: RotationStore, redis_client):
        store.put_broadcast("broadcast_1", {"status": "sent"}, ttl_seconds=constants.BROADCAST_TTL)
        assert store.get_broadcast("broadcast_1") == {"status": "sent"}
        assert redis_client.ttl("broadcast:broadcast_1") > 6 * 24 * 3600

    def test_ping(self, store: RotationStore):
        assert store.ping() is True
