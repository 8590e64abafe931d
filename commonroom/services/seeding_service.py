"""
commonroom.services.seeding_service — Demonstration Content Injection
=======================================================================

The first time a community is observed it receives one demonstration
data set from the catalog, chosen round-robin across *all* communities
by the global rotation counter.

Flow of :meth:`SeedingService.ensure_seeded`::

    marker present? ──yes──► return (no-op)
          │ no
    take per-community lease ─► re-check marker
          │
    community exists? ──no──► NotFoundError
          │
    next rotation index ─► catalog set
          │
    ONE transaction: facilities (catalog order) → events + analytics
          │
    write SeedingRecord (last, only on success)

A failure inside the transaction rolls facilities and events back
together and leaves no marker, so a retry starts clean.
"""

from __future__ import annotations

import logging
from typing import Any

from redis.exceptions import RedisError
from sqlalchemy import delete, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from commonroom import constants
from commonroom.config import CommonRoomConfig
from commonroom.database.engine import get_session
from commonroom.database.models import (
    Community,
    Event,
    EventAnalytic,
    EventSuggestion,
    Facility,
    FacilityType,
)
from commonroom.engine.catalog import DemoCatalog, DemoDataSet, DemoEvent
from commonroom.engine.clock import Clock, SystemClock
from commonroom.errors import NotFoundError, SeedingError
from commonroom.services.rotation_store import RotationStore, SeedingRecord

logger = logging.getLogger(__name__)


def _event_description(event: DemoEvent) -> str:
    return (
        f"A successful {event.event_type.value.lower()} event that brought the "
        "community together with great engagement and positive feedback."
    )


def _build_analytics(community_id: str, event: DemoEvent) -> EventAnalytic:
    a = event.analytics
    return EventAnalytic(
        community_id=community_id,
        total_registrations=a.total_registrations,
        actual_attendance=a.actual_attendance,
        attendance_rate=a.attendance_rate,
        no_show_count=a.total_registrations - a.actual_attendance,
        average_rating=a.average_rating,
        total_feedbacks=a.total_feedbacks,
        positive_feedback_count=a.positive_feedback_count,
        negative_feedback_count=a.total_feedbacks - a.positive_feedback_count,
        neutral_feedback_count=0,
        engagement_score=a.engagement_score,
        photos_shared=int(a.engagement_score * constants.PHOTOS_PER_ENGAGEMENT_POINT),
        social_mentions=int(
            a.engagement_score * constants.MENTIONS_PER_ENGAGEMENT_POINT
        ),
        success_factors=list(a.success_factors),
        improvement_areas=list(constants.SEEDED_IMPROVEMENT_AREAS),
        event_cost=event.actual_cost,
    )


class SeedingService:
    """Owns the per-community seeding marker and the content behind it."""

    def __init__(
        self,
        engine: Engine,
        store: RotationStore,
        catalog: DemoCatalog,
        *,
        clock: Clock | None = None,
        config: CommonRoomConfig | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.config = config or CommonRoomConfig()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def has_seeded(self, community_id: str) -> bool:
        return self.store.get_seeding_record(community_id) is not None

    def get_seeding_info(self, community_id: str) -> SeedingRecord | None:
        return self.store.get_seeding_record(community_id)

    # -------------------------------------------------------------------
    # ensure_seeded
    # -------------------------------------------------------------------
    def ensure_seeded(self, community_id: str) -> SeedingRecord:
        """Seed *community_id* unless it already carries a marker.

        Returns the (new or existing) :class:`SeedingRecord`.

        Raises
        ------
        NotFoundError
            If the community does not exist.
        SeedingError
            If another worker holds the lease past the wait window, the
            injection fails, or the rotation store is unreachable.
        """
        try:
            record = self.store.get_seeding_record(community_id)
            if record is not None:
                logger.debug(
                    "Community %s already seeded (set %s)", community_id, record.set_id
                )
                return record

            with self.store.seeding_lock(
                community_id,
                ttl_seconds=self.config.seeding_lock_ttl,
                wait_seconds=self.config.seeding_lock_wait,
            ) as acquired:
                record = self.store.get_seeding_record(community_id)
                if record is not None:
                    return record
                if not acquired:
                    raise SeedingError("Seeding already in progress")
                return self._seed(community_id)
        except RedisError as exc:
            logger.exception("Rotation store failed while seeding community %s", community_id)
            raise SeedingError(f"Rotation store unavailable during seeding: {exc}") from exc

    def _seed(self, community_id: str) -> SeedingRecord:
        with get_session(self.engine) as session:
            if session.get(Community, community_id) is None:
                raise NotFoundError("Community not found")

        index = self.store.next_rotation_index(len(self.catalog))
        data_set = self.catalog[index]
        logger.info(
            "Seeding community %s with demonstration set %d (%s)",
            community_id,
            index,
            data_set.set_id,
        )

        try:
            with get_session(self.engine) as session:
                facility_ids, event_ids = self._inject(session, community_id, data_set)
        except SQLAlchemyError as exc:
            logger.exception("Seeding community %s failed", community_id)
            raise SeedingError(f"Failed to seed demonstration data: {exc}") from exc

        record = SeedingRecord(
            set_index=index,
            set_id=data_set.set_id,
            catalog_version=self.catalog.version,
            seeded_at=self.clock.now().isoformat(),
            facilities_count=len(facility_ids),
            events_count=len(event_ids),
        )
        try:
            self.store.put_seeding_record(community_id, record)
        except RedisError as exc:
            logger.exception(
                "Could not write seeding marker for community %s; discarding rows",
                community_id,
            )
            self._discard(facility_ids, event_ids)
            raise SeedingError(f"Failed to record seeding marker: {exc}") from exc
        logger.info(
            "Seeded community %s: %d facilities, %d events",
            community_id,
            record.facilities_count,
            record.events_count,
        )
        return record

    @staticmethod
    def _inject(
        session: Session, community_id: str, data_set: DemoDataSet
    ) -> tuple[list[str], list[str]]:
        facilities: list[Facility] = []
        events: list[Event] = []
        by_type: dict[FacilityType, Facility] = {}
        for demo in data_set.facilities:
            facility = Facility(
                community_id=community_id,
                name=demo.name,
                type=demo.type,
                capacity=demo.capacity,
                description=demo.description,
                amenities=list(demo.amenities),
                is_available=True,
            )
            session.add(facility)
            facilities.append(facility)
            by_type.setdefault(demo.type, facility)
        session.flush()

        for demo in data_set.past_events:
            facility = by_type.get(demo.facility_type) if demo.facility_type else None
            event = Event(
                community_id=community_id,
                facility_id=facility.id if facility else None,
                title=demo.title,
                description=_event_description(demo),
                event_type=demo.event_type,
                location=demo.location,
                start_date=demo.start_date,
                end_date=demo.end_date,
                max_capacity=demo.max_capacity,
                estimated_cost=demo.actual_cost,
                actual_cost=demo.actual_cost,
                requires_registration=True,
                image_urls=[],
            )
            event.analytics = _build_analytics(community_id, demo)
            session.add(event)
            events.append(event)
        session.flush()
        return [f.id for f in facilities], [e.id for e in events]

    def _discard(self, facility_ids: list[str], event_ids: list[str]) -> None:
        """Remove rows from a seeding whose marker could not be written."""
        with get_session(self.engine) as session:
            session.execute(
                delete(EventAnalytic).where(EventAnalytic.event_id.in_(event_ids))
            )
            session.execute(delete(Event).where(Event.id.in_(event_ids)))
            session.execute(delete(Facility).where(Facility.id.in_(facility_ids)))

    # -------------------------------------------------------------------
    # Reset
    # -------------------------------------------------------------------
    def clear_seeding(self, community_id: str) -> dict[str, Any]:
        """Delete the community's analytics, events and facilities and its marker.

        Implemented-event references on suggestions are detached first so
        the suggestion rows survive.
        """
        with get_session(self.engine) as session:
            if session.get(Community, community_id) is None:
                raise NotFoundError("Community not found")
            event_ids = select(Event.id).where(Event.community_id == community_id)
            session.execute(
                update(EventSuggestion)
                .where(EventSuggestion.implemented_as_event_id.in_(event_ids))
                .values(implemented_as_event_id=None)
            )
            analytics = session.execute(
                delete(EventAnalytic).where(EventAnalytic.community_id == community_id)
            ).rowcount
            events = session.execute(
                delete(Event).where(Event.community_id == community_id)
            ).rowcount
            facilities = session.execute(
                delete(Facility).where(Facility.community_id == community_id)
            ).rowcount

        self.store.delete_seeding_record(community_id)
        self.store.invalidate_suggestions(community_id)
        logger.info(
            "Cleared seeding for community %s (%d facilities, %d events)",
            community_id,
            facilities,
            events,
        )
        return {
            "facilities_deleted": facilities,
            "events_deleted": events,
            "analytics_deleted": analytics,
        }

    def force_reseed(self, community_id: str) -> SeedingRecord:
        """Clear whatever is there (seeded or not) and seed again."""
        self.clear_seeding(community_id)
        return self.ensure_seeded(community_id)
