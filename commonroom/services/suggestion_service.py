"""
commonroom.services.suggestion_service — Suggestion Cache & Lifecycle
=======================================================================

**Why this file exists:**
Every entry point that reads or mutates suggestions lives here so the
HTTP layer stays a thin translation of requests into calls:

- :meth:`SuggestionService.get_or_generate` — seed if needed, serve the
  cached batch, or generate one suggestion per target date.
- :meth:`SuggestionService.list_suggestions` — persisted rows, ranked.
- :meth:`SuggestionService.broadcast` — announce to residents (no status
  change).
- :meth:`SuggestionService.implement` — materialise into a real event.
- :meth:`SuggestionService.review` / :meth:`SuggestionService.expire_stale`
  — the remaining lifecycle transitions.

Any call that changes a community's suggestions drops its cache entry.
Results are plain JSON-safe dicts; ORM rows never leave a session.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, contains_eager

from commonroom import constants
from commonroom.config import CommonRoomConfig
from commonroom.database.engine import get_session
from commonroom.database.models import (
    Event,
    EventSuggestion,
    Facility,
    SuggestionStatus,
    User,
)
from commonroom.engine.clock import Clock, SystemClock
from commonroom.engine.lifecycle import (
    EXPIRABLE_STATUSES,
    REVIEWABLE_STATUSES,
    can_transition,
)
from commonroom.engine.parsing import SuggestionDraft
from commonroom.engine.prompts import (
    CommunitySnapshot,
    FacilitySnapshot,
    PastEventSnapshot,
)
from commonroom.engine.targets import as_utc, isoformat_utc
from commonroom.errors import NotFoundError, ValidationFailure
from commonroom.services.access import (
    Principal,
    load_community,
    require_member,
    require_owner,
)
from commonroom.services.broadcast_dispatcher import (
    BroadcastDispatcher,
    BroadcastRequest,
    LoggingDispatcher,
)
from commonroom.services.rotation_store import RotationStore
from commonroom.services.seeding_service import SeedingService
from commonroom.services.suggestion_generator import SuggestionGenerator

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------
def suggestion_to_dict(s: EventSuggestion) -> dict[str, Any]:
    return {
        "id": s.id,
        "community_id": s.community_id,
        "title": s.title,
        "description": s.description,
        "location": s.location,
        "event_type": s.suggested_event_type.value,
        "suggested_date": isoformat_utc(s.suggested_date),
        "duration": s.suggested_duration,
        "reasoning": s.reasoning,
        "context_factors": list(s.context_factors or []),
        "based_on_event_ids": list(s.based_on_event_ids or []),
        "expected_engagement": s.expected_engagement,
        "required_facilities": list(s.required_facilities or []),
        "recommended_capacity": s.recommended_capacity,
        "estimated_cost": s.estimated_cost,
        "status": s.status.value,
        "owner_feedback": s.owner_feedback,
        "owner_rating": s.owner_rating,
        "implemented_as_event_id": s.implemented_as_event_id,
        "created_at": isoformat_utc(s.created_at),
        "updated_at": isoformat_utc(s.updated_at),
    }


def event_to_dict(e: Event) -> dict[str, Any]:
    return {
        "id": e.id,
        "community_id": e.community_id,
        "facility_id": e.facility_id,
        "created_by_id": e.created_by_id,
        "title": e.title,
        "description": e.description,
        "event_type": e.event_type.value,
        "location": e.location,
        "start_date": isoformat_utc(e.start_date),
        "end_date": isoformat_utc(e.end_date),
        "max_capacity": e.max_capacity,
        "estimated_cost": e.estimated_cost,
        "requires_registration": e.requires_registration,
        "registration_deadline": isoformat_utc(e.registration_deadline),
    }


def default_broadcast_message(s: EventSuggestion) -> str:
    when = as_utc(s.suggested_date).strftime("%a %b %d %Y") if s.suggested_date else "TBD"
    return (
        f"{constants.BROADCAST_EMOJI} New Event Suggestion: {s.title}\n\n"
        f"{s.description}\n\n"
        f"Suggested Date: {when}\n"
        f"Expected Engagement: {s.expected_engagement:g}%\n\n"
        "What do you think? Let us know your interest!"
    )


class SuggestionService:
    """Orchestrates seeding, generation, caching and lifecycle transitions."""

    def __init__(
        self,
        engine: Engine,
        store: RotationStore,
        seeding: SeedingService,
        generator: SuggestionGenerator,
        *,
        config: CommonRoomConfig,
        clock: Clock | None = None,
        dispatcher: BroadcastDispatcher | None = None,
    ) -> None:
        self.engine = engine
        self.store = store
        self.seeding = seeding
        self.generator = generator
        self.config = config
        self.clock = clock or SystemClock()
        self.dispatcher = dispatcher or LoggingDispatcher()

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _authorize_member(self, community_id: str, principal: Principal) -> None:
        with get_session(self.engine) as session:
            require_member(session, community_id, principal)

    def _authorize_owner(self, community_id: str, principal: Principal, action: str) -> None:
        with get_session(self.engine) as session:
            require_owner(session, community_id, principal, action=action)

    @staticmethod
    def _load_suggestion(session: Session, suggestion_id: str) -> EventSuggestion:
        suggestion = session.get(EventSuggestion, suggestion_id)
        if suggestion is None:
            raise NotFoundError("Suggestion not found")
        return suggestion

    @staticmethod
    def _residents_count(session: Session, community_id: str) -> int:
        return session.scalar(
            select(func.count(User.id)).where(User.community_id == community_id)
        ) or 0

    def _snapshot(self, session: Session, community_id: str) -> CommunitySnapshot:
        community = load_community(session, community_id)
        facilities = session.scalars(
            select(Facility)
            .where(Facility.community_id == community_id)
            .order_by(Facility.created_at, Facility.name)
        ).all()
        # Only measured events count as history
        events = session.scalars(
            select(Event)
            .join(Event.analytics)
            .options(contains_eager(Event.analytics))
            .where(Event.community_id == community_id)
            .order_by(Event.start_date.desc())
            .limit(self.config.history_limit)
        ).all()
        return CommunitySnapshot(
            id=community.id,
            name=community.name,
            residents_count=self._residents_count(session, community_id),
            facilities=tuple(
                FacilitySnapshot(
                    id=f.id,
                    name=f.name,
                    type=f.type.value,
                    capacity=f.capacity,
                    amenities=tuple(f.amenities or ()),
                )
                for f in facilities
            ),
            past_events=tuple(
                PastEventSnapshot(
                    id=e.id,
                    title=e.title,
                    type=e.event_type.value,
                    engagement=e.analytics.engagement_score,
                    attendance_rate=e.analytics.attendance_rate,
                    rating=e.analytics.average_rating,
                    success_factors=tuple(e.analytics.success_factors or ()),
                    cost=e.actual_cost,
                    facility_id=e.facility_id,
                )
                for e in events
            ),
        )

    def _persist(
        self, community_id: str, drafts: Iterable[SuggestionDraft]
    ) -> list[dict[str, Any]]:
        now = self.clock.now()
        with get_session(self.engine) as session:
            rows = [
                EventSuggestion(
                    community_id=community_id,
                    title=d.title,
                    description=d.description,
                    location=d.location,
                    suggested_event_type=d.event_type,
                    suggested_date=d.suggested_date,
                    suggested_duration=d.duration,
                    reasoning=d.reasoning,
                    context_factors=list(d.context_factors),
                    based_on_event_ids=list(d.based_on_event_ids),
                    expected_engagement=d.expected_engagement,
                    required_facilities=list(d.required_facilities),
                    recommended_capacity=d.recommended_capacity,
                    estimated_cost=d.estimated_cost,
                    status=d.status,
                    created_at=now,
                    updated_at=now,
                )
                for d in drafts
            ]
            session.add_all(rows)
            session.flush()
            return [suggestion_to_dict(r) for r in rows]

    # -------------------------------------------------------------------
    # Target dates & seeding administration
    # -------------------------------------------------------------------
    def target_dates(self) -> list[dict[str, Any]]:
        return [t.to_dict() for t in self.config.target_dates]

    def seeding_info(self, community_id: str, principal: Principal) -> dict[str, Any]:
        self._authorize_member(community_id, principal)
        record = self.seeding.get_seeding_info(community_id)
        return {
            "has_seeded": record is not None,
            "seeding_info": record.to_dict() if record else None,
            "is_first_time": record is None,
        }

    def clear_seeding(self, community_id: str, principal: Principal) -> dict[str, Any]:
        self._authorize_owner(community_id, principal, "reset demonstration data")
        return self.seeding.clear_seeding(community_id)

    def force_reseed(self, community_id: str, principal: Principal) -> dict[str, Any]:
        self._authorize_owner(community_id, principal, "reset demonstration data")
        return self.seeding.force_reseed(community_id).to_dict()

    # -------------------------------------------------------------------
    # get_or_generate
    # -------------------------------------------------------------------
    def get_or_generate(
        self,
        community_id: str,
        principal: Principal,
        *,
        force_fresh: bool = False,
        budget_seconds: float | None = None,
    ) -> dict[str, Any]:
        """Return the community's suggestion batch, generating on a miss.

        Raises
        ------
        NotFoundError, ForbiddenError
            Community absent, or *principal* neither owner nor resident.
        SeedingError
            Demonstration content could not be injected.
        UpstreamUnavailable
            The completion service failed; nothing is persisted or cached.
        """
        self._authorize_member(community_id, principal)
        record = self.seeding.ensure_seeded(community_id)

        if not force_fresh:
            cached = self.store.get_cached_suggestions(community_id)
            if cached is not None:
                logger.debug("Suggestion cache hit for community %s", community_id)
                return cached
        logger.info(
            "Generating suggestions for community %s (force_fresh=%s)",
            community_id,
            force_fresh,
        )

        with get_session(self.engine) as session:
            snapshot = self._snapshot(session, community_id)

        drafts = self.generator.generate_batch(
            snapshot,
            self.config.target_dates,
            budget_seconds=(
                self.config.generation_budget if budget_seconds is None else budget_seconds
            ),
        )
        suggestions = self._persist(community_id, drafts)

        batch = {
            "suggestions": suggestions,
            "target_dates": self.target_dates(),
            "community": snapshot.summary(),
            "seeding_info": record.to_dict(),
            "generated_at": self.clock.now().isoformat(),
        }
        self.store.cache_suggestions(community_id, batch, self.config.suggestion_cache_ttl)
        return batch

    # -------------------------------------------------------------------
    # list_suggestions
    # -------------------------------------------------------------------
    def list_suggestions(
        self,
        community_id: str,
        principal: Principal,
        *,
        status: SuggestionStatus | None = None,
        limit: int = constants.DEFAULT_LIST_LIMIT,
    ) -> dict[str, Any]:
        if not 1 <= limit <= constants.MAX_LIST_LIMIT:
            raise ValidationFailure(
                f"Limit must be between 1 and {constants.MAX_LIST_LIMIT}"
            )

        with get_session(self.engine) as session:
            community = require_member(session, community_id, principal)
            stmt = select(EventSuggestion).where(
                EventSuggestion.community_id == community_id
            )
            if status is not None:
                stmt = stmt.where(EventSuggestion.status == status)
            rows = session.scalars(
                stmt.order_by(
                    EventSuggestion.expected_engagement.desc(),
                    EventSuggestion.suggested_date.asc(),
                ).limit(limit)
            ).all()
            residents = self._residents_count(session, community_id)
            can_broadcast = (
                principal.is_owner and community.owner_id == principal.user_id
            )
            suggestions = [
                {
                    **suggestion_to_dict(r),
                    "can_broadcast": can_broadcast,
                    "residents_count": residents,
                    "broadcast_status": "ready",
                }
                for r in rows
            ]
        return {"suggestions": suggestions, "total": len(suggestions)}

    # -------------------------------------------------------------------
    # broadcast
    # -------------------------------------------------------------------
    def broadcast(
        self,
        suggestion_id: str,
        principal: Principal,
        *,
        message: str | None = None,
        schedule_for: datetime | None = None,
        channels: Iterable[str] | None = None,
    ) -> dict[str, Any]:
        """Record and dispatch an announcement; the status is left alone."""
        chosen = tuple(channels) if channels else self.config.default_broadcast_channels
        unknown = sorted(set(chosen) - self.config.allowed_broadcast_channels)
        if unknown:
            raise ValidationFailure(f"Unsupported broadcast channels: {', '.join(unknown)}")
        if message is not None and len(message) > constants.MAX_BROADCAST_MESSAGE_LENGTH:
            raise ValidationFailure(
                f"Message cannot exceed {constants.MAX_BROADCAST_MESSAGE_LENGTH} characters"
            )

        now = self.clock.now()
        scheduled = as_utc(schedule_for) if schedule_for else now

        with get_session(self.engine) as session:
            suggestion = self._load_suggestion(session, suggestion_id)
            require_owner(
                session,
                suggestion.community_id,
                principal,
                action="broadcast suggestions",
            )
            recipients = session.scalars(
                select(User.id)
                .where(User.community_id == suggestion.community_id)
                .order_by(User.id)
            ).all()
            text = message or default_broadcast_message(suggestion)
            suggestion.updated_at = now
            community_id = suggestion.community_id
            title = suggestion.title

        broadcast_id = f"broadcast_{uuid.uuid4().hex}"
        record = {
            "suggestion_id": suggestion_id,
            "community_id": community_id,
            "broadcast_by": principal.user_id,
            "message": text,
            "recipients": list(recipients),
            "channels": list(chosen),
            "scheduled_for": scheduled.isoformat(),
            "status": "sent",
            "sent_at": now.isoformat(),
        }
        self.store.put_broadcast(broadcast_id, record, self.config.broadcast_ttl)
        logger.info(
            "Broadcasting suggestion %r to %d residents via %s",
            title,
            len(recipients),
            ", ".join(chosen),
        )

        self.dispatcher.dispatch(
            BroadcastRequest(
                broadcast_id=broadcast_id,
                community_id=community_id,
                suggestion_id=suggestion_id,
                recipient_ids=tuple(recipients),
                message=text,
                channels=chosen,
                scheduled_for=scheduled.isoformat(),
            )
        )

        return {
            "broadcast_id": broadcast_id,
            "recipients_count": len(recipients),
            "message": text,
            "channels": list(chosen),
            "scheduled_for": scheduled.isoformat(),
            "status": "sent",
        }

    # -------------------------------------------------------------------
    # implement
    # -------------------------------------------------------------------
    def implement(
        self,
        suggestion_id: str,
        principal: Principal,
        *,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        max_capacity: int | None = None,
        estimated_cost: float | None = None,
        facility_id: str | None = None,
    ) -> dict[str, Any]:
        """Turn a PENDING/APPROVED suggestion into a production event.

        Raises
        ------
        NotFoundError
            Suggestion (or override facility) absent.
        ForbiddenError
            *principal* is not the community's owner.
        ValidationFailure
            Wrong status, no resolvable date, end not after start, or a
            start in the past.
        """
        now = self.clock.now()
        with get_session(self.engine) as session:
            suggestion = self._load_suggestion(session, suggestion_id)
            community_id = suggestion.community_id
            require_owner(
                session, community_id, principal, action="implement suggestions"
            )
            if not can_transition(suggestion.status, SuggestionStatus.IMPLEMENTED):
                raise ValidationFailure(
                    f"Cannot implement a suggestion with status {suggestion.status.value}"
                )

            start = start_date or suggestion.suggested_date
            if start is None:
                raise ValidationFailure("Start date is required")
            start = as_utc(start)
            if end_date:
                end = as_utc(end_date)
            else:
                try:
                    end = start + timedelta(minutes=suggestion.suggested_duration)
                except OverflowError as exc:
                    raise ValidationFailure(
                        "End date could not be derived from the suggested duration"
                    ) from exc
            if end <= start:
                raise ValidationFailure("End date must be after start date")
            if start <= now:
                raise ValidationFailure("Event date cannot be in the past")

            if facility_id is not None:
                facility = session.get(Facility, facility_id)
                if facility is None or facility.community_id != community_id:
                    raise NotFoundError("Facility not found")

            event = Event(
                community_id=community_id,
                facility_id=facility_id,
                created_by_id=principal.user_id,
                title=suggestion.title,
                description=suggestion.description,
                event_type=suggestion.suggested_event_type,
                location=(
                    suggestion.location
                    or next(iter(suggestion.required_facilities or []), None)
                    or "TBD"
                ),
                start_date=start,
                end_date=end,
                max_capacity=(
                    max_capacity if max_capacity is not None
                    else suggestion.recommended_capacity
                ),
                estimated_cost=(
                    estimated_cost if estimated_cost is not None
                    else suggestion.estimated_cost
                ),
                requires_registration=True,
                registration_deadline=start - timedelta(days=1),
                image_urls=[],
                created_at=now,
            )
            session.add(event)
            session.flush()

            suggestion.status = SuggestionStatus.IMPLEMENTED
            suggestion.implemented_as_event_id = event.id
            suggestion.updated_at = now
            result = event_to_dict(event)

        self.store.invalidate_suggestions(community_id)
        logger.info("Suggestion %s implemented as event %s", suggestion_id, result["id"])
        return result

    # -------------------------------------------------------------------
    # review / expire
    # -------------------------------------------------------------------
    def review(
        self,
        suggestion_id: str,
        principal: Principal,
        status: SuggestionStatus,
        *,
        feedback: str | None = None,
        rating: int | None = None,
    ) -> dict[str, Any]:
        """Owner approves or rejects a suggestion, optionally with feedback."""
        if status not in REVIEWABLE_STATUSES:
            raise ValidationFailure("Status must be APPROVED or REJECTED")
        if rating is not None and not (
            constants.MIN_OWNER_RATING <= rating <= constants.MAX_OWNER_RATING
        ):
            raise ValidationFailure(
                f"Rating must be between {constants.MIN_OWNER_RATING} "
                f"and {constants.MAX_OWNER_RATING}"
            )
        if feedback is not None and len(feedback) > constants.MAX_FEEDBACK_LENGTH:
            raise ValidationFailure(
                f"Feedback cannot exceed {constants.MAX_FEEDBACK_LENGTH} characters"
            )

        with get_session(self.engine) as session:
            suggestion = self._load_suggestion(session, suggestion_id)
            community_id = suggestion.community_id
            require_owner(session, community_id, principal, action="review suggestions")
            if not can_transition(suggestion.status, status):
                raise ValidationFailure(
                    f"Cannot move a suggestion from {suggestion.status.value} "
                    f"to {status.value}"
                )
            suggestion.status = status
            if feedback is not None:
                suggestion.owner_feedback = feedback
            if rating is not None:
                suggestion.owner_rating = rating
            suggestion.updated_at = self.clock.now()
            session.flush()
            result = suggestion_to_dict(suggestion)

        self.store.invalidate_suggestions(community_id)
        logger.info("Suggestion %s reviewed → %s", suggestion_id, status.value)
        return result

    def expire_stale(self, community_id: str, principal: Principal) -> int:
        """Mark PENDING/APPROVED suggestions dated before now as EXPIRED."""
        now = self.clock.now()
        with get_session(self.engine) as session:
            require_owner(session, community_id, principal, action="expire suggestions")
            rows = session.scalars(
                select(EventSuggestion).where(
                    EventSuggestion.community_id == community_id,
                    EventSuggestion.status.in_(sorted(EXPIRABLE_STATUSES)),
                    EventSuggestion.suggested_date.is_not(None),
                )
            ).all()
            expired = 0
            for row in rows:
                if as_utc(row.suggested_date) < now:
                    row.status = SuggestionStatus.EXPIRED
                    row.updated_at = now
                    expired += 1

        if expired:
            self.store.invalidate_suggestions(community_id)
        logger.info("Expired %d stale suggestions in community %s", expired, community_id)
        return expired
