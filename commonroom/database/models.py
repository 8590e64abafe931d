"""
commonroom.database.models — SQLAlchemy 2.0 Data Models
=========================================================

Only the slice of the property-management schema the suggestion engine
reads or writes.

Tables:
- users              — Owners and residents (a resident belongs to one community)
- communities        — Tenants; exactly one owner each
- facilities         — Bookable spaces inside a community
- events             — Historical (seeded) and production (implemented) events
- event_analytics    — One row per event, created atomically with it
- event_suggestions  — AI-proposed events with a lifecycle status
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return uuid.uuid4().hex


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all CommonRoom ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class UserRole(enum.StrEnum):
    OWNER = "owner"
    RESIDENT = "resident"


class FacilityType(enum.StrEnum):
    COMMON_ROOM = "COMMON_ROOM"
    ROOFTOP = "ROOFTOP"
    GARDEN = "GARDEN"
    STUDY_ROOM = "STUDY_ROOM"
    DINING_HALL = "DINING_HALL"
    RECREATION_ROOM = "RECREATION_ROOM"
    COURTYARD = "COURTYARD"
    GYM = "GYM"
    OTHER = "OTHER"


class EventType(enum.StrEnum):
    SOCIAL = "SOCIAL"
    FESTIVAL = "FESTIVAL"
    EDUCATIONAL = "EDUCATIONAL"
    SPORTS = "SPORTS"
    CULTURAL = "CULTURAL"
    OTHER = "OTHER"


class SuggestionStatus(enum.StrEnum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    IMPLEMENTED = "IMPLEMENTED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), default=None)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, native_enum=False, length=16), nullable=False
    )
    # Residents only; owners reach their communities through Community.owner_id
    community_id: Mapped[str | None] = mapped_column(
        String(32),
        ForeignKey(
            "communities.id",
            ondelete="SET NULL",
            use_alter=True,
            name="fk_users_community_id",
        ),
        default=None,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    community: Mapped[Community | None] = relationship(
        back_populates="residents", foreign_keys=[community_id]
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Communities — one owner, many residents
# ---------------------------------------------------------------------------
class Community(Base):
    __tablename__ = "communities"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    owner_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    owner: Mapped[User] = relationship(foreign_keys=[owner_id])
    residents: Mapped[list[User]] = relationship(
        back_populates="community", foreign_keys=[User.community_id]
    )
    facilities: Mapped[list[Facility]] = relationship(back_populates="community")
    events: Mapped[list[Event]] = relationship(back_populates="community")
    suggestions: Mapped[list[EventSuggestion]] = relationship(back_populates="community")

    def __repr__(self) -> str:
        return f"<Community id={self.id} name={self.name!r}>"


# ---------------------------------------------------------------------------
# Facilities
# ---------------------------------------------------------------------------
class Facility(Base):
    __tablename__ = "facilities"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    community_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    type: Mapped[FacilityType] = mapped_column(
        Enum(FacilityType, native_enum=False, length=32), nullable=False
    )
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    amenities: Mapped[list[str]] = mapped_column(JSONType, default=list)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    community: Mapped[Community] = relationship(back_populates="facilities")

    __table_args__ = (
        Index("ix_facilities_community", "community_id"),
    )

    def __repr__(self) -> str:
        return f"<Facility id={self.id} name={self.name!r} type={self.type}>"


# ---------------------------------------------------------------------------
# Events — historical (seeded) and production (implemented from a suggestion)
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    community_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    facility_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("facilities.id", ondelete="SET NULL"), default=None
    )
    created_by_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("users.id", ondelete="SET NULL"), default=None
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, native_enum=False, length=16), nullable=False
    )
    location: Mapped[str | None] = mapped_column(String(300), default=None)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_capacity: Mapped[int | None] = mapped_column(Integer, default=None)
    estimated_cost: Mapped[float | None] = mapped_column(Float, default=None)
    actual_cost: Mapped[float | None] = mapped_column(Float, default=None)
    requires_registration: Mapped[bool] = mapped_column(Boolean, default=True)
    registration_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    image_urls: Mapped[list[str]] = mapped_column(JSONType, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    community: Mapped[Community] = relationship(back_populates="events")
    facility: Mapped[Facility | None] = relationship()
    analytics: Mapped[EventAnalytic | None] = relationship(
        back_populates="event", uselist=False, cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_events_community_start", "community_id", "start_date"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r}>"


# ---------------------------------------------------------------------------
# EventAnalytic — created with its event, never updated here
# ---------------------------------------------------------------------------
class EventAnalytic(Base):
    __tablename__ = "event_analytics"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    event_id: Mapped[str] = mapped_column(
        String(32),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    community_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    total_registrations: Mapped[int] = mapped_column(Integer, default=0)
    actual_attendance: Mapped[int] = mapped_column(Integer, default=0)
    attendance_rate: Mapped[float] = mapped_column(Float, default=0.0)
    no_show_count: Mapped[int] = mapped_column(Integer, default=0)
    average_rating: Mapped[float] = mapped_column(Float, default=0.0)
    total_feedbacks: Mapped[int] = mapped_column(Integer, default=0)
    positive_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    negative_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    neutral_feedback_count: Mapped[int] = mapped_column(Integer, default=0)
    engagement_score: Mapped[float] = mapped_column(Float, default=0.0)
    photos_shared: Mapped[int] = mapped_column(Integer, default=0)
    social_mentions: Mapped[int] = mapped_column(Integer, default=0)
    success_factors: Mapped[list[str]] = mapped_column(JSONType, default=list)
    improvement_areas: Mapped[list[str]] = mapped_column(JSONType, default=list)
    event_cost: Mapped[float | None] = mapped_column(Float, default=None)

    event: Mapped[Event] = relationship(back_populates="analytics")

    def __repr__(self) -> str:
        return f"<EventAnalytic event={self.event_id} engagement={self.engagement_score}>"


# ---------------------------------------------------------------------------
# EventSuggestion — never deleted by the suggestion engine
# ---------------------------------------------------------------------------
class EventSuggestion(Base):
    __tablename__ = "event_suggestions"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    community_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("communities.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str | None] = mapped_column(String(300), default=None)
    suggested_event_type: Mapped[EventType] = mapped_column(
        Enum(EventType, native_enum=False, length=16), nullable=False
    )
    suggested_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )
    suggested_duration: Mapped[int] = mapped_column(Integer, default=180)  # minutes
    reasoning: Mapped[str | None] = mapped_column(Text, default=None)
    context_factors: Mapped[list[str]] = mapped_column(JSONType, default=list)
    based_on_event_ids: Mapped[list[str]] = mapped_column(JSONType, default=list)
    expected_engagement: Mapped[float] = mapped_column(Float, default=0.0)
    required_facilities: Mapped[list[str]] = mapped_column(JSONType, default=list)
    recommended_capacity: Mapped[int | None] = mapped_column(Integer, default=None)
    estimated_cost: Mapped[float | None] = mapped_column(Float, default=None)
    status: Mapped[SuggestionStatus] = mapped_column(
        Enum(SuggestionStatus, native_enum=False, length=16),
        default=SuggestionStatus.PENDING,
        nullable=False,
    )
    owner_feedback: Mapped[str | None] = mapped_column(Text, default=None)
    owner_rating: Mapped[int | None] = mapped_column(Integer, default=None)
    implemented_as_event_id: Mapped[str | None] = mapped_column(
        String(32), ForeignKey("events.id", ondelete="SET NULL"), default=None
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    community: Mapped[Community] = relationship(back_populates="suggestions")

    __table_args__ = (
        Index("ix_event_suggestions_community_status", "community_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<EventSuggestion id={self.id} title={self.title!r} status={self.status}>"
