"""Initial suggestion engine schema

Revision ID: 3c9e1f5a7b20
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "3c9e1f5a7b20"
down_revision = None
branch_labels = None
depends_on = None

JSON = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create users, communities, facilities, events, analytics, suggestions.

    ``users.community_id`` → ``communities.id`` closes a cycle with
    ``communities.owner_id`` → ``users.id``, so that foreign key is added
    after both tables exist.
    """
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(16), nullable=False),
        sa.Column("community_id", sa.String(32), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "communities",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column(
            "owner_id",
            sa.String(32),
            sa.ForeignKey("users.id", ondelete="RESTRICT"),
            nullable=False,
        ),
        *_timestamps(),
    )

    op.create_foreign_key(
        "fk_users_community_id",
        "users",
        "communities",
        ["community_id"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "facilities",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "community_id",
            sa.String(32),
            sa.ForeignKey("communities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(32), nullable=False),
        sa.Column("capacity", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("amenities", JSON, nullable=True),
        sa.Column("is_available", sa.Boolean, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_facilities_community", "facilities", ["community_id"])

    op.create_table(
        "events",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "community_id",
            sa.String(32),
            sa.ForeignKey("communities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "facility_id",
            sa.String(32),
            sa.ForeignKey("facilities.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "created_by_id",
            sa.String(32),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("event_type", sa.String(16), nullable=False),
        sa.Column("location", sa.String(300), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("max_capacity", sa.Integer, nullable=True),
        sa.Column("estimated_cost", sa.Float, nullable=True),
        sa.Column("actual_cost", sa.Float, nullable=True),
        sa.Column("requires_registration", sa.Boolean, nullable=True),
        sa.Column("registration_deadline", sa.DateTime(timezone=True), nullable=True),
        sa.Column("image_urls", JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_community_start", "events", ["community_id", "start_date"])

    op.create_table(
        "event_analytics",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "event_id",
            sa.String(32),
            sa.ForeignKey("events.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column(
            "community_id",
            sa.String(32),
            sa.ForeignKey("communities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("total_registrations", sa.Integer, nullable=True),
        sa.Column("actual_attendance", sa.Integer, nullable=True),
        sa.Column("attendance_rate", sa.Float, nullable=True),
        sa.Column("no_show_count", sa.Integer, nullable=True),
        sa.Column("average_rating", sa.Float, nullable=True),
        sa.Column("total_feedbacks", sa.Integer, nullable=True),
        sa.Column("positive_feedback_count", sa.Integer, nullable=True),
        sa.Column("negative_feedback_count", sa.Integer, nullable=True),
        sa.Column("neutral_feedback_count", sa.Integer, nullable=True),
        sa.Column("engagement_score", sa.Float, nullable=True),
        sa.Column("photos_shared", sa.Integer, nullable=True),
        sa.Column("social_mentions", sa.Integer, nullable=True),
        sa.Column("success_factors", JSON, nullable=True),
        sa.Column("improvement_areas", JSON, nullable=True),
        sa.Column("event_cost", sa.Float, nullable=True),
    )

    op.create_table(
        "event_suggestions",
        sa.Column("id", sa.String(32), primary_key=True),
        sa.Column(
            "community_id",
            sa.String(32),
            sa.ForeignKey("communities.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("location", sa.String(300), nullable=True),
        sa.Column("suggested_event_type", sa.String(16), nullable=False),
        sa.Column("suggested_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("suggested_duration", sa.Integer, nullable=True),
        sa.Column("reasoning", sa.Text, nullable=True),
        sa.Column("context_factors", JSON, nullable=True),
        sa.Column("based_on_event_ids", JSON, nullable=True),
        sa.Column("expected_engagement", sa.Float, nullable=True),
        sa.Column("required_facilities", JSON, nullable=True),
        sa.Column("recommended_capacity", sa.Integer, nullable=True),
        sa.Column("estimated_cost", sa.Float, nullable=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("owner_feedback", sa.Text, nullable=True),
        sa.Column("owner_rating", sa.Integer, nullable=True),
        sa.Column(
            "implemented_as_event_id",
            sa.String(32),
            sa.ForeignKey("events.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index(
        "ix_event_suggestions_community_status",
        "event_suggestions",
        ["community_id", "status"],
    )


def downgrade() -> None:
    op.drop_index("ix_event_suggestions_community_status", table_name="event_suggestions")
    op.drop_table("event_suggestions")
    op.drop_table("event_analytics")
    op.drop_index("ix_events_community_start", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_facilities_community", table_name="facilities")
    op.drop_table("facilities")
    op.drop_constraint("fk_users_community_id", "users", type_="foreignkey")
    op.drop_table("communities")
    op.drop_table("users")
