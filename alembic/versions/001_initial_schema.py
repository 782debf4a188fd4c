"""Initial schema

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Creates every table: users, the shared wellness_sessions table
       (single-table inheritance for meditation, stress management,
       breathing and PMR sessions), catalogues, journals, achievements and
       points, social tables, notifications and analytics.

Rollback: downgrade() drops all tables in reverse dependency order.
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.Uuid(), primary_key=True, nullable=False)


def _user_fk(name: str = "user_id", ondelete: str = "CASCADE", nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey("users.id", ondelete=ondelete), nullable=nullable)


def _ts(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.TIMESTAMP(timezone=True), nullable=nullable)


def upgrade() -> None:
    op.create_table(
        "users",
        _id(),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("preferences", sa.JSON(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_session_date", sa.Date(), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "meditations",
        _id(),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(1000), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("audio_url", sa.String(500), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        _user_fk("author_id", ondelete="SET NULL", nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_meditations_category", "meditations", ["category"])
    op.create_index("ix_meditations_author_id", "meditations", ["author_id"])

    # Shared columns first, then one block per session subtype
    op.create_table(
        "wellness_sessions",
        _id(),
        _user_fk(),
        sa.Column("session_type", sa.String(32), nullable=False),
        _ts("start_time"),
        _ts("end_time", nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'active'")),
        sa.Column("mood_before", sa.String(20), nullable=True),
        sa.Column("mood_after", sa.String(20), nullable=True),
        sa.Column("stress_level_before", sa.Integer(), nullable=True),
        sa.Column("stress_level_after", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(1000), nullable=True),
        _ts("created_at"),
        _ts("updated_at"),
        # meditation
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("meditation_type", sa.String(20), nullable=True),
        sa.Column("guided_meditation_id", sa.Uuid(), nullable=True),
        sa.Column(
            "meditation_id",
            sa.Uuid(),
            sa.ForeignKey("meditations.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("tags", sa.JSON(), nullable=True),
        sa.Column("duration_completed", sa.Integer(), nullable=True),
        sa.Column("interruptions", sa.Integer(), nullable=True),
        sa.Column("completed", sa.Boolean(), nullable=True),
        # stress_management
        sa.Column("technique", sa.String(40), nullable=True),
        sa.Column("triggers", sa.JSON(), nullable=True),
        sa.Column("physical_symptoms", sa.JSON(), nullable=True),
        sa.Column("emotional_symptoms", sa.JSON(), nullable=True),
        sa.Column("effectiveness", sa.Integer(), nullable=True),
        sa.Column("feedback", sa.JSON(), nullable=True),
        # breathing
        sa.Column("pattern_name", sa.String(50), nullable=True),
        sa.Column("target_cycles", sa.Integer(), nullable=True),
        sa.Column("completed_cycles", sa.Integer(), nullable=True),
        # pmr
        sa.Column("completed_groups", sa.JSON(), nullable=True),
        sa.Column("total_groups", sa.Integer(), nullable=True),
    )
    op.create_index("ix_wellness_sessions_user_id", "wellness_sessions", ["user_id"])
    op.create_index(
        "idx_wellness_sessions_user_type_start",
        "wellness_sessions",
        ["user_id", "session_type", "start_time"],
    )
    op.create_index("idx_wellness_sessions_user_status", "wellness_sessions", ["user_id", "status"])

    op.create_table(
        "stress_assessments",
        _id(),
        _user_fk(),
        _ts("date"),
        sa.Column("stress_level", sa.Integer(), nullable=False),
        sa.Column("physical_symptoms", sa.JSON(), nullable=False),
        sa.Column("emotional_symptoms", sa.JSON(), nullable=False),
        sa.Column("triggers", sa.JSON(), nullable=False),
        sa.Column("notes", sa.String(1000), nullable=True),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("source", sa.String(20), nullable=False, server_default=sa.text("'self_report'")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_stress_assessments_user_date", "stress_assessments", ["user_id", "date"])

    op.create_table(
        "stress_techniques",
        _id(),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(2000), nullable=False),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("difficulty", sa.String(20), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("steps", sa.JSON(), nullable=False),
        sa.Column("benefits", sa.JSON(), nullable=False),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("effectiveness_rating", sa.Float(), nullable=False),
        sa.Column("recommended_frequency", sa.String(20), nullable=False),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_stress_techniques_category", "stress_techniques", ["category"])

    op.create_table(
        "breathing_patterns",
        _id(),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("inhale", sa.Integer(), nullable=False),
        sa.Column("hold", sa.Integer(), nullable=False),
        sa.Column("exhale", sa.Integer(), nullable=False),
        sa.Column("post_exhale_hold", sa.Integer(), nullable=False),
        sa.Column("cycles", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(300), nullable=True),
    )

    op.create_table(
        "muscle_groups",
        _id(),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("description", sa.String(300), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("duration_seconds", sa.Integer(), nullable=False),
    )

    op.create_table(
        "journals",
        _id(),
        _user_fk(),
        sa.Column("title", sa.String(100), nullable=True),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("mood", sa.String(20), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column(
            "meditation_id",
            sa.Uuid(),
            sa.ForeignKey("wellness_sessions.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.true()),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("idx_journals_user_created", "journals", ["user_id", "created_at"])

    op.create_table(
        "achievements",
        _id(),
        _user_fk(),
        sa.Column("type", sa.String(40), nullable=False),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(300), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("progress", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("target", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("completed_at", nullable=True),
        _ts("created_at"),
        sa.UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
    )
    op.create_index("ix_achievements_user_id", "achievements", ["user_id"])

    op.create_table(
        "user_points",
        _id(),
        sa.Column(
            "user_id",
            sa.Uuid(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("total", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("achievements", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("streaks", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("recent", sa.Integer(), nullable=False, server_default=sa.text("0")),
        _ts("updated_at"),
    )

    op.create_table(
        "points_history",
        _id(),
        _user_fk(),
        _ts("date"),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("source", sa.String(20), nullable=False),
        sa.Column("description", sa.String(300), nullable=False, server_default=sa.text("''")),
    )
    op.create_index("idx_points_history_user_date", "points_history", ["user_id", "date"])
    op.create_index("idx_points_history_source_date", "points_history", ["source", "date"])

    op.create_table(
        "friend_requests",
        _id(),
        _user_fk("requester_id"),
        _user_fk("recipient_id"),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'pending'")),
        _ts("created_at"),
        _ts("updated_at"),
    )
    op.create_index("ix_friend_requests_requester_id", "friend_requests", ["requester_id"])
    op.create_index("ix_friend_requests_recipient_id", "friend_requests", ["recipient_id"])

    op.create_table(
        "user_blocks",
        _id(),
        _user_fk("blocker_id"),
        _user_fk("blocked_id"),
        _ts("created_at"),
        sa.UniqueConstraint("blocker_id", "blocked_id", name="uq_user_blocks_pair"),
    )
    op.create_index("ix_user_blocks_blocker_id", "user_blocks", ["blocker_id"])

    op.create_table(
        "group_sessions",
        _id(),
        _user_fk("host_id"),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("description", sa.String(500), nullable=True),
        _ts("scheduled_time"),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("meditation_type", sa.String(30), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False, server_default=sa.text("10")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'scheduled'")),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allowed_participants", sa.JSON(), nullable=False),
        _ts("start_time", nullable=True),
        _ts("end_time", nullable=True),
        _ts("created_at"),
    )
    op.create_index("ix_group_sessions_host_id", "group_sessions", ["host_id"])
    op.create_index("ix_group_sessions_scheduled_time", "group_sessions", ["scheduled_time"])

    op.create_table(
        "group_session_participants",
        _id(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("group_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        _user_fk(),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'joined'")),
        _ts("joined_at"),
        _ts("completed_at", nullable=True),
        sa.Column("mood_after", sa.String(20), nullable=True),
        sa.UniqueConstraint("session_id", "user_id", name="uq_group_participant"),
    )
    op.create_index(
        "ix_group_session_participants_session_id", "group_session_participants", ["session_id"]
    )
    op.create_index("ix_group_session_participants_user_id", "group_session_participants", ["user_id"])

    op.create_table(
        "notifications",
        _id(),
        _user_fk(),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.String(1000), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        _ts("created_at"),
    )
    op.create_index(
        "idx_notifications_user_read_created", "notifications", ["user_id", "read", "created_at"]
    )

    op.create_table(
        "session_analytics",
        _id(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("wellness_sessions.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        _user_fk(),
        _ts("start_time"),
        _ts("end_time", nullable=True),
        sa.Column("duration", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("duration_completed", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("interruptions", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("focus_score", sa.Integer(), nullable=True),
        sa.Column("mood_before", sa.String(20), nullable=True),
        sa.Column("mood_after", sa.String(20), nullable=True),
        sa.Column("mood_improved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("session_type", sa.String(32), nullable=False),
        _ts("created_at"),
    )
    op.create_index("ix_session_analytics_user_id", "session_analytics", ["user_id"])

    op.create_table(
        "cache_stats_snapshots",
        _id(),
        _ts("timestamp"),
        sa.Column("cache_type", sa.String(50), nullable=False),
        sa.Column("category", sa.String(50), nullable=False),
        sa.Column("hits", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("misses", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sets", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("invalidations", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("errors", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("avg_latency", sa.Float(), nullable=False, server_default=sa.text("0")),
        sa.Column("bytes_stored", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("key_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
    )
    op.create_index("ix_cache_stats_snapshots_timestamp", "cache_stats_snapshots", ["timestamp"])


def downgrade() -> None:
    """Drop every table. Destructive: all data is lost."""
    for table in (
        "cache_stats_snapshots",
        "session_analytics",
        "notifications",
        "group_session_participants",
        "group_sessions",
        "user_blocks",
        "friend_requests",
        "points_history",
        "user_points",
        "achievements",
        "journals",
        "muscle_groups",
        "breathing_patterns",
        "stress_techniques",
        "stress_assessments",
        "wellness_sessions",
        "meditations",
        "users",
    ):
        op.drop_table(table)
