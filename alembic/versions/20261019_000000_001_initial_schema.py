"""Initial schema: cohorts, meal programs, profiles, enrollments, app telemetry, event log.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    # === Meal programs ===

    op.create_table(
        "meal_programs",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )

    # One row per (program, week, day, lunch|dinner) slot
    op.create_table(
        "meal_options",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("meal_program_id", sa.String(length=36), nullable=False),
        sa.Column("challenge_week", sa.Integer(), nullable=True),
        sa.Column("challenge_day", sa.Integer(), nullable=True),
        sa.Column("day_of_week", sa.Integer(), nullable=True),
        sa.Column("week_start_date", sa.Date(), nullable=True),
        sa.Column("meal_type", sa.String(length=20), nullable=False),
        sa.Column("option_a_name", sa.String(length=255), nullable=False),
        sa.Column("option_a_description", sa.Text(), nullable=True),
        sa.Column("option_a_image_url", sa.String(length=1024), nullable=True),
        sa.Column("option_b_name", sa.String(length=255), nullable=False),
        sa.Column("option_b_description", sa.Text(), nullable=True),
        sa.Column("option_b_image_url", sa.String(length=1024), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["meal_program_id"], ["meal_programs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "meal_program_id", "challenge_week", "challenge_day", "meal_type",
            name="uq_meal_options_program_slot",
        ),
    )

    # === Cohorts ===

    op.create_table(
        "cohorts",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("duration_weeks", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("meal_program_id", sa.String(length=36), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["meal_program_id"], ["meal_programs.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_cohorts_single_active",
        "cohorts",
        ["is_active"],
        unique=True,
        postgresql_where=sa.text("is_active"),
    )

    # === Profiles and enrollments ===

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column(
            "role",
            sa.Enum("user", "super_admin", "viewer", name="role", native_enum=False, length=20),
            nullable=False,
            server_default="user",
        ),
        sa.Column("cohort_id", sa.String(length=36), nullable=True),
        sa.Column("push_token", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )

    op.create_table(
        "cohort_participants",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("cohort_id", sa.String(length=36), nullable=False),
        sa.Column("joined_at", sa.DateTime(), nullable=False),
        sa.Column("left_at", sa.DateTime(), nullable=True),
        sa.Column(
            "status",
            sa.Enum(
                "active", "completed", "left",
                name="enrollmentstatus", native_enum=False, length=20,
            ),
            nullable=False,
            server_default="active",
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["cohort_id"], ["cohorts.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id", "cohort_id", name="uq_cohort_participants_user_cohort"),
    )
    op.create_index(
        "uq_cohort_participants_one_active",
        "cohort_participants",
        ["user_id"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
    )

    # === Mobile app data (read-only from the dashboard) ===

    op.create_table(
        "meal_selections",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("challenge_week", sa.Integer(), nullable=True),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("selections", sa.JSON(), nullable=True),
        sa.Column("delivery_preference", sa.String(length=50), nullable=True),
        sa.Column("locked", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("locked_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_meal_selections_user_week", "meal_selections", ["user_id", "challenge_week"])

    op.create_table(
        "daily_habits",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("steps", sa.Integer(), nullable=True),
        sa.Column("steps_logged_at", sa.DateTime(), nullable=True),
        sa.Column("water_ml", sa.Integer(), nullable=True),
        sa.Column("water_logged_at", sa.DateTime(), nullable=True),
        sa.Column("weight_kg", sa.Float(), nullable=True),
        sa.Column("weight_logged_at", sa.DateTime(), nullable=True),
        sa.Column("meal_adherence", sa.Boolean(), nullable=True),
        sa.Column("meal_logged_at", sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "check_ins",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("challenges_faced", sa.Text(), nullable=False),
        sa.Column("habits_summary", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "streaks",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=True),
        sa.Column("longest_streak", sa.Integer(), nullable=True),
        sa.Column("last_check_in_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "weekly_exercise",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("user_id", sa.String(length=36), nullable=False),
        sa.Column("week_start_date", sa.Date(), nullable=False),
        sa.Column("completed_3x", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )

    # === Audit trail ===

    op.create_table(
        "event_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("actor_id", sa.String(length=36), nullable=True),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("input_summary", sa.Text(), nullable=False),
        sa.Column("output_summary", sa.Text(), nullable=False),
        sa.Column("related_ids", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_event_log_timestamp", "event_log", ["timestamp"])


def downgrade() -> None:
    op.drop_index("ix_event_log_timestamp", table_name="event_log")
    op.drop_table("event_log")
    op.drop_table("weekly_exercise")
    op.drop_table("streaks")
    op.drop_table("check_ins")
    op.drop_table("daily_habits")
    op.drop_index("ix_meal_selections_user_week", table_name="meal_selections")
    op.drop_table("meal_selections")
    op.drop_index("uq_cohort_participants_one_active", table_name="cohort_participants")
    op.drop_table("cohort_participants")
    op.drop_table("profiles")
    op.drop_index("uq_cohorts_single_active", table_name="cohorts")
    op.drop_table("cohorts")
    op.drop_table("meal_options")
    op.drop_table("meal_programs")
