"""Initial schema: events, co-organizers, attendee set, attendance records, log and feedback.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RSVP_STATUSES = "'CONFIRMED', 'WAITLISTED', 'CANCELLED', 'CHECKED_IN', 'NO_SHOW'"
ATTENDANCE_ACTIONS = "'RSVP_CONFIRMED', 'RSVP_WAITLISTED', 'RSVP_CANCELLED', 'CHECKED_IN', 'MARKED_NO_SHOW'"


def upgrade() -> None:
    # Events table
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("organizer_id", sa.Integer(), nullable=False),
        sa.Column("max_attendees", sa.Integer(), nullable=True),
        sa.Column("waitlist_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("is_sold_out", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("max_attendees IS NULL OR max_attendees > 0", name="check_max_attendees_positive"),
    )
    op.create_index("ix_events_id", "events", ["id"])
    op.create_index("ix_events_organizer_id", "events", ["organizer_id"])
    # The scheduled sweep scans "events starting within the next N hours"
    op.create_index("ix_events_start_time", "events", ["start_time"])

    op.create_table(
        "event_co_organizers",
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), primary_key=True),
    )

    op.create_table(
        "event_attendees",
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("user_id", sa.Integer(), primary_key=True),
    )

    # Attendance records: one row per (event, user), only ever transitioned
    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("waitlisted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("checked_in_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_attendance_event_user"),
        sa.CheckConstraint(f"status IN ({RSVP_STATUSES})", name="check_attendance_status"),
    )
    op.create_index("ix_attendance_records_id", "attendance_records", ["id"])
    op.create_index("ix_attendance_records_user_id", "attendance_records", ["user_id"])
    # Covers the confirmed/waitlisted counts and the FIFO oldest-waiter lookup
    op.create_index(
        "ix_attendance_event_status_waitlisted",
        "attendance_records",
        ["event_id", "status", "waitlisted_at"],
    )

    op.create_table(
        "attendance_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("reason", sa.String(100), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(f"action IN ({ATTENDANCE_ACTIONS})", name="check_attendance_log_action"),
    )
    op.create_index("ix_attendance_logs_id", "attendance_logs", ["id"])
    op.create_index("ix_attendance_logs_event_id", "attendance_logs", ["event_id"])
    op.create_index("ix_attendance_logs_user_id", "attendance_logs", ["user_id"])

    op.create_table(
        "event_feedback",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("rating", sa.Integer(), nullable=False),
        sa.Column("comment", sa.String(2000), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("event_id", "user_id", name="uq_feedback_event_user"),
        sa.CheckConstraint("rating BETWEEN 1 AND 5", name="check_feedback_rating_range"),
    )
    op.create_index("ix_event_feedback_id", "event_feedback", ["id"])
    op.create_index("ix_event_feedback_event_id", "event_feedback", ["event_id"])


def downgrade() -> None:
    op.drop_table("event_feedback")
    op.drop_table("attendance_logs")
    op.drop_table("attendance_records")
    op.drop_table("event_attendees")
    op.drop_table("event_co_organizers")
    op.drop_table("events")
