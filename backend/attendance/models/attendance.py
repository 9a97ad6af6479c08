"""
Attendance record and audit log models.

Key design decisions:
- Unique constraint on (event_id, user_id): exactly one record per pair, so
  every write is an upsert and concurrent inserts collide instead of duplicating
- Records are never deleted, only transitioned; the four timestamps keep history
- Composite index (event_id, status, waitlisted_at) serves both the capacity
  counts and the FIFO "oldest waiter" lookup
- Log entries are append-only and never updated
"""

import enum

from sqlalchemy import JSON, Column, DateTime, Enum, ForeignKey, Index, Integer, String, UniqueConstraint, CheckConstraint

from attendance.db.base import Base, TimestampMixin, utcnow


class RsvpStatus(str, enum.Enum):
    CONFIRMED = "CONFIRMED"
    WAITLISTED = "WAITLISTED"
    CANCELLED = "CANCELLED"
    CHECKED_IN = "CHECKED_IN"
    NO_SHOW = "NO_SHOW"


class AttendanceAction(str, enum.Enum):
    RSVP_CONFIRMED = "RSVP_CONFIRMED"
    RSVP_WAITLISTED = "RSVP_WAITLISTED"
    RSVP_CANCELLED = "RSVP_CANCELLED"
    CHECKED_IN = "CHECKED_IN"
    MARKED_NO_SHOW = "MARKED_NO_SHOW"


def _in_clause(enum_cls) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


class AttendanceRecord(Base, TimestampMixin):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, nullable=False, index=True)
    status = Column(Enum(RsvpStatus, native_enum=False, length=20), nullable=False)
    waitlisted_at = Column(DateTime(timezone=True), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_attendance_event_user"),
        CheckConstraint(f"status IN ({_in_clause(RsvpStatus)})", name="check_attendance_status"),
        Index("ix_attendance_event_status_waitlisted", "event_id", "status", "waitlisted_at"),
    )

    @property
    def is_active(self) -> bool:
        return self.status != RsvpStatus.CANCELLED

    def __repr__(self) -> str:
        return f"<AttendanceRecord(event={self.event_id}, user={self.user_id}, status={self.status})>"


class AttendanceLog(Base):
    __tablename__ = "attendance_logs"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    action = Column(Enum(AttendanceAction, native_enum=False, length=30), nullable=False)
    reason = Column(String(100), nullable=True)
    # "metadata" is reserved on declarative classes
    details = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        CheckConstraint(f"action IN ({_in_clause(AttendanceAction)})", name="check_attendance_log_action"),
    )

    def __repr__(self) -> str:
        return f"<AttendanceLog(event={self.event_id}, user={self.user_id}, action={self.action}, reason={self.reason})>"
