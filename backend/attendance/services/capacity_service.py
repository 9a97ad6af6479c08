"""
Capacity snapshot reader.

Counts are always read from the attendance records, inside the caller's
transaction, so a write that follows a snapshot can never act on stale
numbers. Hosts are excluded from the confirmed count: they attend their own
event without taking a slot.
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.models.attendance import AttendanceRecord, RsvpStatus
from attendance.models.event import Event
from attendance.services.event_service import get_event
from attendance.services.transitions import NO_SHOW, SLOT_HOLDING_STATUSES


@dataclass(frozen=True)
class CapacitySnapshot:
    confirmed: int
    waitlisted: int
    capacity: Optional[int]

    @property
    def is_full(self) -> bool:
        return self.capacity is not None and self.confirmed >= self.capacity


@dataclass(frozen=True)
class AttendanceSummary:
    confirmed_count: int
    waitlist_count: int
    capacity: Optional[int]
    is_full: bool

    @classmethod
    def from_snapshot(cls, snapshot: CapacitySnapshot) -> "AttendanceSummary":
        return cls(
            confirmed_count=snapshot.confirmed,
            waitlist_count=snapshot.waitlisted,
            capacity=snapshot.capacity,
            is_full=snapshot.is_full,
        )


async def snapshot_for(db: AsyncSession, event: Event) -> CapacitySnapshot:
    confirmed = await db.scalar(
        select(func.count())
        .select_from(AttendanceRecord)
        .where(
            AttendanceRecord.event_id == event.id,
            or_(
                AttendanceRecord.status.in_(SLOT_HOLDING_STATUSES),
                and_(AttendanceRecord.status == NO_SHOW, AttendanceRecord.confirmed_at.is_not(None)),
            ),
            AttendanceRecord.user_id.not_in(event.host_ids),
        )
    )
    waitlisted = await db.scalar(
        select(func.count())
        .select_from(AttendanceRecord)
        .where(
            AttendanceRecord.event_id == event.id,
            AttendanceRecord.status == RsvpStatus.WAITLISTED,
        )
    )
    return CapacitySnapshot(confirmed=confirmed or 0, waitlisted=waitlisted or 0, capacity=event.max_attendees)


async def get_capacity_snapshot(db: AsyncSession, event_id: int) -> CapacitySnapshot:
    """Raises EventNotFoundError when the event does not exist."""
    event = await get_event(db, event_id)
    return await snapshot_for(db, event)


async def refresh_sold_out(db: AsyncSession, event: Event) -> CapacitySnapshot:
    """Recompute the derived `is_sold_out` flag from live counts."""
    snapshot = await snapshot_for(db, event)
    event.is_sold_out = snapshot.is_full
    await db.flush()
    return snapshot


async def build_attendance_summary(db: AsyncSession, event_id: int) -> AttendanceSummary:
    return AttendanceSummary.from_snapshot(await get_capacity_snapshot(db, event_id))
