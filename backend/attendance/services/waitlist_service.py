"""
Waitlist promotion and sweeps.

Promotion is strictly FIFO: the waiter with the oldest `waitlisted_at` (ties
broken by record id) is always promoted first. The loop re-reads the capacity
snapshot on every pass inside the caller's transaction and stops as soon as
the event is full or the waitlist is empty, so it runs at most once per waiter.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.core.logging import get_logger
from attendance.db.base import utcnow
from attendance.models.attendance import AttendanceRecord, RsvpStatus
from attendance.models.event import Event
from attendance.services.attendance_log import write_attendance_log
from attendance.services.capacity_service import refresh_sold_out, snapshot_for
from attendance.services.event_service import get_event
from attendance.services.records import attach_attendee, upsert_record
from attendance.services.transitions import CONFIRMED, map_status_to_attendance_action

logger = get_logger(__name__)

PROMOTION_REASON = "waitlist-promoted"


@dataclass(frozen=True)
class SweepResult:
    event_id: int
    promoted: int


async def next_waitlisted(db: AsyncSession, event_id: int) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord)
        .where(
            AttendanceRecord.event_id == event_id,
            AttendanceRecord.status == RsvpStatus.WAITLISTED,
        )
        .order_by(AttendanceRecord.waitlisted_at.asc(), AttendanceRecord.id.asc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def promote_waitlist(db: AsyncSession, event: Event) -> list[int]:
    """Fill every open slot from the waitlist. Returns promoted user ids in order."""
    promoted: list[int] = []

    while True:
        snapshot = await snapshot_for(db, event)
        if snapshot.is_full:
            break

        record = await next_waitlisted(db, event.id)
        if record is None:
            break

        await upsert_record(db, event.id, record.user_id, CONFIRMED, record)
        await attach_attendee(db, event.id, record.user_id)
        await refresh_sold_out(db, event)
        await write_attendance_log(
            db, event.id, record.user_id, map_status_to_attendance_action(CONFIRMED), PROMOTION_REASON,
        )

        logger.info(
            "waitlist_promoted",
            event_id=event.id,
            user_id=record.user_id,
            confirmed=snapshot.confirmed + 1,
            capacity=snapshot.capacity,
        )
        promoted.append(record.user_id)

    return promoted


async def sweep_waitlist_for_event(db: AsyncSession, event_id: int) -> int:
    """Run the promoter to exhaustion for one event; returns how many were promoted."""
    event = await get_event(db, event_id)
    promoted = await promote_waitlist(db, event)
    await refresh_sold_out(db, event)
    return len(promoted)


async def find_events_needing_sweep(
    db: AsyncSession,
    hours_ahead: float,
    now: Optional[datetime] = None,
) -> list[int]:
    """Capacity-bound, waitlist-enabled events starting within the window that have waiters."""
    now = now or utcnow()
    window_end = now + timedelta(hours=hours_ahead)

    has_waiters = exists().where(
        AttendanceRecord.event_id == Event.id,
        AttendanceRecord.status == RsvpStatus.WAITLISTED,
    )
    result = await db.execute(
        select(Event.id)
        .where(
            Event.start_time >= now,
            Event.start_time <= window_end,
            Event.waitlist_enabled.is_(True),
            Event.max_attendees.is_not(None),
            has_waiters,
        )
        .order_by(Event.start_time.asc(), Event.id.asc())
    )
    return list(result.scalars().all())
