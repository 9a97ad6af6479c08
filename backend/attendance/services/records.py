"""
Attendance record upserts and attendee-set membership.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.models.attendance import AttendanceRecord, RsvpStatus
from attendance.models.event import EventAttendee
from attendance.services.transitions import apply_transition


async def get_record(db: AsyncSession, event_id: int, user_id: int) -> Optional[AttendanceRecord]:
    result = await db.execute(
        select(AttendanceRecord).where(
            AttendanceRecord.event_id == event_id,
            AttendanceRecord.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_record(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    target: RsvpStatus,
    record: Optional[AttendanceRecord] = None,
) -> AttendanceRecord:
    """
    Transition the existing record, or create it, keyed by (event_id, user_id).
    A concurrent insert of the same pair fails on the unique constraint and the
    transaction wrapper retries the whole operation.
    """
    if record is None:
        record = await get_record(db, event_id, user_id)
    if record is None:
        record = AttendanceRecord(event_id=event_id, user_id=user_id)
        db.add(record)

    apply_transition(record, target)
    await db.flush()
    return record


async def attach_attendee(db: AsyncSession, event_id: int, user_id: int) -> None:
    if await db.get(EventAttendee, (event_id, user_id)) is None:
        db.add(EventAttendee(event_id=event_id, user_id=user_id))
        await db.flush()


async def detach_attendee(db: AsyncSession, event_id: int, user_id: int) -> None:
    attendee = await db.get(EventAttendee, (event_id, user_id))
    if attendee is not None:
        await db.delete(attendee)
        await db.flush()


async def list_attendee_ids(db: AsyncSession, event_id: int) -> list[int]:
    result = await db.execute(
        select(EventAttendee.user_id)
        .where(EventAttendee.event_id == event_id)
        .order_by(EventAttendee.user_id)
    )
    return list(result.scalars().all())
