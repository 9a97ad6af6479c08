"""
RSVP transition engine: self-service join/leave and organizer overrides.

Every function here runs inside the caller's transaction (see
attendance.db.transaction). Each follows the same shape:

  1. load the event (EventNotFoundError) and, for overrides, check privileges
  2. load the (event, user) record and check business rules
  3. take a capacity snapshot where capacity matters
  4. upsert the record through apply_transition
  5. keep the attendee set and `is_sold_out` in step
  6. append an attendance log entry

Records are keyed by (event_id, user_id) and only ever upserted, so a retried
call never duplicates a record.
"""

from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.core.exceptions import (
    AlreadyCheckedInError,
    AlreadyConfirmedError,
    EventFullError,
    NotAttendingError,
    NotWaitlistedError,
    OrganizerCannotLeaveError,
    WaitlistDisabledError,
)
from attendance.core.logging import get_logger
from attendance.models.attendance import AttendanceRecord, RsvpStatus
from attendance.models.event import Event
from attendance.services.attendance_log import write_attendance_log
from attendance.services.capacity_service import (
    AttendanceSummary,
    refresh_sold_out,
    snapshot_for,
)
from attendance.services.event_service import get_event, require_organizer
from attendance.services.records import attach_attendee, detach_attendee, get_record, upsert_record
from attendance.services.transitions import (
    CANCELLED,
    CHECKED_IN,
    CONFIRMED,
    NO_SHOW,
    WAITLISTED,
    holds_slot,
    map_status_to_attendance_action,
)
from attendance.services.waitlist_service import promote_waitlist

logger = get_logger(__name__)


@dataclass(frozen=True)
class RsvpResult:
    status: RsvpStatus
    waitlisted: bool


@dataclass(frozen=True)
class CancelResult:
    status: RsvpStatus
    summary: AttendanceSummary
    promoted_user_ids: list[int] = field(default_factory=list)

    @property
    def promoted_user_id(self) -> Optional[int]:
        return self.promoted_user_ids[0] if self.promoted_user_ids else None


# ---------------------------------------------------------------------------
# Guards
# ---------------------------------------------------------------------------

def _ensure_active(record: Optional[AttendanceRecord]) -> AttendanceRecord:
    if record is None or record.status == CANCELLED:
        raise NotAttendingError()
    return record


async def _summary(db: AsyncSession, event: Event) -> AttendanceSummary:
    return AttendanceSummary.from_snapshot(await snapshot_for(db, event))


# ---------------------------------------------------------------------------
# Self-service
# ---------------------------------------------------------------------------

async def confirm_host(db: AsyncSession, event: Event, user_id: int, reason: Optional[str] = None) -> AttendanceRecord:
    """Organizers and co-organizers are always confirmed and never take a slot."""
    record = await upsert_record(db, event.id, user_id, CONFIRMED)
    await attach_attendee(db, event.id, user_id)
    await write_attendance_log(db, event.id, user_id, map_status_to_attendance_action(CONFIRMED), reason)
    return record


async def join_event(db: AsyncSession, event_id: int, user_id: int) -> RsvpResult:
    """
    Self-service RSVP.
    Confirms while there is room, waitlists when full (if allowed).
    """
    event = await get_event(db, event_id)

    if event.is_host(user_id):
        await confirm_host(db, event, user_id)
        logger.info("rsvp_confirmed", event_id=event_id, user_id=user_id, host=True)
        return RsvpResult(status=CONFIRMED, waitlisted=False)

    record = await get_record(db, event_id, user_id)
    if holds_slot(record):
        raise AlreadyConfirmedError()

    snapshot = await snapshot_for(db, event)
    if snapshot.is_full:
        if not event.waitlist_enabled:
            logger.warning("rsvp_rejected_full", event_id=event_id, user_id=user_id, capacity=snapshot.capacity)
            raise WaitlistDisabledError()
        target = WAITLISTED
    else:
        target = CONFIRMED

    await upsert_record(db, event_id, user_id, target, record)

    if target == CONFIRMED:
        await attach_attendee(db, event_id, user_id)
    else:
        await detach_attendee(db, event_id, user_id)
    await refresh_sold_out(db, event)

    await write_attendance_log(db, event_id, user_id, map_status_to_attendance_action(target))

    logger.info(
        "rsvp_confirmed" if target == CONFIRMED else "rsvp_waitlisted",
        event_id=event_id,
        user_id=user_id,
        confirmed=snapshot.confirmed,
        capacity=snapshot.capacity,
    )
    return RsvpResult(status=target, waitlisted=target == WAITLISTED)


async def _cancel(
    db: AsyncSession,
    event: Event,
    user_id: int,
    reason: str,
    metadata: Optional[dict] = None,
) -> list[int]:
    """Cancel an active record, then hand freed slots to the waitlist."""
    if event.is_host(user_id):
        raise OrganizerCannotLeaveError()

    record = _ensure_active(await get_record(db, event.id, user_id))

    await upsert_record(db, event.id, user_id, CANCELLED, record)
    await detach_attendee(db, event.id, user_id)
    await write_attendance_log(db, event.id, user_id, map_status_to_attendance_action(CANCELLED), reason, metadata)

    promoted = await promote_waitlist(db, event)
    await refresh_sold_out(db, event)

    logger.info("rsvp_cancelled", event_id=event.id, user_id=user_id, reason=reason, promoted=promoted)
    return promoted


async def cancel_rsvp(db: AsyncSession, event_id: int, user_id: int) -> CancelResult:
    """Self-service leave. The freed slot goes to the oldest waiter."""
    event = await get_event(db, event_id)
    promoted = await _cancel(db, event, user_id, reason="self-cancelled")
    return CancelResult(status=CANCELLED, summary=await _summary(db, event), promoted_user_ids=promoted)


# ---------------------------------------------------------------------------
# Organizer overrides
# ---------------------------------------------------------------------------

async def organizer_confirm(db: AsyncSession, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
    event = await require_organizer(db, event_id, actor_id)

    if event.is_host(target_user_id):
        await confirm_host(db, event, target_user_id, reason="organizer-confirmed")
        return await _summary(db, event)

    record = await get_record(db, event_id, target_user_id)
    snapshot = await snapshot_for(db, event)
    if snapshot.is_full and not holds_slot(record):
        raise EventFullError()

    await upsert_record(db, event_id, target_user_id, CONFIRMED, record)
    await attach_attendee(db, event_id, target_user_id)
    await refresh_sold_out(db, event)
    await write_attendance_log(
        db, event_id, target_user_id, map_status_to_attendance_action(CONFIRMED),
        "organizer-confirmed", {"actor_id": actor_id},
    )

    logger.info("organizer_confirmed", event_id=event_id, user_id=target_user_id, actor_id=actor_id)
    return await _summary(db, event)


async def organizer_waitlist(db: AsyncSession, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
    event = await require_organizer(db, event_id, actor_id)

    if not event.waitlist_enabled:
        raise WaitlistDisabledError("Waitlist disabled")
    if event.is_host(target_user_id):
        raise OrganizerCannotLeaveError()

    await upsert_record(db, event_id, target_user_id, WAITLISTED)
    await detach_attendee(db, event_id, target_user_id)
    await refresh_sold_out(db, event)
    await write_attendance_log(
        db, event_id, target_user_id, map_status_to_attendance_action(WAITLISTED),
        "organizer-waitlisted", {"actor_id": actor_id},
    )

    logger.info("organizer_waitlisted", event_id=event_id, user_id=target_user_id, actor_id=actor_id)
    return await _summary(db, event)


async def organizer_cancel(db: AsyncSession, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
    event = await require_organizer(db, event_id, actor_id)
    await _cancel(db, event, target_user_id, reason="organizer-cancelled", metadata={"actor_id": actor_id})
    return await _summary(db, event)


async def check_in_attendee(db: AsyncSession, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
    event = await require_organizer(db, event_id, actor_id)

    record = _ensure_active(await get_record(db, event_id, target_user_id))
    if record.status == CHECKED_IN:
        raise AlreadyCheckedInError()
    if not holds_slot(record):
        raise NotWaitlistedError()

    await upsert_record(db, event_id, target_user_id, CHECKED_IN, record)
    await attach_attendee(db, event_id, target_user_id)
    await refresh_sold_out(db, event)
    await write_attendance_log(
        db, event_id, target_user_id, map_status_to_attendance_action(CHECKED_IN),
        "checked-in", {"actor_id": actor_id},
    )

    logger.info("attendee_checked_in", event_id=event_id, user_id=target_user_id, actor_id=actor_id)
    return await _summary(db, event)


async def mark_no_show(db: AsyncSession, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
    """
    Record the outcome only; nobody is promoted.
    A confirmed no-show keeps its slot. A waiter marked no-show leaves the
    waitlist without ever having held one.
    """
    event = await require_organizer(db, event_id, actor_id)

    record = _ensure_active(await get_record(db, event_id, target_user_id))

    await upsert_record(db, event_id, target_user_id, NO_SHOW, record)
    await write_attendance_log(
        db, event_id, target_user_id, map_status_to_attendance_action(NO_SHOW),
        "no-show", {"actor_id": actor_id},
    )

    logger.info("attendee_marked_no_show", event_id=event_id, user_id=target_user_id, actor_id=actor_id)
    return await _summary(db, event)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def list_rsvps(db: AsyncSession, event_id: int) -> list[AttendanceRecord]:
    """Roster for one event, in the order people first responded."""
    await get_event(db, event_id)
    result = await db.execute(
        select(AttendanceRecord)
        .where(AttendanceRecord.event_id == event_id)
        .order_by(AttendanceRecord.created_at.asc(), AttendanceRecord.id.asc())
    )
    return list(result.scalars().all())
