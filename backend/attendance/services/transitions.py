"""
RSVP status state machine.

TRANSITIONS lists, for each current status (None = no record yet), the
statuses a record may move to. Operations check their business rules first
and raise the specific error; apply_transition is the single place a status
actually changes, and it refuses anything outside the table.
"""

from datetime import datetime
from typing import Optional

from attendance.core.exceptions import InvalidTransitionError
from attendance.db.base import utcnow
from attendance.models.attendance import AttendanceAction, AttendanceRecord, RsvpStatus

CONFIRMED = RsvpStatus.CONFIRMED
WAITLISTED = RsvpStatus.WAITLISTED
CANCELLED = RsvpStatus.CANCELLED
CHECKED_IN = RsvpStatus.CHECKED_IN
NO_SHOW = RsvpStatus.NO_SHOW

TRANSITIONS: dict[Optional[RsvpStatus], frozenset[RsvpStatus]] = {
    None: frozenset({CONFIRMED, WAITLISTED}),
    CONFIRMED: frozenset({CONFIRMED, WAITLISTED, CANCELLED, CHECKED_IN, NO_SHOW}),
    WAITLISTED: frozenset({CONFIRMED, WAITLISTED, CANCELLED, NO_SHOW}),
    CANCELLED: frozenset({CONFIRMED, WAITLISTED}),
    CHECKED_IN: frozenset({CONFIRMED, WAITLISTED, CANCELLED, NO_SHOW}),
    NO_SHOW: frozenset({CONFIRMED, WAITLISTED, CANCELLED, CHECKED_IN, NO_SHOW}),
}

# Statuses that always hold one of the event's slots. A NO_SHOW holds one
# only if the user was confirmed before being marked.
SLOT_HOLDING_STATUSES = frozenset({CONFIRMED, CHECKED_IN})

ACTION_FOR_STATUS: dict[RsvpStatus, AttendanceAction] = {
    CONFIRMED: AttendanceAction.RSVP_CONFIRMED,
    WAITLISTED: AttendanceAction.RSVP_WAITLISTED,
    CANCELLED: AttendanceAction.RSVP_CANCELLED,
    CHECKED_IN: AttendanceAction.CHECKED_IN,
    NO_SHOW: AttendanceAction.MARKED_NO_SHOW,
}


def map_status_to_attendance_action(status: RsvpStatus) -> AttendanceAction:
    return ACTION_FOR_STATUS[status]


def holds_slot(record: Optional[AttendanceRecord]) -> bool:
    if record is None:
        return False
    if record.status in SLOT_HOLDING_STATUSES:
        return True
    return record.status == NO_SHOW and record.confirmed_at is not None


def can_transition(current: Optional[RsvpStatus], target: RsvpStatus) -> bool:
    return target in TRANSITIONS[current]


def apply_transition(
    record: AttendanceRecord,
    target: RsvpStatus,
    now: Optional[datetime] = None,
) -> AttendanceRecord:
    """Move `record` to `target`, stamping the timestamp of the status entered."""
    current = record.status
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Cannot move attendance from {current.value if current else 'none'} to {target.value}"
        )

    now = now or utcnow()

    if target == WAITLISTED:
        # keep the original queue position when already waiting
        if current != WAITLISTED or record.waitlisted_at is None:
            record.waitlisted_at = now
        record.confirmed_at = None
        record.checked_in_at = None
    elif target == CONFIRMED:
        if current != CONFIRMED or record.confirmed_at is None:
            record.confirmed_at = now
    elif target == CANCELLED:
        record.cancelled_at = now
    elif target == CHECKED_IN:
        record.checked_in_at = now

    if target != CANCELLED:
        record.cancelled_at = None

    record.status = target
    return record
