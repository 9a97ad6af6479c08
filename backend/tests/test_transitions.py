"""
Tests for the RSVP status state machine.
"""

from datetime import datetime, timezone, timedelta

import pytest

from attendance.core.exceptions import InvalidTransitionError
from attendance.models.attendance import AttendanceAction, AttendanceRecord, RsvpStatus
from attendance.services.transitions import (
    SLOT_HOLDING_STATUSES,
    apply_transition,
    can_transition,
    holds_slot,
    map_status_to_attendance_action,
)

T0 = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(minutes=5)


def new_record() -> AttendanceRecord:
    return AttendanceRecord(event_id=1, user_id=10)


def test_every_status_maps_to_an_action():
    """Each status maps to its log action."""
    assert map_status_to_attendance_action(RsvpStatus.CONFIRMED) == AttendanceAction.RSVP_CONFIRMED
    assert map_status_to_attendance_action(RsvpStatus.WAITLISTED) == AttendanceAction.RSVP_WAITLISTED
    assert map_status_to_attendance_action(RsvpStatus.CANCELLED) == AttendanceAction.RSVP_CANCELLED
    assert map_status_to_attendance_action(RsvpStatus.CHECKED_IN) == AttendanceAction.CHECKED_IN
    assert map_status_to_attendance_action(RsvpStatus.NO_SHOW) == AttendanceAction.MARKED_NO_SHOW


def test_slot_holding_statuses():
    """Confirmed and checked-in records always hold a slot."""
    assert SLOT_HOLDING_STATUSES == {RsvpStatus.CONFIRMED, RsvpStatus.CHECKED_IN}


@pytest.mark.parametrize(
    "current,target",
    [
        (None, RsvpStatus.CANCELLED),
        (None, RsvpStatus.CHECKED_IN),
        (None, RsvpStatus.NO_SHOW),
        (RsvpStatus.WAITLISTED, RsvpStatus.CHECKED_IN),
        (RsvpStatus.CANCELLED, RsvpStatus.CHECKED_IN),
        (RsvpStatus.CANCELLED, RsvpStatus.CANCELLED),
    ],
)
def test_disallowed_transitions(current, target):
    """Moves outside the table are refused."""
    assert not can_transition(current, target)


def test_apply_transition_rejects_disallowed_move():
    """Refused moves leave the record untouched."""
    record = new_record()
    with pytest.raises(InvalidTransitionError):
        apply_transition(record, RsvpStatus.CHECKED_IN, T0)
    assert record.status is None


def test_confirm_stamps_confirmed_at():
    """Confirming stamps confirmed_at."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    assert record.status == RsvpStatus.CONFIRMED
    assert record.confirmed_at == T0
    assert record.waitlisted_at is None


def test_reconfirm_keeps_original_confirmed_at():
    """Reconfirming keeps the first confirmed_at."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    apply_transition(record, RsvpStatus.CONFIRMED, T1)
    assert record.confirmed_at == T0


def test_rewaitlist_keeps_queue_position():
    """Waitlisting again keeps waitlisted_at."""
    record = apply_transition(new_record(), RsvpStatus.WAITLISTED, T0)
    apply_transition(record, RsvpStatus.WAITLISTED, T1)
    assert record.waitlisted_at == T0


def test_waitlisting_clears_confirmation_stamps():
    """Waitlisting clears confirmation and check-in stamps."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    apply_transition(record, RsvpStatus.CHECKED_IN, T0)
    apply_transition(record, RsvpStatus.WAITLISTED, T1)
    assert record.waitlisted_at == T1
    assert record.confirmed_at is None
    assert record.checked_in_at is None


def test_cancel_then_rejoin_clears_cancelled_at():
    """Rejoining after a cancel clears cancelled_at."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    apply_transition(record, RsvpStatus.CANCELLED, T0)
    assert record.cancelled_at == T0
    assert not record.is_active

    apply_transition(record, RsvpStatus.CONFIRMED, T1)
    assert record.cancelled_at is None
    assert record.confirmed_at == T1
    assert record.is_active


def test_check_in_stamps_checked_in_at():
    """Check-in stamps checked_in_at."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    apply_transition(record, RsvpStatus.CHECKED_IN, T1)
    assert record.checked_in_at == T1
    assert record.confirmed_at == T0


def test_confirmed_no_show_keeps_holding_its_slot():
    """A confirmed no-show still holds its slot."""
    record = apply_transition(new_record(), RsvpStatus.CONFIRMED, T0)
    apply_transition(record, RsvpStatus.NO_SHOW, T1)
    assert record.confirmed_at == T0
    assert holds_slot(record)


def test_waitlisted_no_show_never_held_a_slot():
    """A waiter marked no-show holds no slot."""
    record = apply_transition(new_record(), RsvpStatus.WAITLISTED, T0)
    assert can_transition(RsvpStatus.WAITLISTED, RsvpStatus.NO_SHOW)

    apply_transition(record, RsvpStatus.NO_SHOW, T1)

    assert record.status == RsvpStatus.NO_SHOW
    assert record.confirmed_at is None
    assert not holds_slot(record)
    assert not holds_slot(None)
