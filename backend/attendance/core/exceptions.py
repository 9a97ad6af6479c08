"""
Error taxonomy for the attendance engine.

Business-rule violations each carry a stable code, a stable message and the
HTTP status the API layer answers with. They are never retried.

Infrastructure failures that survive the transaction retry loop surface as
TransactionConflictError, which is deliberately outside the business taxonomy.
"""

import enum
from typing import Optional

from fastapi import status


class AttendanceErrorCode(str, enum.Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    ALREADY_CONFIRMED = "ALREADY_CONFIRMED"
    WAITLIST_DISABLED = "WAITLIST_DISABLED"
    EVENT_FULL = "EVENT_FULL"
    NOT_ATTENDING = "NOT_ATTENDING"
    ORGANIZER_CANNOT_LEAVE = "ORGANIZER_CANNOT_LEAVE"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"
    NOT_WAITLISTED = "NOT_WAITLISTED"
    INVALID_FEEDBACK_RATING = "INVALID_FEEDBACK_RATING"
    INSUFFICIENT_PRIVILEGE = "INSUFFICIENT_PRIVILEGE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    INVALID_SWEEP_WINDOW = "INVALID_SWEEP_WINDOW"


class AttendanceError(Exception):
    code: AttendanceErrorCode
    message: str
    status_code: int = status.HTTP_409_CONFLICT

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code.value}


class EventNotFoundError(AttendanceError):
    code = AttendanceErrorCode.EVENT_NOT_FOUND
    message = "Event not found"
    status_code = status.HTTP_404_NOT_FOUND


class AlreadyConfirmedError(AttendanceError):
    code = AttendanceErrorCode.ALREADY_CONFIRMED
    message = "User already confirmed for this event"


class WaitlistDisabledError(AttendanceError):
    code = AttendanceErrorCode.WAITLIST_DISABLED
    message = "Event capacity reached and waitlist disabled"


class EventFullError(AttendanceError):
    code = AttendanceErrorCode.EVENT_FULL
    message = "Event capacity reached"


class NotAttendingError(AttendanceError):
    code = AttendanceErrorCode.NOT_ATTENDING
    message = "User is not currently attending"


class OrganizerCannotLeaveError(AttendanceError):
    code = AttendanceErrorCode.ORGANIZER_CANNOT_LEAVE
    message = "Organizers cannot leave their own events"


class AlreadyCheckedInError(AttendanceError):
    code = AttendanceErrorCode.ALREADY_CHECKED_IN
    message = "User already checked in"


class NotWaitlistedError(AttendanceError):
    # Raised when checking in a user who never held a confirmed slot.
    code = AttendanceErrorCode.NOT_WAITLISTED
    message = "User remains on the waitlist"


class InvalidFeedbackRatingError(AttendanceError):
    code = AttendanceErrorCode.INVALID_FEEDBACK_RATING
    message = "Rating must be between 1 and 5"
    status_code = 422


class InsufficientPrivilegeError(AttendanceError):
    code = AttendanceErrorCode.INSUFFICIENT_PRIVILEGE
    message = "User lacks organizer privileges"
    status_code = status.HTTP_403_FORBIDDEN


class InvalidTransitionError(AttendanceError):
    code = AttendanceErrorCode.INVALID_TRANSITION
    message = "Attendance transition not allowed"


class InvalidSweepWindowError(AttendanceError):
    code = AttendanceErrorCode.INVALID_SWEEP_WINDOW
    message = "hours_ahead must be positive"
    status_code = status.HTTP_400_BAD_REQUEST


class TransactionConflictError(Exception):
    """Raised when a transaction keeps conflicting after all retry attempts."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Attendance service is busy, please retry"

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"{self.message} (gave up after {attempts} attempts)")
