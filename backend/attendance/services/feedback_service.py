"""
Post-event feedback ledger.

Feedback is independent of attendance state unless `require_attendance` is
set (FEEDBACK_REQUIRES_ATTENDANCE), in which case only users who held a
confirmed or checked-in record may rate the event.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.core.exceptions import InvalidFeedbackRatingError, NotAttendingError
from attendance.core.logging import get_logger
from attendance.models.attendance import RsvpStatus
from attendance.models.feedback import EventFeedback
from attendance.services.event_service import get_event, require_organizer
from attendance.services.records import get_record

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: int) -> None:
    # bool is an int subclass; True must not pass as a rating of 1
    if isinstance(rating, bool) or not isinstance(rating, int) or not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidFeedbackRatingError()


async def submit_feedback(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    rating: int,
    comment: Optional[str] = None,
    *,
    actor_id: Optional[int] = None,
    require_attendance: bool = False,
) -> EventFeedback:
    """
    Upsert the (event, user) feedback row.
    An actor other than the subject must be an organizer of the event.
    """
    validate_rating(rating)

    if actor_id is not None and actor_id != user_id:
        await require_organizer(db, event_id, actor_id)
    else:
        await get_event(db, event_id)

    if require_attendance:
        record = await get_record(db, event_id, user_id)
        if record is None or record.status not in (RsvpStatus.CONFIRMED, RsvpStatus.CHECKED_IN):
            raise NotAttendingError("Only attendees can leave feedback")

    result = await db.execute(
        select(EventFeedback).where(
            EventFeedback.event_id == event_id,
            EventFeedback.user_id == user_id,
        )
    )
    feedback = result.scalar_one_or_none()

    if feedback is None:
        feedback = EventFeedback(event_id=event_id, user_id=user_id, rating=rating, comment=comment)
        db.add(feedback)
    else:
        feedback.rating = rating
        feedback.comment = comment
    await db.flush()

    logger.info("feedback_submitted", event_id=event_id, user_id=user_id, rating=rating, actor_id=actor_id)
    return feedback


async def list_feedback(db: AsyncSession, event_id: int) -> list[EventFeedback]:
    """All feedback for an event, newest first."""
    await get_event(db, event_id)
    result = await db.execute(
        select(EventFeedback)
        .where(EventFeedback.event_id == event_id)
        .order_by(EventFeedback.created_at.desc(), EventFeedback.id.desc())
    )
    return list(result.scalars().all())


def average_rating(feedback: list[EventFeedback]) -> Optional[float]:
    if not feedback:
        return None
    return sum(item.rating for item in feedback) / len(feedback)
