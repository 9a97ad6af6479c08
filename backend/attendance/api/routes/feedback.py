"""
Post-event feedback endpoints.
"""

from fastapi import APIRouter, Depends, status

from attendance.api.deps import get_attendance_engine
from attendance.core.security import get_current_user_id
from attendance.schemas.feedback import FeedbackCreate, FeedbackResponse
from attendance.services.attendance_engine import AttendanceEngine

router = APIRouter(prefix="/events/{event_id}/feedback", tags=["Feedback"])


@router.post("/", response_model=FeedbackResponse, status_code=status.HTTP_201_CREATED)
async def submit_feedback_endpoint(
    event_id: int,
    payload: FeedbackCreate,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """
    Rate an event from 1 to 5. Submitting again replaces the earlier rating.
    Organizers may record feedback on behalf of an attendee via `target_user_id`.
    """
    subject_id = payload.target_user_id if payload.target_user_id is not None else user_id
    return await engine.submit_feedback(
        event_id,
        subject_id,
        payload.rating,
        payload.comment,
        actor_id=user_id,
    )


@router.get("/", response_model=list[FeedbackResponse])
async def list_feedback_endpoint(
    event_id: int,
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    return await engine.list_feedback(event_id)
