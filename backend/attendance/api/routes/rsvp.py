"""
Self-service RSVP endpoints with concurrency-safe capacity accounting.
"""

from fastapi import APIRouter, Depends

from attendance.api.deps import get_attendance_engine
from attendance.core.logging import get_logger
from attendance.core.security import get_current_user_id
from attendance.schemas.attendance import AttendanceSummaryResponse, CancelRsvpResponse, RsvpResponse
from attendance.services.attendance_engine import AttendanceEngine
from attendance.services.cache_service import get_cached_summary, set_cached_summary

logger = get_logger(__name__)
router = APIRouter(prefix="/events/{event_id}/rsvp", tags=["RSVP"])


@router.post("/", response_model=RsvpResponse)
async def join_event_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """
    RSVP to an event.

    Confirms the caller while there is room and waitlists them once the event
    is full (409 WAITLIST_DISABLED when the event has no waitlist). Two callers
    racing for the last slot never both get it: the loser is re-evaluated and
    waitlisted or rejected.
    """
    result = await engine.join(event_id, user_id)
    summary = await engine.get_summary(event_id)
    return RsvpResponse(
        status=result.status,
        waitlisted=result.waitlisted,
        summary=AttendanceSummaryResponse.model_validate(summary),
    )


@router.delete("/", response_model=CancelRsvpResponse)
async def cancel_rsvp_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Leave an event. Freed slots go to the oldest waiters in the same transaction."""
    result = await engine.cancel(event_id, user_id)
    return CancelRsvpResponse(
        status=result.status,
        promoted_user_id=result.promoted_user_id,
        promoted_user_ids=result.promoted_user_ids,
        summary=AttendanceSummaryResponse.model_validate(result.summary),
    )


@router.get("/summary", response_model=AttendanceSummaryResponse)
async def attendance_summary_endpoint(
    event_id: int,
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """
    Public capacity summary.
    Cached in Redis; invalidated on every committed transition for the event.
    """
    cached = await get_cached_summary(event_id)
    if cached:
        logger.info("summary_cache_hit", event_id=event_id)
        return AttendanceSummaryResponse.model_validate(cached)

    summary = await engine.get_summary(event_id)
    await set_cached_summary(event_id, summary)
    return AttendanceSummaryResponse.model_validate(summary)
