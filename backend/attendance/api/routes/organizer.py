"""
Organizer console: roster, manual overrides, per-event sweep and audit log.

Only the organizer and co-organizers of an event may call these endpoints;
everyone else gets 403 INSUFFICIENT_PRIVILEGE.
"""

from enum import Enum

from fastapi import APIRouter, Depends

from attendance.api.deps import get_attendance_engine
from attendance.core.security import get_current_user_id
from attendance.schemas.attendance import (
    AttendanceLogResponse,
    AttendanceRecordResponse,
    AttendanceSummaryResponse,
    DashboardMeta,
    EventSweepResponse,
    OrganizerActionResponse,
)
from attendance.schemas.feedback import FeedbackResponse, OrganizerDashboardResponse
from attendance.services.attendance_engine import AttendanceEngine

router = APIRouter(prefix="/events/{event_id}/attendance", tags=["Organizer"])


class OrganizerAction(str, Enum):
    CONFIRM = "confirm"
    WAITLIST = "waitlist"
    CANCEL = "cancel"
    CHECK_IN = "check-in"
    NO_SHOW = "no-show"


@router.get("/", response_model=OrganizerDashboardResponse)
async def dashboard_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    dashboard = await engine.organizer_dashboard(event_id, user_id)
    return OrganizerDashboardResponse(
        rsvps=[AttendanceRecordResponse.model_validate(record) for record in dashboard.rsvps],
        summary=AttendanceSummaryResponse.model_validate(dashboard.summary),
        feedback=[FeedbackResponse.model_validate(item) for item in dashboard.feedback],
        meta=DashboardMeta(
            total_rsvps=len(dashboard.rsvps),
            total_feedback=len(dashboard.feedback),
            average_rating=dashboard.average_rating,
        ),
    )


@router.post("/sweep", response_model=EventSweepResponse)
async def organizer_sweep_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Fill any open slots of this event from its waitlist."""
    result = await engine.organizer_sweep(event_id, user_id)
    return EventSweepResponse(
        promoted=result.promoted,
        summary=AttendanceSummaryResponse.model_validate(result.summary),
    )


@router.get("/log", response_model=list[AttendanceLogResponse])
async def attendance_log_endpoint(
    event_id: int,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Append-only audit trail of every transition, oldest first."""
    return await engine.list_attendance_log(event_id, user_id)


@router.post("/{target_user_id}/{action}", response_model=OrganizerActionResponse)
async def organizer_action_endpoint(
    event_id: int,
    target_user_id: int,
    action: OrganizerAction,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """
    Apply an organizer override to one attendee.

    - confirm: bypasses the waitlist but not capacity (409 EVENT_FULL)
    - waitlist: requires the event's waitlist to be enabled
    - cancel: frees the slot and promotes the oldest waiter
    - check-in / no-show: record the outcome for a confirmed attendee
    """
    handlers = {
        OrganizerAction.CONFIRM: engine.organizer_confirm,
        OrganizerAction.WAITLIST: engine.organizer_waitlist,
        OrganizerAction.CANCEL: engine.organizer_cancel,
        OrganizerAction.CHECK_IN: engine.check_in,
        OrganizerAction.NO_SHOW: engine.mark_no_show,
    }
    summary = await handlers[action](event_id, target_user_id, user_id)
    return OrganizerActionResponse(
        action=action.value,
        target_user_id=target_user_id,
        summary=AttendanceSummaryResponse.model_validate(summary),
    )
