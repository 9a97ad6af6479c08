"""
Scheduler hook for the periodic waitlist sweep.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from attendance.api.deps import get_attendance_engine, require_cron_key
from attendance.core.config import get_settings
from attendance.schemas.attendance import SweepRequest, SweepResultResponse, SweepRunResponse
from attendance.services.attendance_engine import AttendanceEngine

router = APIRouter(prefix="/cron", tags=["Scheduler"], dependencies=[Depends(require_cron_key)])


@router.post("/sweep-waitlists", response_model=SweepRunResponse)
async def sweep_waitlists_endpoint(
    payload: Optional[SweepRequest] = None,
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Promote waiters into free slots for every capacity-bound event starting soon."""
    hours_ahead = payload.hours_ahead if payload and payload.hours_ahead else get_settings().SWEEP_DEFAULT_HOURS_AHEAD
    results = await engine.sweep_waitlists_for_upcoming_events(hours_ahead)
    return SweepRunResponse(
        hours_ahead=hours_ahead,
        results=[SweepResultResponse.model_validate(result) for result in results],
        total_promoted=sum(result.promoted for result in results),
    )
