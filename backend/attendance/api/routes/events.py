"""
Event endpoints: create an event and read its capacity settings.
"""

from fastapi import APIRouter, Depends, status

from attendance.api.deps import get_attendance_engine
from attendance.core.security import get_current_user_id
from attendance.schemas.event import EventCreate, EventResponse
from attendance.services.attendance_engine import AttendanceEngine

router = APIRouter(prefix="/events", tags=["Events"])


@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event_endpoint(
    event_data: EventCreate,
    user_id: int = Depends(get_current_user_id),
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Create an event. The caller becomes its organizer and is confirmed right away."""
    return await engine.create_event(event_data, user_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event_endpoint(
    event_id: int,
    engine: AttendanceEngine = Depends(get_attendance_engine),
):
    """Get a single event by ID. Not cached (`is_sold_out` must be current)."""
    return await engine.get_event(event_id)
