"""
Pydantic schemas for RSVP, organizer and sweep request/response payloads.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field

from attendance.models.attendance import AttendanceAction, RsvpStatus


class AttendanceSummaryResponse(BaseModel):
    confirmed_count: int
    waitlist_count: int
    capacity: Optional[int]
    is_full: bool

    model_config = {"from_attributes": True}


class RsvpResponse(BaseModel):
    status: RsvpStatus
    waitlisted: bool
    summary: AttendanceSummaryResponse


class CancelRsvpResponse(BaseModel):
    status: RsvpStatus
    promoted_user_id: Optional[int] = None
    promoted_user_ids: list[int] = Field(default_factory=list)
    summary: AttendanceSummaryResponse


class AttendanceRecordResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    status: RsvpStatus
    waitlisted_at: Optional[datetime]
    confirmed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    checked_in_at: Optional[datetime]

    model_config = {"from_attributes": True}


class AttendanceLogResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    action: AttendanceAction
    reason: Optional[str]
    metadata: Optional[dict[str, Any]] = Field(None, validation_alias="details")
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizerActionResponse(BaseModel):
    action: str
    target_user_id: int
    summary: AttendanceSummaryResponse


class DashboardMeta(BaseModel):
    total_rsvps: int
    total_feedback: int
    average_rating: Optional[float]


class SweepRequest(BaseModel):
    hours_ahead: Optional[float] = Field(None, gt=0, le=24 * 30)


class EventSweepResponse(BaseModel):
    promoted: int
    summary: AttendanceSummaryResponse


class SweepResultResponse(BaseModel):
    event_id: int
    promoted: int

    model_config = {"from_attributes": True}


class SweepRunResponse(BaseModel):
    hours_ahead: float
    results: list[SweepResultResponse]
    total_promoted: int
