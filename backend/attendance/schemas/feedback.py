"""
Pydantic schemas for feedback and the organizer dashboard.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from attendance.schemas.attendance import AttendanceRecordResponse, AttendanceSummaryResponse, DashboardMeta


class FeedbackCreate(BaseModel):
    # range is enforced by the feedback ledger so callers get INVALID_FEEDBACK_RATING
    rating: int
    comment: Optional[str] = Field(None, max_length=2000)
    target_user_id: Optional[int] = None


class FeedbackResponse(BaseModel):
    id: int
    event_id: int
    user_id: int
    rating: int
    comment: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class OrganizerDashboardResponse(BaseModel):
    rsvps: list[AttendanceRecordResponse]
    summary: AttendanceSummaryResponse
    feedback: list[FeedbackResponse]
    meta: DashboardMeta
