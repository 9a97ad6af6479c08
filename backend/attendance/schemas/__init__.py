from attendance.schemas.event import EventCreate, EventResponse
from attendance.schemas.attendance import (
    AttendanceSummaryResponse, RsvpResponse, CancelRsvpResponse,
    AttendanceRecordResponse, AttendanceLogResponse, OrganizerActionResponse,
    DashboardMeta, SweepRequest, EventSweepResponse, SweepResultResponse, SweepRunResponse,
)
from attendance.schemas.feedback import FeedbackCreate, FeedbackResponse, OrganizerDashboardResponse

__all__ = [
    "EventCreate", "EventResponse",
    "AttendanceSummaryResponse", "RsvpResponse", "CancelRsvpResponse",
    "AttendanceRecordResponse", "AttendanceLogResponse", "OrganizerActionResponse",
    "DashboardMeta", "SweepRequest", "EventSweepResponse", "SweepResultResponse", "SweepRunResponse",
    "FeedbackCreate", "FeedbackResponse", "OrganizerDashboardResponse",
]
