from attendance.models.event import Event, EventCoOrganizer, EventAttendee
from attendance.models.attendance import AttendanceRecord, AttendanceLog, AttendanceAction, RsvpStatus
from attendance.models.feedback import EventFeedback

__all__ = [
    "Event", "EventCoOrganizer", "EventAttendee",
    "AttendanceRecord", "AttendanceLog", "AttendanceAction", "RsvpStatus",
    "EventFeedback",
]
