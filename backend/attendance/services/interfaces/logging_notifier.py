"""
Logging notifier - default when no message broker is configured.
"""

from attendance.core.logging import get_logger
from attendance.services.attendance_log import AttendanceNotice
from attendance.services.interfaces.notifier import Notifier

logger = get_logger(__name__)


class LoggingNotifier(Notifier):
    """Records notices in the log only. Use when nothing consumes them."""

    async def notify(self, notice: AttendanceNotice) -> None:
        logger.info(
            "attendance_notice",
            event_id=notice.event_id,
            user_id=notice.user_id,
            action=notice.action.value,
            reason=notice.reason,
        )
