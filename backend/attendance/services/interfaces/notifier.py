"""
Notification strategy interface.
Allows swapping delivery channels without touching the attendance engine.
"""

from abc import ABC, abstractmethod

from attendance.services.attendance_log import AttendanceNotice


class Notifier(ABC):
    """
    Receives one notice per committed attendance transition.

    Implementations:
    - LoggingNotifier: writes the notice to the structured log
    - RedisNotifier: publishes the notice on a Redis pub/sub channel for the
      messaging workers to pick up

    Called after the transaction commits. A failing notifier never undoes or
    fails the transition it reports.
    """

    @abstractmethod
    async def notify(self, notice: AttendanceNotice) -> None:
        """
        Deliver a notice.

        Args:
            notice: event id, user id, action and reason of the transition
        """
        pass
