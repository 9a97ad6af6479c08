"""
Notification delivery for committed attendance transitions.

The engine calls dispatch_notices after commit. Delivery is fire-and-forget:
a broken channel is logged and counted, and the caller still gets the result
of the transition that already committed.
"""

import json
from typing import Iterable, Optional

from attendance.core.config import get_settings
from attendance.core.logging import get_logger
from attendance.core.metrics import notification_failures
from attendance.infrastructure.redis_client import get_redis
from attendance.services.attendance_log import AttendanceNotice
from attendance.services.interfaces.logging_notifier import LoggingNotifier
from attendance.services.interfaces.notifier import Notifier

logger = get_logger(__name__)


class RedisNotifier(Notifier):
    """
    Publishes notices on a Redis pub/sub channel.

    Use when:
    - Email/push workers run as separate processes
    - Several consumers need the same stream of attendance changes
    """

    def __init__(self, channel: Optional[str] = None):
        self.channel = channel or get_settings().NOTIFY_CHANNEL

    async def notify(self, notice: AttendanceNotice) -> None:
        client = await get_redis()
        if client is None:
            raise ConnectionError("Redis unavailable for attendance notifications")

        payload = json.dumps({
            "event_id": notice.event_id,
            "user_id": notice.user_id,
            "action": notice.action.value,
            "reason": notice.reason,
        })
        await client.publish(self.channel, payload)


def build_notifier(backend: Optional[str] = None) -> Notifier:
    """
    Build the configured notifier.

    NOTIFIER_BACKEND:
    - "log" (default): LoggingNotifier
    - "redis": RedisNotifier
    """
    backend = backend or get_settings().NOTIFIER_BACKEND

    if backend == "redis":
        return RedisNotifier()
    return LoggingNotifier()


# Singleton instance
_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """FastAPI dependency: notifier singleton. Tests override this."""
    global _notifier
    if _notifier is None:
        _notifier = build_notifier()
    return _notifier


async def dispatch_notices(notifier: Notifier, notices: Iterable[AttendanceNotice]) -> int:
    """Hand each notice to the notifier. Returns how many were delivered."""
    delivered = 0
    for notice in notices:
        try:
            await notifier.notify(notice)
            delivered += 1
        except Exception as e:
            notification_failures.inc()
            logger.error(
                "notification_failed",
                event_id=notice.event_id,
                user_id=notice.user_id,
                action=notice.action.value,
                error=str(e),
            )
    return delivered
