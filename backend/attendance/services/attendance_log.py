"""
Append-only attendance audit trail.

Every transition goes through write_attendance_log, which also queues an
AttendanceNotice on the session. The engine hands queued notices to the
notifier only after the transaction commits.
"""

from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from attendance.core.logging import get_logger
from attendance.models.attendance import AttendanceAction, AttendanceLog

logger = get_logger(__name__)

PENDING_NOTICES_KEY = "attendance_notices"


@dataclass(frozen=True)
class AttendanceNotice:
    event_id: int
    user_id: int
    action: AttendanceAction
    reason: Optional[str] = None


async def write_attendance_log(
    db: AsyncSession,
    event_id: int,
    user_id: int,
    action: AttendanceAction,
    reason: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> AttendanceLog:
    entry = AttendanceLog(
        event_id=event_id,
        user_id=user_id,
        action=action,
        reason=reason,
        details=metadata,
    )
    db.add(entry)
    await db.flush()

    db.info.setdefault(PENDING_NOTICES_KEY, []).append(
        AttendanceNotice(event_id=event_id, user_id=user_id, action=action, reason=reason)
    )
    logger.debug("attendance_logged", event_id=event_id, user_id=user_id, action=action.value, reason=reason)
    return entry


def pending_notices(db: AsyncSession) -> list[AttendanceNotice]:
    return list(db.info.get(PENDING_NOTICES_KEY, []))


async def list_attendance_log(db: AsyncSession, event_id: int) -> list[AttendanceLog]:
    """Audit trail for one event, oldest first."""
    result = await db.execute(
        select(AttendanceLog)
        .where(AttendanceLog.event_id == event_id)
        .order_by(AttendanceLog.created_at.asc(), AttendanceLog.id.asc())
    )
    return list(result.scalars().all())
