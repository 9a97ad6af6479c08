"""
Shared FastAPI dependencies.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance.core.config import get_settings
from attendance.db.session import get_session_factory
from attendance.services.attendance_engine import AttendanceEngine
from attendance.services.interfaces.notifier import Notifier
from attendance.services.notification_service import get_notifier


def get_attendance_engine(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    notifier: Notifier = Depends(get_notifier),
) -> AttendanceEngine:
    return AttendanceEngine(session_factory, notifier)


async def require_cron_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Scheduler calls authenticate with the shared CRON_API_KEY."""
    expected = get_settings().CRON_API_KEY
    if not expected or not x_api_key or not secrets.compare_digest(x_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
