"""
Event service: creation, lookup and organizer privilege checks.
"""

from datetime import datetime, timezone
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from attendance.core.exceptions import EventNotFoundError, InsufficientPrivilegeError
from attendance.models.event import Event, EventCoOrganizer
from attendance.schemas.event import EventCreate
from attendance.core.logging import get_logger

logger = get_logger(__name__)


async def get_event(db: AsyncSession, event_id: int) -> Event:
    """Get a single event by ID."""
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()

    if not event:
        raise EventNotFoundError()
    return event


async def require_organizer(db: AsyncSession, event_id: int, actor_id: int) -> Event:
    """Load the event and check the actor is its organizer or a co-organizer."""
    event = await get_event(db, event_id)
    if not event.is_host(actor_id):
        logger.warning("organizer_check_failed", event_id=event_id, actor_id=actor_id)
        raise InsufficientPrivilegeError()
    return event


async def create_event(db: AsyncSession, event_data: EventCreate, organizer_id: int) -> Event:
    """Create a new event. Hosts are confirmed right away."""
    # imported here: rsvp_service depends on this module
    from attendance.services.rsvp_service import confirm_host

    start_time = event_data.start_time
    if start_time.tzinfo is None:
        start_time = start_time.replace(tzinfo=timezone.utc)
    if start_time <= datetime.now(timezone.utc):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event start time must be in the future",
        )

    event = Event(
        title=event_data.title,
        start_time=start_time,
        organizer_id=organizer_id,
        max_attendees=event_data.max_attendees,
        waitlist_enabled=event_data.waitlist_enabled,
        is_sold_out=False,
        co_organizers=[
            EventCoOrganizer(user_id=user_id)
            for user_id in sorted(set(event_data.co_organizer_ids) - {organizer_id})
        ],
    )
    db.add(event)
    await db.flush()

    for host_id in sorted(event.host_ids):
        await confirm_host(db, event, host_id, reason="event-created")

    logger.info(
        "event_created",
        event_id=event.id,
        title=event.title,
        max_attendees=event.max_attendees,
        waitlist_enabled=event.waitlist_enabled,
    )
    return event
