"""
AttendanceEngine: the function-call surface of the attendance subsystem.

Each public method is one atomic unit of work:

  1. run the service function inside a serializable transaction
     (retried on conflicts by run_in_transaction)
  2. after commit: count the transitions, drop cached summaries of the events
     touched, and hand the queued notices to the notifier

Nothing after step 1 can undo the transition. The store handle
(session factory) and the notifier are injected, never looked up globally.
"""

import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from attendance.core.config import get_settings
from attendance.core.exceptions import AttendanceError, EventNotFoundError, InvalidSweepWindowError
from attendance.core.logging import get_logger
from attendance.core.metrics import (
    operation_latency,
    record_attendance_error,
    record_promotion,
    record_transition,
    waitlist_sweeps,
)
from attendance.db.transaction import run_in_transaction
from attendance.models.attendance import AttendanceLog, AttendanceRecord
from attendance.models.event import Event
from attendance.models.feedback import EventFeedback
from attendance.schemas.event import EventCreate
from attendance.services import (
    attendance_log,
    capacity_service,
    event_service,
    feedback_service,
    rsvp_service,
    waitlist_service,
)
from attendance.services.attendance_log import AttendanceNotice, pending_notices
from attendance.services.cache_service import invalidate_summaries
from attendance.services.capacity_service import AttendanceSummary, CapacitySnapshot
from attendance.services.interfaces.logging_notifier import LoggingNotifier
from attendance.services.interfaces.notifier import Notifier
from attendance.services.notification_service import dispatch_notices
from attendance.services.rsvp_service import CancelResult, RsvpResult
from attendance.services.waitlist_service import PROMOTION_REASON, SweepResult

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class OrganizerDashboard:
    rsvps: list[AttendanceRecord]
    summary: AttendanceSummary
    feedback: list[EventFeedback]

    @property
    def average_rating(self) -> Optional[float]:
        return feedback_service.average_rating(self.feedback)


@dataclass(frozen=True)
class EventSweepResult:
    promoted: int
    summary: AttendanceSummary


async def _load_dashboard(db: AsyncSession, event_id: int, actor_id: int) -> OrganizerDashboard:
    await event_service.require_organizer(db, event_id, actor_id)
    return OrganizerDashboard(
        rsvps=await rsvp_service.list_rsvps(db, event_id),
        summary=await capacity_service.build_attendance_summary(db, event_id),
        feedback=await feedback_service.list_feedback(db, event_id),
    )


async def _organizer_sweep(db: AsyncSession, event_id: int, actor_id: int) -> EventSweepResult:
    await event_service.require_organizer(db, event_id, actor_id)
    promoted = await waitlist_service.sweep_waitlist_for_event(db, event_id)
    return EventSweepResult(
        promoted=promoted,
        summary=await capacity_service.build_attendance_summary(db, event_id),
    )


class AttendanceEngine:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Optional[Notifier] = None,
        *,
        feedback_requires_attendance: Optional[bool] = None,
    ):
        settings = get_settings()
        self.session_factory = session_factory
        self.notifier = notifier or LoggingNotifier()
        self.feedback_requires_attendance = (
            settings.FEEDBACK_REQUIRES_ATTENDANCE
            if feedback_requires_attendance is None
            else feedback_requires_attendance
        )

    async def _execute(
        self,
        operation: Callable[..., Awaitable[T]],
        *args: Any,
        trigger: str = "cancellation",
        **kwargs: Any,
    ) -> T:
        name = operation.__name__
        notices: list[AttendanceNotice] = []

        async def unit_of_work(db: AsyncSession) -> T:
            result = await operation(db, *args, **kwargs)
            notices[:] = pending_notices(db)
            return result

        unit_of_work.__name__ = name
        start = time.perf_counter()
        try:
            result = await run_in_transaction(self.session_factory, unit_of_work)
        except AttendanceError as e:
            record_attendance_error(e.code.value)
            logger.info("attendance_rejected", operation=name, code=e.code.value, args=args)
            raise
        finally:
            operation_latency.labels(operation=name).observe(time.perf_counter() - start)

        await self._after_commit(notices, trigger)
        return result

    async def _after_commit(self, notices: list[AttendanceNotice], trigger: str) -> None:
        if not notices:
            return
        for notice in notices:
            record_transition(notice.action.value)
            if notice.reason == PROMOTION_REASON:
                record_promotion(trigger)
        await invalidate_summaries(notice.event_id for notice in notices)
        await dispatch_notices(self.notifier, notices)

    # -- events ------------------------------------------------------------

    async def create_event(self, event_data: EventCreate, organizer_id: int) -> Event:
        return await self._execute(event_service.create_event, event_data, organizer_id)

    async def get_event(self, event_id: int) -> Event:
        return await self._execute(event_service.get_event, event_id)

    # -- capacity ----------------------------------------------------------

    async def get_capacity_snapshot(self, event_id: int) -> CapacitySnapshot:
        return await self._execute(capacity_service.get_capacity_snapshot, event_id)

    async def get_summary(self, event_id: int) -> AttendanceSummary:
        return await self._execute(capacity_service.build_attendance_summary, event_id)

    # -- self-service --------------------------------------------------------

    async def join(self, event_id: int, user_id: int) -> RsvpResult:
        return await self._execute(rsvp_service.join_event, event_id, user_id)

    async def cancel(self, event_id: int, user_id: int) -> CancelResult:
        return await self._execute(rsvp_service.cancel_rsvp, event_id, user_id)

    # -- organizer overrides -----------------------------------------------

    async def organizer_confirm(self, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
        return await self._execute(rsvp_service.organizer_confirm, event_id, target_user_id, actor_id)

    async def organizer_waitlist(self, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
        return await self._execute(rsvp_service.organizer_waitlist, event_id, target_user_id, actor_id)

    async def organizer_cancel(self, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
        return await self._execute(rsvp_service.organizer_cancel, event_id, target_user_id, actor_id)

    async def check_in(self, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
        return await self._execute(rsvp_service.check_in_attendee, event_id, target_user_id, actor_id)

    async def mark_no_show(self, event_id: int, target_user_id: int, actor_id: int) -> AttendanceSummary:
        return await self._execute(rsvp_service.mark_no_show, event_id, target_user_id, actor_id)

    async def organizer_dashboard(self, event_id: int, actor_id: int) -> OrganizerDashboard:
        return await self._execute(_load_dashboard, event_id, actor_id)

    async def organizer_sweep(self, event_id: int, actor_id: int) -> EventSweepResult:
        result = await self._execute(_organizer_sweep, event_id, actor_id, trigger="sweep")
        waitlist_sweeps.labels(scope="event").inc()
        return result

    # -- reads ---------------------------------------------------------------

    async def list_rsvps(self, event_id: int) -> list[AttendanceRecord]:
        return await self._execute(rsvp_service.list_rsvps, event_id)

    async def list_attendance_log(self, event_id: int, actor_id: int) -> list[AttendanceLog]:
        async def load_log(db: AsyncSession) -> list[AttendanceLog]:
            await event_service.require_organizer(db, event_id, actor_id)
            return await attendance_log.list_attendance_log(db, event_id)

        return await self._execute(load_log)

    # -- feedback ------------------------------------------------------------

    async def submit_feedback(
        self,
        event_id: int,
        user_id: int,
        rating: int,
        comment: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> EventFeedback:
        return await self._execute(
            feedback_service.submit_feedback,
            event_id,
            user_id,
            rating,
            comment,
            actor_id=actor_id,
            require_attendance=self.feedback_requires_attendance,
        )

    async def list_feedback(self, event_id: int) -> list[EventFeedback]:
        return await self._execute(feedback_service.list_feedback, event_id)

    # -- sweeps --------------------------------------------------------------

    async def sweep_waitlist_for_event(self, event_id: int) -> int:
        promoted = await self._execute(waitlist_service.sweep_waitlist_for_event, event_id, trigger="sweep")
        waitlist_sweeps.labels(scope="event").inc()
        return promoted

    async def sweep_waitlists_for_upcoming_events(self, hours_ahead: Optional[float] = None) -> list[SweepResult]:
        """
        Entry point for the external scheduler.
        Each event is swept in its own transaction so one busy event cannot
        hold up or roll back the others.
        """
        if hours_ahead is None:
            hours_ahead = get_settings().SWEEP_DEFAULT_HOURS_AHEAD
        if hours_ahead <= 0:
            raise InvalidSweepWindowError()

        event_ids = await self._execute(waitlist_service.find_events_needing_sweep, hours_ahead)

        results: list[SweepResult] = []
        for event_id in event_ids:
            try:
                promoted = await self.sweep_waitlist_for_event(event_id)
            except EventNotFoundError:
                logger.warning("waitlist_sweep_event_vanished", event_id=event_id)
                continue
            if promoted > 0:
                results.append(SweepResult(event_id=event_id, promoted=promoted))

        waitlist_sweeps.labels(scope="upcoming").inc()
        logger.info(
            "waitlist_sweep_completed",
            hours_ahead=hours_ahead,
            events_checked=len(event_ids),
            events_promoted=len(results),
            promoted=sum(result.promoted for result in results),
        )
        return results
