"""
Event model with capacity settings.

Key design decisions:
- Events are owned by the wider platform; this service only keeps the fields
  attendance decisions depend on (organizer, co-organizers, capacity, waitlist flag)
- `max_attendees` NULL means unlimited
- `is_sold_out` is derived state: recomputed after every transition that can
  change the confirmed count, never set on its own
- Index on `start_time` serves the waitlist sweep's "starting soon" query
"""

from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from attendance.db.base import Base, TimestampMixin


class Event(Base, TimestampMixin):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    organizer_id = Column(Integer, nullable=False, index=True)
    max_attendees = Column(Integer, nullable=True)
    waitlist_enabled = Column(Boolean, nullable=False, default=True)
    is_sold_out = Column(Boolean, nullable=False, default=False)

    co_organizers = relationship(
        "EventCoOrganizer",
        back_populates="event",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint("max_attendees IS NULL OR max_attendees > 0", name="check_max_attendees_positive"),
        Index("ix_events_start_time", "start_time"),
    )

    @property
    def co_organizer_ids(self) -> list[int]:
        return sorted(co.user_id for co in self.co_organizers)

    @property
    def host_ids(self) -> set[int]:
        """Organizer plus co-organizers: always confirmed, never counted against capacity."""
        return {self.organizer_id, *self.co_organizer_ids}

    def is_host(self, user_id: int) -> bool:
        return user_id in self.host_ids

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title}, max_attendees={self.max_attendees})>"


class EventCoOrganizer(Base):
    __tablename__ = "event_co_organizers"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, primary_key=True)

    event = relationship("Event", back_populates="co_organizers")


class EventAttendee(Base):
    """The event's attendee set: users currently holding a slot."""

    __tablename__ = "event_attendees"

    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, primary_key=True)
