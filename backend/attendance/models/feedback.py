"""
Post-event feedback, one row per (event, user); resubmission overwrites it.
"""

from sqlalchemy import Column, ForeignKey, Integer, String, UniqueConstraint, CheckConstraint

from attendance.db.base import Base, TimestampMixin


class EventFeedback(Base, TimestampMixin):
    __tablename__ = "event_feedback"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, nullable=False)
    rating = Column(Integer, nullable=False)
    comment = Column(String(2000), nullable=True)

    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_feedback_event_user"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="check_feedback_rating_range"),
    )

    def __repr__(self) -> str:
        return f"<EventFeedback(event={self.event_id}, user={self.user_id}, rating={self.rating})>"
