"""
Pydantic schemas for event-related request/response validation.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    start_time: datetime
    max_attendees: Optional[int] = Field(None, gt=0, le=100000)
    waitlist_enabled: bool = True
    co_organizer_ids: list[int] = Field(default_factory=list, max_length=50)


class EventResponse(BaseModel):
    id: int
    title: str
    start_time: datetime
    organizer_id: int
    co_organizer_ids: list[int]
    max_attendees: Optional[int]
    waitlist_enabled: bool
    is_sold_out: bool
    created_at: datetime

    model_config = {"from_attributes": True}
