"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from attendance.api.routes import cron, events, feedback, organizer, rsvp

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(events.router)
api_router.include_router(rsvp.router)
api_router.include_router(organizer.router)
api_router.include_router(feedback.router)
api_router.include_router(cron.router)
