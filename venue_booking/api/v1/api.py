# venue_booking/api/v1/api.py

from fastapi import APIRouter
from venue_booking.api.v1.endpoints import (
    bookings,
    modifications,
    venue_agent,
    agent_actions,
    notifications,
    realtime,
)

api_router = APIRouter()

api_router.include_router(bookings.router)
api_router.include_router(modifications.router)
api_router.include_router(venue_agent.router)
api_router.include_router(agent_actions.router)
api_router.include_router(notifications.router)
api_router.include_router(realtime.router)
