"""
API v1 Router Configuration
"""
from fastapi import APIRouter
from .endpoints import (
    analytics,
    calls,
    conference,
    contacts,
    demo,
    health,
    twilio
)

# Create main API router
api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(contacts.router, prefix="/contacts", tags=["contacts"])
api_router.include_router(calls.router, prefix="/calls", tags=["calls"])
api_router.include_router(conference.router, prefix="/conference", tags=["conference"])
api_router.include_router(twilio.router, prefix="/twilio", tags=["twilio"])
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"])
api_router.include_router(demo.router, prefix="/demo", tags=["demo"])
