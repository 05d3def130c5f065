"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    auth,
    units,
    guards,
    work_events,
    metrics,
    terminal,
    punches,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(units.router, prefix="/units", tags=["units"])
api_router.include_router(guards.router, prefix="/guards", tags=["guards"])
api_router.include_router(work_events.router, prefix="/work-events", tags=["work-events"])
api_router.include_router(metrics.router, prefix="/metrics", tags=["metrics"])
api_router.include_router(terminal.router, prefix="/terminal", tags=["terminal"])
api_router.include_router(punches.router, prefix="/punches", tags=["punches"])
