"""API routers."""

from campus_incidents.routers.capture import router as capture_router
from campus_incidents.routers.health import router as health_router
from campus_incidents.routers.incidents import router as incidents_router

__all__ = ["capture_router", "incidents_router", "health_router"]
