"""FastAPI dependencies handing out the app-owned store and coordinator."""

from fastapi import Request

from campus_incidents.services.capture import CaptureCoordinator
from campus_incidents.services.store import IncidentStore


def get_store(request: Request) -> IncidentStore:
    """The single store opened at startup."""
    return request.app.state.store


def get_coordinator(request: Request) -> CaptureCoordinator:
    """The in-progress capture for this device."""
    return request.app.state.coordinator
