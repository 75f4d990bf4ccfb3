"""Pydantic schemas for API request/response validation."""

from campus_incidents.schemas.incident import (
    CaptureSnapshot,
    CaptureState,
    Coordinates,
    DeleteResult,
    IncidentCreate,
    IncidentOut,
    IncidentsResponse,
    StepOutcome,
    StepResult,
    SubmitResult,
)

__all__ = [
    "CaptureSnapshot",
    "CaptureState",
    "Coordinates",
    "DeleteResult",
    "IncidentCreate",
    "IncidentOut",
    "IncidentsResponse",
    "StepOutcome",
    "StepResult",
    "SubmitResult",
]
