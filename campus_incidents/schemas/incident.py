"""Pydantic schemas for incidents and capture state."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Coordinates(BaseModel):
    """Geographic coordinates."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class IncidentCreate(BaseModel):
    """A complete incident ready for insertion (the store assigns id and created_at)."""

    media_reference: str | None = None
    title: str = ""
    description: str = ""
    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)

    @model_validator(mode="after")
    def _coordinates_are_paired(self) -> "IncidentCreate":
        if (self.latitude is None) != (self.longitude is None):
            raise ValueError("latitude and longitude must be given together")
        return self


class IncidentOut(BaseModel):
    """Incident response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    media_reference: str | None = None
    title: str = ""
    description: str = ""
    latitude: float | None = None
    longitude: float | None = None
    created_at: str

    # Legacy rows may carry NULL titles and descriptions
    @field_validator("title", "description", mode="before")
    @classmethod
    def _null_text_is_empty(cls, value: str | None) -> str:
        return value or ""

    @property
    def coordinates(self) -> Coordinates | None:
        if self.latitude is None or self.longitude is None:
            return None
        return Coordinates(latitude=self.latitude, longitude=self.longitude)


class IncidentsResponse(BaseModel):
    """All stored incidents, most recent first."""

    incidents: list[IncidentOut]
    total: int


class DeleteResult(BaseModel):
    """Outcome of a confirmed delete, with the refreshed list."""

    id: int
    deleted: bool
    incidents: list[IncidentOut]


class CaptureState(str, Enum):
    """States of an in-progress capture."""

    EMPTY = "empty"
    MEDIA_ATTACHED = "media_attached"
    LOCATION_ATTACHED = "location_attached"
    LOCATION_DENIED = "location_denied"
    READY = "ready"
    SUBMITTED = "submitted"


class StepOutcome(str, Enum):
    """What a media or location step produced."""

    OBTAINED = "obtained"
    CANCELLED = "cancelled"
    DENIED = "denied"
    TIMED_OUT = "timed_out"


class CaptureSnapshot(BaseModel):
    """Read-only view of the capture for display."""

    state: CaptureState
    media_reference: str | None = None
    coordinates: Coordinates | None = None
    address: str | None = None
    title: str = ""
    description: str = ""
    missing: list[str] = []


class StepResult(BaseModel):
    """Response for a media or location step."""

    outcome: StepOutcome
    capture: CaptureSnapshot


class SubmitResult(BaseModel):
    """Response for a successful submission."""

    id: int
    capture: CaptureSnapshot
