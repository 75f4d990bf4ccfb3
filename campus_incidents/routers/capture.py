"""API routes driving the in-progress incident capture."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, Field, model_validator

from campus_incidents.dependencies import get_coordinator
from campus_incidents.devices import ReportedLocation, ReportedMedia
from campus_incidents.rate_limit import WRITE_LIMIT, limiter
from campus_incidents.schemas.incident import (
    CaptureSnapshot,
    Coordinates,
    StepResult,
    SubmitResult,
)
from campus_incidents.services.capture import CaptureCoordinator

router = APIRouter(prefix="/capture", tags=["capture"])


class MediaIn(BaseModel):
    """Picker result from the client; a null uri means the user cancelled."""

    uri: str | None = None


class LocationIn(BaseModel):
    """Location result from the client: a fix, or a denial."""

    latitude: float | None = Field(None, ge=-90, le=90)
    longitude: float | None = Field(None, ge=-180, le=180)
    denied: bool = False

    @model_validator(mode="after")
    def _fix_or_denial(self) -> "LocationIn":
        if not self.denied and (self.latitude is None or self.longitude is None):
            raise ValueError("Provide latitude and longitude, or denied=true")
        return self

    def to_provider(self) -> ReportedLocation:
        if self.denied:
            return ReportedLocation(denied=True)
        return ReportedLocation(
            coordinates=Coordinates(latitude=self.latitude, longitude=self.longitude)
        )


class DescriptionIn(BaseModel):
    """Free text for the report."""

    description: str = ""
    title: str | None = None


@router.get("", response_model=CaptureSnapshot)
async def get_capture(
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> CaptureSnapshot:
    """Current state of the in-progress report."""
    return coordinator.snapshot()


@router.post("/media", response_model=StepResult)
async def attach_media(
    body: MediaIn,
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> StepResult:
    """Attach the picked photo or video (any file type)."""
    outcome = await coordinator.attach_media(ReportedMedia(uri=body.uri))
    return StepResult(outcome=outcome, capture=coordinator.snapshot())


@router.post("/location", response_model=StepResult)
async def attach_location(
    body: LocationIn,
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> StepResult:
    """Attach the location fix, or record that location was denied."""
    outcome = await coordinator.fetch_location(body.to_provider())
    return StepResult(outcome=outcome, capture=coordinator.snapshot())


@router.put("/description", response_model=CaptureSnapshot)
async def set_description(
    body: DescriptionIn,
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> CaptureSnapshot:
    """Set the description (may be empty) and optional title."""
    coordinator.set_description(body.description, title=body.title)
    return coordinator.snapshot()


@router.post("/submit", response_model=SubmitResult, status_code=status.HTTP_201_CREATED)
@limiter.limit(WRITE_LIMIT)
async def submit_capture(
    request: Request,
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> SubmitResult:
    """Save the report locally and start a new one."""
    incident_id = await coordinator.submit()
    return SubmitResult(id=incident_id, capture=coordinator.snapshot())


@router.delete("", response_model=CaptureSnapshot)
async def discard_capture(
    coordinator: Annotated[CaptureCoordinator, Depends(get_coordinator)],
) -> CaptureSnapshot:
    """Throw away the in-progress report."""
    coordinator.discard()
    return coordinator.snapshot()
