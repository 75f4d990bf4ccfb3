"""API routes for stored incidents."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from campus_incidents.dependencies import get_store
from campus_incidents.rate_limit import WRITE_LIMIT, limiter
from campus_incidents.schemas.incident import DeleteResult, IncidentOut, IncidentsResponse
from campus_incidents.services.store import IncidentStore

router = APIRouter(prefix="/incidents", tags=["incidents"])


@router.get("", response_model=IncidentsResponse)
async def list_incidents(
    store: Annotated[IncidentStore, Depends(get_store)],
) -> IncidentsResponse:
    """List saved incidents, most recent first."""
    incidents = await store.list_all()
    return IncidentsResponse(incidents=incidents, total=len(incidents))


@router.get("/{incident_id}", response_model=IncidentOut)
async def get_incident(
    incident_id: int,
    store: Annotated[IncidentStore, Depends(get_store)],
) -> IncidentOut:
    """Get a specific incident by ID."""
    incident = await store.get_by_id(incident_id)
    if incident is None:
        raise HTTPException(status_code=404, detail="Incident not found")
    return incident


@router.delete("/{incident_id}", response_model=DeleteResult)
@limiter.limit(WRITE_LIMIT)
async def delete_incident(
    request: Request,
    incident_id: int,
    store: Annotated[IncidentStore, Depends(get_store)],
    confirm: bool = Query(False, description="Must be true: the user confirmed the delete"),
) -> DeleteResult:
    """
    Delete an incident after the user confirmed it.

    Deleting an incident that is already gone succeeds with ``deleted`` false.
    Returns the refreshed list so the view can re-render.
    """
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_428_PRECONDITION_REQUIRED,
            detail="Deleting an incident requires confirmation (confirm=true)",
        )

    deleted = await store.delete_by_id(incident_id)
    incidents = await store.list_all()
    return DeleteResult(id=incident_id, deleted=deleted, incidents=incidents)
