"""Health endpoints."""

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from campus_incidents.dependencies import get_store
from campus_incidents.exceptions import StorageUnavailable
from campus_incidents.services.store import IncidentStore

router = APIRouter(tags=["health"])


class StoreStatus(BaseModel):
    """Status of the local incident store. A read error keeps ``open`` true."""

    open: bool
    record_count: int | None = None
    error: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    incidents: StoreStatus


@router.get("/health", response_model=HealthResponse)
async def health_check(
    store: Annotated[IncidentStore, Depends(get_store)],
) -> HealthResponse:
    """Health check with incident store status."""
    try:
        count = await store.count()
        store_status = StoreStatus(open=True, record_count=count)
    except StorageUnavailable as e:
        store_status = StoreStatus(open=store.is_open, error=str(e))

    return HealthResponse(
        status="healthy" if store_status.error is None else "degraded",
        timestamp=datetime.now(UTC),
        incidents=store_status,
    )


@router.post("/store/open", response_model=StoreStatus)
async def reopen_store(
    store: Annotated[IncidentStore, Depends(get_store)],
) -> StoreStatus:
    """
    Explicitly (re)open the incident store after it was unavailable.

    Failure is reported as 503 by the storage error handler.
    """
    await store.open()
    return StoreStatus(open=True, record_count=await store.count())


@router.get("/live")
async def liveness_check() -> dict:
    """Simple liveness probe."""
    return {"status": "alive"}
