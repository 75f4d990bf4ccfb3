"""FastAPI application for the campus incident reporter."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from campus_incidents.config import get_settings
from campus_incidents.exceptions import (
    IncompleteCapture,
    InvalidCaptureStep,
    StorageUnavailable,
    WriteFailed,
)
from campus_incidents.rate_limit import limiter
from campus_incidents.routers import capture_router, health_router, incidents_router
from campus_incidents.services.capture import CaptureCoordinator
from campus_incidents.services.geocoding import ReverseGeocoder
from campus_incidents.services.store import IncidentStore

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan management."""
    logger.info("Starting campus incidents backend...")

    # One store for the whole process, shared by reference
    store = IncidentStore(settings.database_url, echo=settings.debug)
    app.state.store = store
    app.state.coordinator = CaptureCoordinator(store, geocoder=ReverseGeocoder())

    try:
        await store.open()
        logger.info("Incident store ready")
    except StorageUnavailable as e:
        # Keep serving so every request reports the blocking error
        logger.error(f"Incident store unavailable: {e}")

    yield

    # Shutdown
    app.state.coordinator.discard()
    await store.close()
    logger.info("Campus incidents backend shut down")


# Create FastAPI app
app = FastAPI(
    title="Campus Incidents API",
    description="Local incident capture and storage for the campus app",
    version="0.1.0",
    lifespan=lifespan,
)

# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StorageUnavailable)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailable):
    """The store cannot be used until it is reopened."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Incident storage is unavailable",
            "error": "storage_unavailable",
            "reason": str(exc),
        },
    )


@app.exception_handler(WriteFailed)
async def write_failed_handler(request: Request, exc: WriteFailed):
    """Nothing was written; the same action can be retried."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "detail": "Saving failed, please retry",
            "error": "write_failed",
            "retryable": True,
            "reason": str(exc),
        },
    )


@app.exception_handler(IncompleteCapture)
async def incomplete_capture_handler(request: Request, exc: IncompleteCapture):
    """Prompt the user to finish the missing steps."""
    return JSONResponse(
        status_code=422,
        content={
            "detail": "Add a media file and the location before saving",
            "error": "incomplete_capture",
            "missing": exc.missing,
        },
    )


@app.exception_handler(InvalidCaptureStep)
async def invalid_capture_step_handler(request: Request, exc: InvalidCaptureStep):
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"detail": str(exc), "error": "invalid_capture_step"},
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unhandled exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


# Include routers
app.include_router(health_router)
app.include_router(incidents_router, prefix=settings.api_v1_prefix)
app.include_router(capture_router, prefix=settings.api_v1_prefix)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Campus Incidents API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "campus_incidents.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
    )
