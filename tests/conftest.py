"""Pytest fixtures for campus incidents tests."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from campus_incidents.dependencies import get_coordinator, get_store
from campus_incidents.main import app
from campus_incidents.rate_limit import limiter
from campus_incidents.schemas.incident import IncidentCreate
from campus_incidents.services.capture import CaptureCoordinator
from campus_incidents.services.store import IncidentStore


@pytest.fixture
def database_path(tmp_path) -> Path:
    return tmp_path / "incidents.db"


@pytest.fixture
def database_url(database_path) -> str:
    """File-backed SQLite database in the test's temp directory."""
    return f"sqlite+aiosqlite:///{database_path}"


@pytest_asyncio.fixture
async def store(database_url) -> AsyncGenerator[IncidentStore, None]:
    """Opened store backed by a fresh database file."""
    store = IncidentStore(database_url)
    await store.open()
    yield store
    await store.close()


@pytest_asyncio.fixture
async def unopened_store(database_url) -> AsyncGenerator[IncidentStore, None]:
    """Store whose open() was never called."""
    store = IncidentStore(database_url)
    yield store
    await store.close()


@pytest.fixture
def coordinator(store) -> CaptureCoordinator:
    """Coordinator without reverse geocoding and a short step timeout."""
    return CaptureCoordinator(store, geocoder=None, step_timeout=1.0)


@pytest.fixture
def sample_record() -> IncidentCreate:
    return IncidentCreate(
        media_reference="photo1.jpg",
        description="",
        latitude=5.3472,
        longitude=-3.9855,
    )


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Start every test with empty rate limit counters."""
    limiter.reset()
    yield
    limiter.reset()


async def _client_for(store: IncidentStore, coordinator: CaptureCoordinator):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_coordinator] = lambda: coordinator

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(store, coordinator) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client wired to the test store and coordinator."""
    async for client in _client_for(store, coordinator):
        yield client


@pytest_asyncio.fixture
async def unavailable_client(unopened_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose store was never opened."""
    coordinator = CaptureCoordinator(unopened_store, geocoder=None, step_timeout=1.0)
    async for client in _client_for(unopened_store, coordinator):
        yield client
