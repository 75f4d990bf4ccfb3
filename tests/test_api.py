"""Tests for API endpoints."""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import text

from campus_incidents.exceptions import WriteFailed
from campus_incidents.schemas.incident import IncidentCreate

PREFIX = "/api/v1"


async def capture_report(client, uri: str = "photo1.jpg", description: str = "") -> dict:
    await client.post(f"{PREFIX}/capture/media", json={"uri": uri})
    await client.post(
        f"{PREFIX}/capture/location", json={"latitude": 5.3472, "longitude": -3.9855}
    )
    await client.put(f"{PREFIX}/capture/description", json={"description": description})
    response = await client.post(f"{PREFIX}/capture/submit")
    return response.json()


class TestHealthEndpoint:
    """Tests for health check endpoints."""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client):
        """Test health endpoint returns store status."""
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["incidents"]["open"] is True
        assert data["incidents"]["record_count"] == 0

    @pytest.mark.asyncio
    async def test_health_store_unavailable(self, unavailable_client):
        response = await unavailable_client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["incidents"]["open"] is False

    @pytest.mark.asyncio
    async def test_reopen_store(self, unavailable_client):
        """Test the store can be opened explicitly after being unavailable."""
        response = await unavailable_client.post("/store/open")

        assert response.status_code == 200
        assert response.json()["open"] is True

        response = await unavailable_client.get(f"{PREFIX}/incidents")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_read_failure_is_transient(self, client, store):
        """Test a read error degrades health but leaves the store open for a reopen."""
        async with store._engine.begin() as conn:
            await conn.execute(text("DROP TABLE incidents"))

        response = await client.get("/health")

        data = response.json()
        assert data["status"] == "degraded"
        assert data["incidents"]["open"] is True
        assert data["incidents"]["error"]

        response = await client.post("/store/open")
        assert response.status_code == 200

        response = await client.get("/health")
        assert response.json()["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_live(self, client):
        response = await client.get("/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}


class TestRootEndpoint:
    """Tests for root endpoint."""

    @pytest.mark.asyncio
    async def test_root_endpoint(self, client):
        """Test root endpoint returns API info."""
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Campus Incidents API"
        assert "version" in data
        assert "docs" in data


class TestIncidentsEndpoints:
    """Tests for stored incident endpoints."""

    @pytest.mark.asyncio
    async def test_list_incidents_empty(self, client):
        response = await client.get(f"{PREFIX}/incidents")

        assert response.status_code == 200
        assert response.json() == {"incidents": [], "total": 0}

    @pytest.mark.asyncio
    async def test_list_incidents_most_recent_first(self, client, store):
        """Test listing returns B before A."""
        await store.insert(IncidentCreate(media_reference="a.jpg", latitude=5.0, longitude=-3.0))
        await store.insert(IncidentCreate(media_reference="b.jpg", latitude=5.0, longitude=-3.0))

        response = await client.get(f"{PREFIX}/incidents")

        data = response.json()
        assert data["total"] == 2
        assert [i["media_reference"] for i in data["incidents"]] == ["b.jpg", "a.jpg"]

    @pytest.mark.asyncio
    async def test_get_incident(self, client, sample_record, store):
        incident_id = await store.insert(sample_record)

        response = await client.get(f"{PREFIX}/incidents/{incident_id}")

        assert response.status_code == 200
        assert response.json()["media_reference"] == "photo1.jpg"

    @pytest.mark.asyncio
    async def test_get_incident_not_found(self, client):
        response = await client.get(f"{PREFIX}/incidents/12345")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, client, sample_record, store):
        """Test that an unconfirmed delete never reaches the store."""
        incident_id = await store.insert(sample_record)

        response = await client.delete(f"{PREFIX}/incidents/{incident_id}")

        assert response.status_code == 428
        assert len(await store.list_all()) == 1

    @pytest.mark.asyncio
    async def test_delete_confirmed(self, client, sample_record, store):
        incident_id = await store.insert(sample_record)

        response = await client.delete(
            f"{PREFIX}/incidents/{incident_id}", params={"confirm": "true"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] is True
        assert data["incidents"] == []

    @pytest.mark.asyncio
    async def test_delete_missing_is_success(self, client):
        """Test deleting id 999 on an empty store succeeds."""
        response = await client.delete(f"{PREFIX}/incidents/999", params={"confirm": "true"})

        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] is False
        assert data["incidents"] == []

    @pytest.mark.asyncio
    async def test_list_store_unavailable(self, unavailable_client):
        """Test an unopened store is reported as a blocking error."""
        response = await unavailable_client.get(f"{PREFIX}/incidents")

        assert response.status_code == 503
        assert response.json()["error"] == "storage_unavailable"


class TestCaptureEndpoints:
    """Tests for the capture flow over HTTP."""

    @pytest.mark.asyncio
    async def test_full_capture(self, client):
        """Test media, location and description submit as incident 1."""
        data = await capture_report(client)

        assert data["id"] == 1
        assert data["capture"]["state"] == "empty"

        response = await client.get(f"{PREFIX}/incidents")
        incidents = response.json()["incidents"]
        assert len(incidents) == 1
        assert incidents[0]["media_reference"] == "photo1.jpg"
        assert incidents[0]["latitude"] == 5.3472
        assert incidents[0]["longitude"] == -3.9855
        assert incidents[0]["description"] == ""
        assert incidents[0]["created_at"]

    @pytest.mark.asyncio
    async def test_media_cancelled(self, client):
        response = await client.post(f"{PREFIX}/capture/media", json={"uri": None})

        assert response.status_code == 200
        data = response.json()
        assert data["outcome"] == "cancelled"
        assert data["capture"]["state"] == "empty"

    @pytest.mark.asyncio
    async def test_location_denied(self, client):
        await client.post(f"{PREFIX}/capture/media", json={"uri": "photo1.jpg"})

        response = await client.post(f"{PREFIX}/capture/location", json={"denied": True})

        data = response.json()
        assert data["outcome"] == "denied"
        assert data["capture"]["state"] == "location_denied"

    @pytest.mark.asyncio
    async def test_location_before_media(self, client):
        response = await client.post(
            f"{PREFIX}/capture/location", json={"latitude": 5.3472, "longitude": -3.9855}
        )

        assert response.status_code == 409
        assert response.json()["error"] == "invalid_capture_step"

    @pytest.mark.asyncio
    async def test_location_body_validation(self, client):
        response = await client.post(f"{PREFIX}/capture/location", json={"latitude": 5.3})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_incomplete_submit(self, client, store):
        """Test media without location is rejected and nothing is stored."""
        await client.post(f"{PREFIX}/capture/media", json={"uri": "photo1.jpg"})

        response = await client.post(f"{PREFIX}/capture/submit")

        assert response.status_code == 422
        data = response.json()
        assert data["error"] == "incomplete_capture"
        assert data["missing"] == ["location"]
        assert await store.list_all() == []

    @pytest.mark.asyncio
    async def test_submit_write_failed_keeps_capture(self, client, store):
        await client.post(f"{PREFIX}/capture/media", json={"uri": "photo1.jpg"})
        await client.post(
            f"{PREFIX}/capture/location", json={"latitude": 5.3472, "longitude": -3.9855}
        )
        store.insert = AsyncMock(side_effect=WriteFailed("disk full"))

        response = await client.post(f"{PREFIX}/capture/submit")

        assert response.status_code == 503
        assert response.json()["retryable"] is True
        capture = (await client.get(f"{PREFIX}/capture")).json()
        assert capture["media_reference"] == "photo1.jpg"
        assert capture["coordinates"] == {"latitude": 5.3472, "longitude": -3.9855}

    @pytest.mark.asyncio
    async def test_discard(self, client):
        await client.post(f"{PREFIX}/capture/media", json={"uri": "photo1.jpg"})

        response = await client.delete(f"{PREFIX}/capture")

        assert response.status_code == 200
        assert response.json()["state"] == "empty"

    @pytest.mark.asyncio
    async def test_description_with_title(self, client):
        await client.post(f"{PREFIX}/capture/media", json={"uri": "photo1.jpg"})
        await client.post(
            f"{PREFIX}/capture/location", json={"latitude": 5.3472, "longitude": -3.9855}
        )

        response = await client.put(
            f"{PREFIX}/capture/description",
            json={"description": "Broken window", "title": "Vandalism"},
        )

        data = response.json()
        assert data["state"] == "ready"
        assert data["title"] == "Vandalism"
        assert data["description"] == "Broken window"
