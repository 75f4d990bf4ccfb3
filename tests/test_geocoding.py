"""Tests for the reverse geocoder."""

from unittest.mock import AsyncMock

import httpx
import pytest

from campus_incidents.schemas.incident import Coordinates
from campus_incidents.services.geocoding import ReverseGeocoder

CAMPUS = Coordinates(latitude=5.3472, longitude=-3.9855)


class TestReverseGeocoder:
    """Tests for ReverseGeocoder."""

    def test_init_sets_user_agent(self):
        """Test that the identifying User-Agent header is sent."""
        geocoder = ReverseGeocoder(user_agent="campus-test/1.0")
        assert geocoder.headers["User-Agent"] == "campus-test/1.0"

    def test_base_url_trailing_slash(self):
        geocoder = ReverseGeocoder(base_url="https://geo.example.org/")
        assert geocoder.base_url == "https://geo.example.org"

    @pytest.mark.asyncio
    async def test_resolve_success(self):
        """Test that display_name is returned as the address."""
        geocoder = ReverseGeocoder(enabled=True)
        geocoder._request = AsyncMock(
            return_value={"display_name": "ESATIC, Treichville, Abidjan"}
        )

        address = await geocoder.resolve(CAMPUS)

        assert address == "ESATIC, Treichville, Abidjan"
        params = geocoder._request.call_args[0][0]
        assert params["lat"] == 5.3472
        assert params["lon"] == -3.9855
        assert params["format"] == "jsonv2"

    @pytest.mark.asyncio
    async def test_resolve_disabled(self):
        """Test that a disabled geocoder makes no request."""
        geocoder = ReverseGeocoder(enabled=False)
        geocoder._request = AsyncMock()

        assert await geocoder.resolve(CAMPUS) is None
        geocoder._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolve_no_address(self):
        geocoder = ReverseGeocoder(enabled=True)
        geocoder._request = AsyncMock(return_value={"error": "Unable to geocode"})

        assert await geocoder.resolve(CAMPUS) is None

    @pytest.mark.asyncio
    async def test_resolve_http_error(self):
        """Test that an HTTP error means no address, not an exception."""
        request = httpx.Request("GET", "https://nominatim.example.org/reverse")
        response = httpx.Response(503, request=request)
        geocoder = ReverseGeocoder(enabled=True)
        geocoder._request = AsyncMock(
            side_effect=httpx.HTTPStatusError("unavailable", request=request, response=response)
        )

        assert await geocoder.resolve(CAMPUS) is None
        geocoder._request.assert_called_once()

    @pytest.mark.asyncio
    async def test_resolve_transport_error(self):
        geocoder = ReverseGeocoder(enabled=True)
        geocoder._request = AsyncMock(side_effect=httpx.ConnectError("no route"))

        assert await geocoder.resolve(CAMPUS) is None

    @pytest.mark.asyncio
    async def test_request_uses_reverse_endpoint(self):
        """Test the real request path against a mocked transport."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"display_name": "Campus"})

        transport = httpx.MockTransport(handler)
        original = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            return original(*args, transport=transport, **kwargs)

        geocoder = ReverseGeocoder(base_url="https://geo.example.org", enabled=True)
        with pytest.MonkeyPatch.context() as mp:
            mp.setattr(httpx, "AsyncClient", client_factory)
            address = await geocoder.resolve(CAMPUS)

        assert address == "Campus"
        assert seen[0].url.path == "/reverse"
        assert seen[0].headers["User-Agent"] == geocoder.headers["User-Agent"]
