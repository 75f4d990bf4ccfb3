"""Reverse geocoding client (coordinates to a display address)."""

import logging
from typing import Any

import httpx

from campus_incidents.config import get_settings
from campus_incidents.schemas.incident import Coordinates

logger = logging.getLogger(__name__)
settings = get_settings()


class ReverseGeocoder:
    """
    Client for a Nominatim-compatible ``/reverse`` endpoint.

    Purely for display: every failure yields None ("address unavailable")
    and nothing is retried.
    """

    def __init__(
        self,
        base_url: str = settings.geocoding_base_url,
        user_agent: str = settings.geocoding_user_agent,
        timeout: float = settings.geocoding_timeout_seconds,
        enabled: bool = settings.geocoding_enabled,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.enabled = enabled

        # Nominatim's usage policy requires an identifying User-Agent
        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "User-Agent": user_agent,
        }

    async def _request(self, params: dict[str, Any]) -> dict[str, Any]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(
                f"{self.base_url}/reverse", headers=self.headers, params=params
            )
            response.raise_for_status()
            return response.json()

    async def resolve(self, coordinates: Coordinates) -> str | None:
        """
        Look up a human-readable address.

        Args:
            coordinates: The fix to describe

        Returns:
            Formatted address, or None when the lookup fails or is disabled
        """
        if not self.enabled:
            return None

        params = {
            "format": "jsonv2",
            "lat": coordinates.latitude,
            "lon": coordinates.longitude,
        }
        try:
            payload = await self._request(params)
        except httpx.HTTPStatusError as e:
            logger.warning(f"Reverse geocoding HTTP error {e.response.status_code}")
            return None
        except httpx.RequestError as e:
            logger.warning(f"Reverse geocoding request error: {e}")
            return None
        except ValueError as e:
            logger.warning(f"Reverse geocoding returned invalid JSON: {e}")
            return None

        address = payload.get("display_name") if isinstance(payload, dict) else None
        if not address:
            logger.info(f"No address for {coordinates.latitude}, {coordinates.longitude}")
            return None
        return address
