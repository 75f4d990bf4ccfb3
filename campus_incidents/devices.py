"""
Interfaces to the device collaborators the capture flow consumes.

The camera/gallery picker and the location sensor live outside this package;
only their results cross into it. ``ReportedMedia`` and ``ReportedLocation``
wrap results a remote client has already obtained so they can be fed through
the same coordinator steps.
"""

from dataclasses import dataclass
from typing import Protocol

from campus_incidents.exceptions import LocationDenied
from campus_incidents.schemas.incident import Coordinates


@dataclass(frozen=True)
class MediaSelection:
    """A picked photo or video."""

    uri: str


class MediaPicker(Protocol):
    async def pick(self) -> MediaSelection | None:
        """Return the chosen media, or None when the user cancels."""
        ...


class LocationProvider(Protocol):
    async def current_position(self) -> Coordinates:
        """Return the current fix; raise ``LocationDenied`` when none is available."""
        ...


class AddressResolver(Protocol):
    async def resolve(self, coordinates: Coordinates) -> str | None:
        """Return a display address, or None when unavailable."""
        ...


@dataclass(frozen=True)
class ReportedMedia:
    """Media picker whose result was reported by the client. None means cancelled."""

    uri: str | None

    async def pick(self) -> MediaSelection | None:
        if not self.uri:
            return None
        return MediaSelection(uri=self.uri)


@dataclass(frozen=True)
class ReportedLocation:
    """Location provider whose result was reported by the client."""

    coordinates: Coordinates | None = None
    denied: bool = False

    async def current_position(self) -> Coordinates:
        if self.denied or self.coordinates is None:
            raise LocationDenied("Location permission refused or no fix available")
        return self.coordinates
