"""Services for incident capture and local storage."""

from campus_incidents.services.capture import CaptureCoordinator
from campus_incidents.services.geocoding import ReverseGeocoder
from campus_incidents.services.store import IncidentStore

__all__ = ["CaptureCoordinator", "IncidentStore", "ReverseGeocoder"]
