"""Database models."""

from campus_incidents.models.incident import Incident

__all__ = ["Incident"]
