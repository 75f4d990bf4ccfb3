"""Incident model for locally captured campus reports."""

from datetime import UTC, datetime

from sqlalchemy import Float, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from campus_incidents.database import Base


def utc_now_iso() -> str:
    """Insert-time timestamp stored in ``createdAt``."""
    return datetime.now(UTC).isoformat(timespec="milliseconds")


class Incident(Base):
    """
    A user-submitted campus report: media, a GPS fix and a description.

    Rows are written once and only ever deleted afterwards. Column names
    match the on-device table layout; attributes use Python naming.
    """

    __tablename__ = "incidents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_reference: Mapped[str | None] = mapped_column("mediaReference", Text)
    title: Mapped[str | None] = mapped_column("title", Text)
    description: Mapped[str] = mapped_column(
        "description", Text, nullable=False, default="", server_default=text("''")
    )

    # Both set or both NULL
    latitude: Mapped[float | None] = mapped_column("latitude", Float)
    longitude: Mapped[float | None] = mapped_column("longitude", Float)

    created_at: Mapped[str] = mapped_column(
        "createdAt",
        Text,
        default=utc_now_iso,
        server_default=text("(strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))"),
    )

    # AUTOINCREMENT keeps deleted ids from being handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    def __repr__(self) -> str:
        return f"<Incident {self.id}: {self.media_reference}>"
