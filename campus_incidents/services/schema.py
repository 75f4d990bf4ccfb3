"""
Widen older on-device incident tables to the current layout.

Earlier builds of the app wrote two other shapes of the ``incidents`` table:

- ``mediaUri/date``: (id, mediaUri, latitude, longitude, description, date)
- ``media/created_at``: (id, media, title, description, latitude, longitude, created_at)

Both are folded into the current layout once, at store open, so store code
never has to care which shape a device started with.
"""

import logging

from sqlalchemy import Connection, inspect, text

from campus_incidents.models import Incident

logger = logging.getLogger(__name__)

TABLE_NAME = Incident.__tablename__
LEGACY_TABLE_NAME = f"{TABLE_NAME}_legacy"

NOW_ISO_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ', 'now')"

# Current column -> accepted source column names, in order of preference
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "id": ("id",),
    "mediaReference": ("mediaReference", "mediaUri", "media"),
    "title": ("title",),
    "description": ("description",),
    "latitude": ("latitude",),
    "longitude": ("longitude",),
    "createdAt": ("createdAt", "date", "created_at"),
}

CURRENT_COLUMNS = frozenset(COLUMN_ALIASES)


def _quote(name: str) -> str:
    return f'"{name}"'


def _source_column(column: str, existing: set[str]) -> str | None:
    for alias in COLUMN_ALIASES[column]:
        if alias in existing:
            return alias
    return None


def _select_expression(column: str, existing: set[str]) -> str:
    """SQL expression reading ``column`` out of the legacy table."""
    source = _source_column(column, existing)

    if column == "description":
        return f"COALESCE({_quote(source)}, '')" if source else "''"
    if column == "createdAt":
        return f"COALESCE({_quote(source)}, {NOW_ISO_SQL})" if source else NOW_ISO_SQL
    if column in ("latitude", "longitude"):
        lat = _source_column("latitude", existing)
        lng = _source_column("longitude", existing)
        if not (lat and lng):
            return "NULL"
        # A lone coordinate is dropped rather than kept half-set
        return (
            f"CASE WHEN {_quote(lat)} IS NULL OR {_quote(lng)} IS NULL "
            f"THEN NULL ELSE {_quote(source)} END"
        )
    return _quote(source) if source else "NULL"


def _autoincrement_high_water(connection: Connection, table_name: str) -> int:
    """Largest id ever handed out for ``table_name``."""
    high_water = connection.execute(
        text(f"SELECT COALESCE(MAX(id), 0) FROM {_quote(table_name)}")
    ).scalar_one()

    has_sequence = connection.execute(
        text("SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = 'sqlite_sequence'")
    ).first()
    if has_sequence:
        seq = connection.execute(
            text("SELECT seq FROM sqlite_sequence WHERE name = :name"),
            {"name": table_name},
        ).scalar_one_or_none()
        if seq is not None:
            high_water = max(high_water, seq)

    return high_water


def _restore_high_water(connection: Connection, high_water: int) -> None:
    if high_water <= 0:
        return
    updated = connection.execute(
        text("UPDATE sqlite_sequence SET seq = MAX(seq, :seq) WHERE name = :name"),
        {"seq": high_water, "name": TABLE_NAME},
    )
    if updated.rowcount == 0:
        connection.execute(
            text("INSERT INTO sqlite_sequence (name, seq) VALUES (:name, :seq)"),
            {"name": TABLE_NAME, "seq": high_water},
        )


def migrate_legacy_incidents(connection: Connection) -> int:
    """
    Rebuild a legacy ``incidents`` table in the current layout.

    Must run inside the caller's transaction, before the table is created.
    Returns the number of rows carried over; 0 when there was nothing to do.
    """
    inspector = inspect(connection)
    if not inspector.has_table(TABLE_NAME):
        return 0

    existing = {column["name"] for column in inspector.get_columns(TABLE_NAME)}
    if existing == CURRENT_COLUMNS:
        return 0

    if "id" not in existing:
        raise RuntimeError(f"Table {TABLE_NAME!r} has no id column; refusing to migrate it.")

    known = {alias for aliases in COLUMN_ALIASES.values() for alias in aliases}
    dropped = sorted(existing - known)
    if dropped:
        logger.warning(f"Dropping unknown legacy incident columns: {', '.join(dropped)}")

    is_sqlite = connection.dialect.name == "sqlite"
    high_water = _autoincrement_high_water(connection, TABLE_NAME) if is_sqlite else 0

    logger.info(f"Migrating legacy incidents table with columns {sorted(existing)}")
    connection.execute(
        text(f"ALTER TABLE {_quote(TABLE_NAME)} RENAME TO {_quote(LEGACY_TABLE_NAME)}")
    )
    Incident.__table__.create(connection)

    columns = list(COLUMN_ALIASES)
    target = ", ".join(_quote(column) for column in columns)
    source = ", ".join(_select_expression(column, existing) for column in columns)
    result = connection.execute(
        text(
            f"INSERT INTO {_quote(TABLE_NAME)} ({target}) "
            f"SELECT {source} FROM {_quote(LEGACY_TABLE_NAME)} ORDER BY id"
        )
    )
    migrated = result.rowcount

    connection.execute(text(f"DROP TABLE {_quote(LEGACY_TABLE_NAME)}"))
    if is_sqlite:
        _restore_high_water(connection, high_water)

    logger.info(f"Migrated {migrated} legacy incidents")
    return migrated
