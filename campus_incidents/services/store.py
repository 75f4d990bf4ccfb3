"""Incident store: the only reader and writer of persisted incidents."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from campus_incidents.database import Base, build_engine, build_session_maker
from campus_incidents.exceptions import StorageUnavailable, WriteFailed
from campus_incidents.models import Incident
from campus_incidents.schemas.incident import IncidentCreate, IncidentOut
from campus_incidents.services.schema import migrate_legacy_incidents

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _log_abandoned_result(task: asyncio.Future) -> None:
    """Retrieve the outcome of store work whose caller was cancelled."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(f"Store call finished with an error after its caller was cancelled: {error}")
    else:
        logger.info("Store call completed after its caller was cancelled")


class IncidentStore:
    """
    Durable local persistence for incidents in a single embedded database file.

    Features:
    - Idempotent open with one-time widening of legacy tables
    - One transaction per write, rolled back on any failure
    - Operations on one instance run strictly one after another

    Construct once at startup and hand the same instance to every consumer.
    Calls made while ``open()`` is running wait for it; calls made on a store
    that was never opened are rejected with ``StorageUnavailable``.
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = database_url
        self.echo = echo
        self._engine: AsyncEngine | None = None
        self._session_maker: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        """
        Whether ``open()`` has completed successfully.

        Read errors do not change this: they are treated as transient and
        surface per call as ``StorageUnavailable``. Only ``close()`` or a
        failed ``open()`` returns the store to the unopened state.
        """
        return self._session_maker is not None

    async def open(self) -> None:
        """Open (creating if needed) the database file and ensure the schema."""
        async with self._lock:
            if self._engine is None:
                try:
                    self._engine = build_engine(self.database_url, echo=self.echo)
                except (SQLAlchemyError, OSError) as e:
                    logger.error(f"Cannot create database engine: {e}", exc_info=True)
                    raise StorageUnavailable(f"Cannot open incident store: {e}") from e

            try:
                async with self._engine.begin() as conn:
                    migrated = await conn.run_sync(migrate_legacy_incidents)
                    await conn.run_sync(Base.metadata.create_all)
            except (SQLAlchemyError, OSError, RuntimeError) as e:
                logger.error(f"Incident store not available: {e}", exc_info=True)
                await self._engine.dispose()
                self._engine = None
                self._session_maker = None
                raise StorageUnavailable(f"Cannot open incident store: {e}") from e

            if migrated:
                logger.info(f"Widened {migrated} legacy incidents to the current schema")
            self._session_maker = build_session_maker(self._engine)
            logger.info(f"Incident store open at {self.database_url}")

    async def close(self) -> None:
        """Release the database handle (process teardown)."""
        async with self._lock:
            if self._engine is not None:
                await self._engine.dispose()
                logger.info("Incident store closed")
            self._engine = None
            self._session_maker = None

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """
        Run ``operation`` in its own session, serialized with every other call.

        The work is shielded from caller cancellation so a write that has
        started always finishes (committed or rolled back).
        """

        async def _locked() -> T:
            async with self._lock:
                if self._session_maker is None:
                    raise StorageUnavailable("Incident store is not open")
                async with self._session_maker() as session:
                    return await operation(session)

        task = asyncio.ensure_future(_locked())
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            # Nobody awaits the result any more
            task.add_done_callback(_log_abandoned_result)
            raise

    async def insert(self, record: IncidentCreate) -> int:
        """
        Persist a complete incident.

        Returns:
            The id assigned by the store
        """

        async def _insert(session: AsyncSession) -> int:
            try:
                async with session.begin():
                    incident = Incident(
                        media_reference=record.media_reference,
                        title=record.title,
                        description=record.description,
                        latitude=record.latitude,
                        longitude=record.longitude,
                    )
                    session.add(incident)
                    await session.flush()
                    return incident.id
            except SQLAlchemyError as e:
                logger.error(f"Incident insert failed: {e}", exc_info=True)
                raise WriteFailed(f"Could not save incident: {e}") from e

        incident_id = await self._run(_insert)
        logger.info(f"Inserted incident {incident_id}")
        return incident_id

    async def list_all(self) -> list[IncidentOut]:
        """All incidents, most recent first. Empty list when there are none."""

        async def _list(session: AsyncSession) -> list[IncidentOut]:
            try:
                result = await session.execute(select(Incident).order_by(Incident.id.desc()))
            except SQLAlchemyError as e:
                logger.error(f"Incident listing failed: {e}", exc_info=True)
                raise StorageUnavailable(f"Could not read incidents: {e}") from e
            return [IncidentOut.model_validate(row) for row in result.scalars().all()]

        return await self._run(_list)

    async def get_by_id(self, incident_id: int) -> IncidentOut | None:
        """A single incident, or None when it does not exist."""

        async def _get(session: AsyncSession) -> IncidentOut | None:
            try:
                incident = await session.get(Incident, incident_id)
            except SQLAlchemyError as e:
                logger.error(f"Incident lookup failed: {e}", exc_info=True)
                raise StorageUnavailable(f"Could not read incident {incident_id}: {e}") from e
            return IncidentOut.model_validate(incident) if incident else None

        return await self._run(_get)

    async def count(self) -> int:
        """Number of stored incidents."""

        async def _count(session: AsyncSession) -> int:
            try:
                result = await session.execute(select(func.count(Incident.id)))
            except SQLAlchemyError as e:
                raise StorageUnavailable(f"Could not count incidents: {e}") from e
            return result.scalar() or 0

        return await self._run(_count)

    async def delete_by_id(self, incident_id: int) -> bool:
        """
        Remove an incident.

        Deleting an id that does not exist is not an error, so a repeated
        delete from the UI is harmless.

        Returns:
            True if a row was removed, False if there was nothing to delete
        """

        async def _delete(session: AsyncSession) -> bool:
            try:
                async with session.begin():
                    result = await session.execute(
                        delete(Incident).where(Incident.id == incident_id)
                    )
                    return result.rowcount > 0
            except SQLAlchemyError as e:
                logger.error(f"Incident delete failed: {e}", exc_info=True)
                raise WriteFailed(f"Could not delete incident {incident_id}: {e}") from e

        deleted = await self._run(_delete)
        if deleted:
            logger.info(f"Deleted incident {incident_id}")
        else:
            logger.info(f"Incident {incident_id} already absent, nothing deleted")
        return deleted
