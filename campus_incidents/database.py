"""Database setup with SQLAlchemy async and the embedded SQLite engine."""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _enable_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    """Make commits durable before they are acknowledged."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=FULL")
    cursor.close()


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine backing one incident store.

    The engine is owned by whoever calls this; nothing here is module-global.
    """
    engine = create_async_engine(database_url, echo=echo)
    if engine.dialect.name == "sqlite" and ":memory:" not in database_url:
        event.listen(engine.sync_engine, "connect", _enable_sqlite_pragmas)
    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
