"""Declarative base, column types and engine construction for Gitviz storage."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import DateTime, event
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Connection, Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for Gitviz models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Reject naive values and bind aware ones as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            msg = "datetime columns require timezone-aware values"
            raise ValueError(msg)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


async def init_storage(engine: AsyncEngine) -> None:
    """Create every table registered with ``Base`` if absent.

    Importing the model modules here guarantees their tables are attached
    to the shared metadata before ``create_all`` runs.
    """
    import gitviz.activity.storage  # noqa: F401
    import gitviz.events.storage  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _use_explicit_sqlite_transactions(engine: AsyncEngine) -> None:
    """Let SQLAlchemy, not the sqlite3 driver, emit ``BEGIN``.

    The driver defers ``BEGIN`` until the first DML statement, so a
    ``SAVEPOINT`` issued first opens its own transaction and ``RELEASE``
    commits it. With the driver's transaction handling disabled, savepoints
    nest inside the session transaction and roll back with it.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: typ.Any, _record: typ.Any) -> None:  # noqa: ANN401
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Connection) -> None:
        conn.exec_driver_sql("BEGIN")


def create_storage_engine(url: str, **kwargs: typ.Any) -> AsyncEngine:  # noqa: ANN401
    """Create the async engine used for Gitviz storage.

    SQLite engines are configured so nested transactions behave as on
    PostgreSQL; other backends are returned unchanged.
    """
    engine = create_async_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        _use_explicit_sqlite_transactions(engine)
    return engine
