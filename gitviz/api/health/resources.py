"""Liveness and readiness probes.

``/health`` never touches the database. ``/ready`` runs ``SELECT 1`` when a
session factory is configured so orchestrators stop routing deliveries to
an instance that cannot store them.

Usage
-----
Register health endpoints on the Falcon app::

    from gitviz.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(session_factory))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from gitviz.logging import get_logger, log_warning

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["HealthResource", "ReadyResource"]

logger = get_logger(__name__)


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource.

    Without a session factory the probe always reports ready. With one, a
    failing ``SELECT 1`` yields ``503`` and ``{"status": "unavailable"}``.

    """

    def __init__(
        self, session_factory: async_sessionmaker[AsyncSession] | None = None
    ) -> None:
        """Optionally bind the probe to the application's database."""
        self._session_factory = session_factory

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests."""
        factory = self._session_factory
        if factory is not None and not await self._database_ok(factory):
            resp.media = {"status": "unavailable"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return
        resp.media = {"status": "ready"}
        resp.status = HTTPStatus.OK

    @staticmethod
    async def _database_ok(session_factory: async_sessionmaker[AsyncSession]) -> bool:
        try:
            async with session_factory() as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            log_warning(logger, "Readiness check failed: %s", exc)
            return False
        return True
