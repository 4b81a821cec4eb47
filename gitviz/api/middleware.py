"""ASGI lifespan middleware managing the database engine.

On startup the middleware optionally creates the Gitviz tables; on
shutdown it disposes the engine so pooled connections are closed before the
worker exits.

Usage
-----
Register the middleware when creating the Falcon app::

    from gitviz.api.middleware import StorageLifecycle

    app = falcon.asgi.App(middleware=[StorageLifecycle(engine)])

"""

from __future__ import annotations

import typing as typ

from sqlalchemy.exc import SQLAlchemyError

from gitviz.common.storage import init_storage
from gitviz.logging import get_logger, log_error, log_info

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

__all__ = ["StorageLifecycle"]

logger = get_logger(__name__)


class StorageLifecycle:
    """Falcon lifespan middleware bound to one ``AsyncEngine``.

    Parameters
    ----------
    engine
        Engine backing the application's session factory.
    create_schema
        Create missing tables during ASGI startup.

    """

    def __init__(self, engine: AsyncEngine, *, create_schema: bool = True) -> None:
        """Store the engine and schema bootstrap preference."""
        self._engine = engine
        self._create_schema = create_schema

    async def process_startup(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Create missing tables before the first request is served."""
        if not self._create_schema:
            return
        try:
            await init_storage(self._engine)
        except SQLAlchemyError:
            log_error(logger, "Schema creation failed during startup", exc_info=True)
            raise
        log_info(logger, "Storage ready on %s", self._engine.url.render_as_string())

    async def process_shutdown(
        self, _scope: dict[str, typ.Any], _event: dict[str, typ.Any]
    ) -> None:
        """Dispose the engine and close pooled connections."""
        await self._engine.dispose()
