"""Application factory for the Gitviz Falcon ASGI application.

``create_app()`` always registers the health probes. When the webhook
dependencies are supplied it also registers ``POST /event``, and when an
engine is supplied it installs the storage lifespan middleware.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create the full webhook receiver::

    from gitviz.api.app import AppDependencies, create_app

    deps = AppDependencies(
        session_factory=session_factory,
        webhook_config=WebhookConfig.from_env(),
        engine=engine,
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from gitviz.api.errors import register_error_handlers
from gitviz.api.health.resources import HealthResource, ReadyResource

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

    from gitviz.webhooks.config import WebhookConfig

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    Attributes
    ----------
    session_factory
        Async session factory used to record deliveries.
    webhook_config
        Shared secret and intake limits for ``POST /event``.
    engine
        Engine behind ``session_factory``. When set, the app creates the
        schema on startup (if ``create_schema``) and disposes the engine on
        shutdown.
    create_schema
        Whether to create missing tables during ASGI startup.

    """

    session_factory: async_sessionmaker[AsyncSession] | None = None
    webhook_config: WebhookConfig | None = None
    engine: AsyncEngine | None = None
    create_schema: bool = True


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or incomplete only
        ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    deps = dependencies or AppDependencies()
    middleware: list[object] = []

    if deps.engine is not None:
        from gitviz.api.middleware import StorageLifecycle

        middleware.append(
            StorageLifecycle(deps.engine, create_schema=deps.create_schema)
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(deps.session_factory))

    if deps.session_factory is not None and deps.webhook_config is not None:
        from gitviz.api.events.resources import (
            EventResource,
            EventResourceDependencies,
        )
        from gitviz.events.services import WebhookEventRecorder

        app.add_route(
            "/event",
            EventResource(
                EventResourceDependencies(
                    recorder=WebhookEventRecorder(deps.session_factory),
                    config=deps.webhook_config,
                )
            ),
        )

    register_error_handlers(app)
    return app
