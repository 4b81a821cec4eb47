"""Gitviz runtime entrypoint.

This module exposes the ASGI application factory used by Granian and a
``main()`` that starts the server. Application construction is delegated
to :func:`gitviz.api.app.create_app`.

When ``GITVIZ_DATABASE_URL`` is set the runtime builds the session factory
and webhook configuration so ``POST /event`` is served; otherwise only the
health probes are available.

Configuration is driven by environment variables:

- ``GITVIZ_HOST``: Bind address (default ``0.0.0.0``)
- ``GITVIZ_PORT``: Listen port (default ``8080``)
- ``GITVIZ_LOG_LEVEL``: Log level (default ``INFO``)
- ``GITVIZ_DATABASE_URL``: SQLAlchemy async URL (optional)
- ``GITVIZ_CREATE_SCHEMA``: Create tables on startup (default ``true``)
- ``X_HUB_SECRET``: Webhook secret (required with a database URL)
- ``GITVIZ_MAX_PAYLOAD_BYTES``: Body size limit (default 25 MiB)

Run the service directly with ``python -m gitviz.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from gitviz.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535
_FALSE_VALUES = frozenset({"0", "false", "no", "off"})


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid GITVIZ_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw not in _FALSE_VALUES


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    Raises
    ------
    WebhookConfigError
        If a database URL is configured without a webhook secret.

    """
    from gitviz.api.app import create_app as _create_api_app

    database_url = os.environ.get("GITVIZ_DATABASE_URL")
    if database_url is None:
        log_warning(logger, "GITVIZ_DATABASE_URL unset; serving health probes only")
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker

    from gitviz.api.app import AppDependencies
    from gitviz.common.storage import create_storage_engine
    from gitviz.webhooks.config import WebhookConfig

    webhook_config = WebhookConfig.from_env()
    engine = create_storage_engine(database_url)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)

    deps = AppDependencies(
        session_factory=session_factory,
        webhook_config=webhook_config,
        engine=engine,
        create_schema=_env_flag("GITVIZ_CREATE_SCHEMA", default=True),
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the Gitviz runtime server using Granian.

    Reads ``GITVIZ_HOST``, ``GITVIZ_PORT`` and ``GITVIZ_LOG_LEVEL`` from the
    environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("GITVIZ_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("GITVIZ_PORT", "8080"))
    log_level_str = os.environ.get("GITVIZ_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid GITVIZ_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Gitviz on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "gitviz.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
