"""Gitviz HTTP API layer.

This package provides the Falcon ASGI application serving the webhook
intake endpoint and the health probes.

Usage
-----
Create the application::

    from gitviz.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # webhook intake enabled

"""

from gitviz.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
