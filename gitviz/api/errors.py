"""Falcon error handlers translating webhook errors into HTTP responses.

Usage
-----
Register every handler on the Falcon app::

    from gitviz.api.errors import register_error_handlers

    register_error_handlers(app)

"""

from __future__ import annotations

import typing as typ

import falcon

from gitviz.webhooks.errors import (
    InvalidPayloadError,
    PayloadTooLargeError,
    SignatureVerificationError,
    UnsupportedEventError,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import App, Request, Response

__all__ = [
    "handle_invalid_payload",
    "handle_payload_too_large",
    "handle_signature_verification",
    "handle_unsupported_event",
    "register_error_handlers",
]


async def handle_signature_verification(
    _req: Request,
    resp: Response,
    ex: SignatureVerificationError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``SignatureVerificationError`` to an HTTP 403 JSON response.

    The body names the failing header but never the expected digest.
    """
    resp.status = falcon.HTTP_403
    resp.media = {
        "title": "Invalid signature",
        "description": str(ex),
    }


async def handle_unsupported_event(
    _req: Request,
    resp: Response,
    ex: UnsupportedEventError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``UnsupportedEventError`` to an HTTP 501 JSON response."""
    resp.status = falcon.HTTP_501
    resp.media = {
        "title": "Event type not implemented",
        "description": str(ex),
    }


async def handle_invalid_payload(
    _req: Request,
    resp: Response,
    ex: InvalidPayloadError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``InvalidPayloadError`` to an HTTP 400 JSON response."""
    resp.status = falcon.HTTP_400
    resp.media = {
        "title": "Invalid payload",
        "description": str(ex),
    }


async def handle_payload_too_large(
    _req: Request,
    resp: Response,
    ex: PayloadTooLargeError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``PayloadTooLargeError`` to an HTTP 413 JSON response."""
    resp.status = falcon.HTTP_413
    resp.media = {
        "title": "Payload too large",
        "description": str(ex),
        "limit": ex.limit,
    }


def register_error_handlers(app: App) -> None:
    """Attach every webhook error handler to ``app``."""
    app.add_error_handler(SignatureVerificationError, handle_signature_verification)
    app.add_error_handler(UnsupportedEventError, handle_unsupported_event)
    app.add_error_handler(InvalidPayloadError, handle_invalid_payload)
    app.add_error_handler(PayloadTooLargeError, handle_payload_too_large)
