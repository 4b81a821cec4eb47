"""Webhook intake resource for ``POST /event``.

Deliveries are checked in a fixed order: body size, signature, event type,
payload decoding. Only a delivery that passes every check reaches the
recorder, and every accepted delivery answers ``201 Created`` whether it
inserted a new event or updated a redelivered one.

Usage
-----
Register the resource on the Falcon app::

    app.add_route(
        "/event",
        EventResource(EventResourceDependencies(recorder=recorder, config=config)),
    )

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon
import msgspec

from gitviz.events.services import WebhookDelivery
from gitviz.webhooks.errors import (
    InvalidPayloadError,
    PayloadTooLargeError,
    SignatureVerificationError,
    UnsupportedEventError,
)
from gitviz.webhooks.events import GithubEventType
from gitviz.webhooks.observability import WebhookEventLogger
from gitviz.webhooks.signature import (
    SIGNATURE_256_HEADER,
    SIGNATURE_HEADER,
    require_valid_signature,
)

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from gitviz.events.services import DeliveryResult, WebhookEventRecorder
    from gitviz.webhooks.config import WebhookConfig

__all__ = [
    "DELIVERY_HEADER",
    "EVENT_HEADER",
    "EventResource",
    "EventResourceDependencies",
]

EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"


@dc.dataclass(frozen=True, slots=True)
class EventResourceDependencies:
    """Collaborators for ``EventResource``.

    Attributes
    ----------
    recorder
        Service that stores deliveries and applies event handlers.
    config
        Webhook secret and body size limit.
    event_logger
        Structured logger for delivery outcomes.

    """

    recorder: WebhookEventRecorder
    config: WebhookConfig
    event_logger: WebhookEventLogger = dc.field(default_factory=WebhookEventLogger)


def _serialize_result(
    result: DeliveryResult, event_type: GithubEventType, delivery_id: str | None
) -> dict[str, typ.Any]:
    return {
        "event_id": result.event_id,
        "event_key": result.event_key,
        "event_type": event_type.value,
        "delivery_id": delivery_id,
        "outcome": result.outcome.value,
    }


class EventResource:
    """Resource accepting signed GitHub webhook deliveries."""

    def __init__(self, dependencies: EventResourceDependencies) -> None:
        """Configure the resource with its dependencies."""
        self._recorder = dependencies.recorder
        self._config = dependencies.config
        self._event_logger = dependencies.event_logger

    async def on_post(self, req: Request, resp: Response) -> None:
        """Handle a webhook delivery.

        Parameters
        ----------
        req
            Falcon request carrying the GitHub headers and raw JSON body.
        resp
            Falcon response populated with the stored event identity.

        """
        delivery_id = req.get_header(DELIVERY_HEADER)
        body = await self._read_body(req)
        self._verify(req, body, delivery_id)

        event_name = req.get_header(EVENT_HEADER)
        event_type = GithubEventType.parse(event_name)
        if not event_type.is_supported:
            self._event_logger.log_unsupported(
                delivery_id=delivery_id, event_name=event_name
            )
            raise UnsupportedEventError(event_name)

        payload = self._decode(body, event_type, delivery_id)
        delivery = WebhookDelivery(
            event_type=event_type, payload=payload, delivery_id=delivery_id
        )
        try:
            result = await self._recorder.record(delivery)
        except InvalidPayloadError as exc:
            self._event_logger.log_invalid(
                delivery_id=delivery_id, event_type=event_type, reason=str(exc)
            )
            raise

        self._event_logger.log_recorded(
            delivery_id=delivery_id,
            event_type=event_type,
            event_id=result.event_id,
            outcome=result.outcome,
        )
        resp.media = _serialize_result(result, event_type, delivery_id)
        resp.status = falcon.HTTP_201

    async def _read_body(self, req: Request) -> bytes:
        """Read the raw body, refusing anything over the configured limit."""
        limit = self._config.max_payload_bytes
        declared = req.content_length
        if declared is not None and declared > limit:
            raise PayloadTooLargeError(declared, limit)
        body = await req.stream.read(limit + 1)
        if len(body) > limit:
            raise PayloadTooLargeError(len(body), limit)
        return body

    def _verify(self, req: Request, body: bytes, delivery_id: str | None) -> None:
        try:
            require_valid_signature(
                self._config.secret,
                body,
                req.get_header(SIGNATURE_HEADER),
                req.get_header(SIGNATURE_256_HEADER),
            )
        except SignatureVerificationError as exc:
            self._event_logger.log_rejected(delivery_id=delivery_id, reason=str(exc))
            raise

    def _decode(
        self, body: bytes, event_type: GithubEventType, delivery_id: str | None
    ) -> dict[str, typ.Any]:
        try:
            payload = msgspec.json.decode(body)
        except msgspec.DecodeError as exc:
            self._event_logger.log_invalid(
                delivery_id=delivery_id, event_type=event_type, reason=str(exc)
            )
            raise InvalidPayloadError.not_json(str(exc)) from exc
        if not isinstance(payload, dict):
            error = InvalidPayloadError.not_object(type(payload).__name__)
            self._event_logger.log_invalid(
                delivery_id=delivery_id, event_type=event_type, reason=str(error)
            )
            raise error
        return payload
