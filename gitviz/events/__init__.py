"""Stored webhook events and the recorder that writes them."""

from __future__ import annotations

from .services import (
    DeliveryOutcome,
    DeliveryResult,
    EventPersistError,
    WebhookDelivery,
    WebhookEventRecorder,
    make_event_key,
)
from .storage import WebhookEvent

__all__ = [
    "DeliveryOutcome",
    "DeliveryResult",
    "EventPersistError",
    "WebhookDelivery",
    "WebhookEvent",
    "WebhookEventRecorder",
    "make_event_key",
]
