"""Structured log events for webhook delivery handling.

Every delivery produces exactly one of the events below, emitted through
femtologging as ``[event] key=value`` lines that log aggregators can parse.

Usage
-----
>>> event_logger = WebhookEventLogger()
>>> event_logger.log_unsupported(delivery_id="72d3162e", event_name="gollum")

"""

from __future__ import annotations

import enum

from gitviz.logging import get_logger, log_info, log_warning

logger = get_logger(__name__)


class WebhookEventType(enum.StrEnum):
    """Structured log event types for webhook deliveries."""

    DELIVERY_RECORDED = "webhook.delivery.recorded"
    DELIVERY_REJECTED = "webhook.delivery.rejected"
    DELIVERY_UNSUPPORTED = "webhook.delivery.unsupported"
    DELIVERY_INVALID = "webhook.delivery.invalid"


class WebhookEventLogger:
    """Emit structured delivery events via femtologging."""

    def log_recorded(
        self,
        *,
        delivery_id: str | None,
        event_type: str,
        event_id: int,
        outcome: str,
    ) -> None:
        """Log a delivery that was stored and processed."""
        log_info(
            logger,
            "[%s] delivery_id=%s event_type=%s event_id=%d outcome=%s",
            WebhookEventType.DELIVERY_RECORDED,
            delivery_id,
            event_type,
            event_id,
            outcome,
        )

    def log_rejected(self, *, delivery_id: str | None, reason: str) -> None:
        """Log a delivery refused for failing signature verification."""
        log_warning(
            logger,
            "[%s] delivery_id=%s reason=%s",
            WebhookEventType.DELIVERY_REJECTED,
            delivery_id,
            reason,
        )

    def log_unsupported(
        self, *, delivery_id: str | None, event_name: str | None
    ) -> None:
        """Log a delivery whose event type has no handler."""
        log_info(
            logger,
            "[%s] delivery_id=%s event_name=%r",
            WebhookEventType.DELIVERY_UNSUPPORTED,
            delivery_id,
            event_name,
        )

    def log_invalid(
        self,
        *,
        delivery_id: str | None,
        event_type: str,
        reason: str,
    ) -> None:
        """Log a delivery whose body could not be decoded."""
        log_warning(
            logger,
            "[%s] delivery_id=%s event_type=%s reason=%s",
            WebhookEventType.DELIVERY_INVALID,
            delivery_id,
            event_type,
            reason,
        )
