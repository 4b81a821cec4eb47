"""Redelivery-safe recording of webhook events."""

from __future__ import annotations

import dataclasses as dc
import enum
import hashlib
import json
import typing as typ

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from gitviz.activity.handlers import get_event_handler
from gitviz.common.time import utcnow
from gitviz.events.storage import WebhookEvent
from gitviz.webhooks.errors import UnsupportedEventError

if typ.TYPE_CHECKING:
    import datetime as dt

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from gitviz.activity.handlers import EventHandler
    from gitviz.webhooks.events import GithubEventType

Payload: typ.TypeAlias = dict[str, typ.Any]


class EventPersistError(RuntimeError):
    """Raised when a conflicting event row vanishes before it can be reloaded."""

    def __init__(self) -> None:
        """Include a deterministic error message for logging."""
        super().__init__("expected existing webhook_event after unique conflict")


class DeliveryOutcome(enum.StrEnum):
    """Whether a delivery created a new event or updated an existing one."""

    CREATED = "created"
    UPDATED = "updated"


@dc.dataclass(frozen=True, slots=True)
class WebhookDelivery:
    """One verified delivery ready to be recorded."""

    event_type: GithubEventType
    payload: Payload
    delivery_id: str | None = None
    received_at: dt.datetime = dc.field(default_factory=utcnow)


@dc.dataclass(frozen=True, slots=True)
class DeliveryResult:
    """Identity of the stored event and what the delivery did to it."""

    event_id: int
    event_key: str
    outcome: DeliveryOutcome
    delivery_count: int


def _canonical_json(payload: Payload) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))


def make_event_key(event_type: GithubEventType | str, payload: Payload) -> str:
    """Derive the stable identity of a logical event.

    The key hashes the event type and the canonical JSON of the payload.
    Delivery identifiers are deliberately excluded: GitHub assigns a fresh
    UUID to every redelivery of the same event.
    """
    digest = hashlib.sha256(_canonical_json(payload).encode("utf-8")).hexdigest()
    material = f"{event_type}|{digest}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def _string_field(payload: Payload, *path: str) -> str | None:
    value: object = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value if isinstance(value, str) else None


class WebhookEventRecorder:
    """Store deliveries idempotently and fold them into activity state.

    A first delivery is recorded in a single transaction: the event row is
    inserted and the type-specific handler runs against the same session.
    If the handler fails nothing is kept. Redeliveries only update the
    delivery bookkeeping and never re-run the handler, so replaying an old
    event cannot rewind newer activity state.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Store the session factory used for each delivery."""
        self._session_factory = session_factory

    async def record(self, delivery: WebhookDelivery) -> DeliveryResult:
        """Persist ``delivery``, applying its handler on first receipt.

        Raises
        ------
        UnsupportedEventError
            If no handler is registered for the delivery's event type.
        InvalidPayloadError
            If the handler cannot decode the payload for its event type.

        """
        handler = get_event_handler(delivery.event_type)
        if handler is None:
            raise UnsupportedEventError(delivery.event_type.value)

        event_key = make_event_key(delivery.event_type, delivery.payload)
        async with self._session_factory() as session, session.begin():
            event, outcome = await self._upsert_event(session, delivery, event_key)
            if outcome is DeliveryOutcome.CREATED:
                await self._apply_handler(session, handler, event)
            result = DeliveryResult(
                event_id=event.id,
                event_key=event_key,
                outcome=outcome,
                delivery_count=event.delivery_count,
            )
        return result

    async def _upsert_event(
        self,
        session: AsyncSession,
        delivery: WebhookDelivery,
        event_key: str,
    ) -> tuple[WebhookEvent, DeliveryOutcome]:
        existing = await self._load_existing(session, event_key)
        if existing is not None:
            self._apply_redelivery(existing, delivery)
            return existing, DeliveryOutcome.UPDATED

        event = WebhookEvent(
            event_key=event_key,
            event_type=delivery.event_type.value,
            action=_string_field(delivery.payload, "action"),
            repository_full_name=_string_field(
                delivery.payload, "repository", "full_name"
            ),
            delivery_id=delivery.delivery_id,
            delivery_count=1,
            payload=delivery.payload,
            first_received_at=delivery.received_at,
            last_received_at=delivery.received_at,
        )
        try:
            async with session.begin_nested():
                session.add(event)
                await session.flush()
        except IntegrityError as exc:
            # A concurrent redelivery committed the same key first.
            existing = await self._load_existing(session, event_key)
            if existing is None:
                raise EventPersistError from exc
            self._apply_redelivery(existing, delivery)
            return existing, DeliveryOutcome.UPDATED

        return event, DeliveryOutcome.CREATED

    @staticmethod
    def _apply_redelivery(event: WebhookEvent, delivery: WebhookDelivery) -> None:
        event.delivery_id = delivery.delivery_id
        event.delivery_count += 1
        event.last_received_at = delivery.received_at

    @staticmethod
    async def _apply_handler(
        session: AsyncSession, handler: EventHandler, event: WebhookEvent
    ) -> None:
        await handler(session, event)
        await session.flush()

    @staticmethod
    async def _load_existing(
        session: AsyncSession, event_key: str
    ) -> WebhookEvent | None:
        return await session.scalar(
            select(WebhookEvent).where(WebhookEvent.event_key == event_key)
        )
