"""Persistence model for received webhook events."""

from __future__ import annotations

import datetime as dt  # noqa: TC003
import typing as typ

from sqlalchemy import JSON, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gitviz.common.storage import Base, UTCDateTime
from gitviz.common.time import utcnow


class WebhookEvent(Base):
    """One logical GitHub event, however many times it was delivered.

    ``event_key`` is derived from the event type and payload content, so a
    redelivery (new ``X-GitHub-Delivery`` UUID, same body) resolves to the
    existing row and only bumps the delivery bookkeeping columns.
    """

    __tablename__ = "webhook_events"
    __table_args__ = (
        UniqueConstraint("event_key", name="uq_webhook_events_event_key"),
        Index("ix_webhook_events_type_time", "event_type", "first_received_at"),
        Index("ix_webhook_events_repository", "repository_full_name"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    event_key: Mapped[str] = mapped_column(String(64))
    event_type: Mapped[str] = mapped_column(String(64))
    action: Mapped[str | None] = mapped_column(String(64), default=None)
    repository_full_name: Mapped[str | None] = mapped_column(
        String(255), default=None
    )
    delivery_id: Mapped[str | None] = mapped_column(String(64), default=None)
    delivery_count: Mapped[int] = mapped_column(Integer, default=1)
    payload: Mapped[dict[str, typ.Any]] = mapped_column(JSON)
    first_received_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )
    last_received_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow
    )
