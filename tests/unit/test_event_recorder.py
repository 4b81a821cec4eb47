"""Unit tests for WebhookEventRecorder."""
# ruff: noqa: D103

from __future__ import annotations

import asyncio
import datetime as dt
import typing as typ
from unittest import mock

import pytest
from sqlalchemy import func, select

from gitviz.activity import Commit, GitRef
from gitviz.events import (
    DeliveryOutcome,
    EventPersistError,
    WebhookDelivery,
    WebhookEvent,
    WebhookEventRecorder,
    make_event_key,
)
from gitviz.webhooks import GithubEventType, InvalidPayloadError, UnsupportedEventError
from tests.helpers.github_webhooks import load_github_fixture

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


async def _count(
    session_factory: async_sessionmaker[AsyncSession], model: type[object]
) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(model)) or 0


def test_first_delivery_creates_event(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("push_add_file")
    delivery = WebhookDelivery(
        event_type=GithubEventType.PUSH, payload=payload, delivery_id="d-1"
    )

    result = asyncio.run(recorder.record(delivery))

    assert result.outcome is DeliveryOutcome.CREATED
    assert result.delivery_count == 1
    assert result.event_key == make_event_key(GithubEventType.PUSH, payload)

    async def _load() -> WebhookEvent | None:
        async with session_factory() as session:
            return await session.get(WebhookEvent, result.event_id)

    event = asyncio.run(_load())
    assert event is not None
    assert event.event_type == "push"
    assert event.repository_full_name == "baxterthehacker/public-repo"
    assert event.delivery_id == "d-1"
    assert event.payload == payload
    assert event.first_received_at == event.last_received_at


def test_redelivery_updates_existing_event(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("push_add_file")
    first_at = dt.datetime(2024, 1, 1, tzinfo=dt.UTC)
    later_at = first_at + dt.timedelta(minutes=5)

    first = asyncio.run(
        recorder.record(
            WebhookDelivery(
                event_type=GithubEventType.PUSH,
                payload=payload,
                delivery_id="d-1",
                received_at=first_at,
            )
        )
    )
    second = asyncio.run(
        recorder.record(
            WebhookDelivery(
                event_type=GithubEventType.PUSH,
                payload=load_github_fixture("push_add_file"),
                delivery_id="d-2",
                received_at=later_at,
            )
        )
    )

    assert second.outcome is DeliveryOutcome.UPDATED
    assert second.event_id == first.event_id
    assert second.delivery_count == 2
    assert asyncio.run(_count(session_factory, WebhookEvent)) == 1
    assert asyncio.run(_count(session_factory, Commit)) == 1

    async def _load() -> WebhookEvent | None:
        async with session_factory() as session:
            return await session.get(WebhookEvent, first.event_id)

    event = asyncio.run(_load())
    assert event is not None
    assert event.delivery_id == "d-2"
    assert event.first_received_at == first_at
    assert event.last_received_at == later_at


def test_distinct_payloads_create_distinct_events(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    for name in ("push_add_file", "push_modify_file", "push_remove_file"):
        result = asyncio.run(
            recorder.record(
                WebhookDelivery(
                    event_type=GithubEventType.PUSH,
                    payload=load_github_fixture(name),
                )
            )
        )
        assert result.outcome is DeliveryOutcome.CREATED

    assert asyncio.run(_count(session_factory, WebhookEvent)) == 3


def test_unsupported_event_type_is_refused(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    delivery = WebhookDelivery(event_type=GithubEventType.UNSUPPORTED, payload={})

    with pytest.raises(UnsupportedEventError):
        asyncio.run(recorder.record(delivery))

    assert asyncio.run(_count(session_factory, WebhookEvent)) == 0


def test_invalid_payload_rolls_back_event_row(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("push_add_file")
    del payload["ref"]

    with pytest.raises(InvalidPayloadError, match="push payload is invalid"):
        asyncio.run(
            recorder.record(
                WebhookDelivery(event_type=GithubEventType.PUSH, payload=payload)
            )
        )

    assert asyncio.run(_count(session_factory, WebhookEvent)) == 0
    assert asyncio.run(_count(session_factory, GitRef)) == 0


@pytest.mark.asyncio
async def test_repeated_redeliveries_count_each_delivery(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("ping")

    results = [
        await recorder.record(
            WebhookDelivery(
                event_type=GithubEventType.PING,
                payload=payload,
                delivery_id=f"d-{index}",
            )
        )
        for index in range(3)
    ]

    assert [r.outcome for r in results] == [
        DeliveryOutcome.CREATED,
        DeliveryOutcome.UPDATED,
        DeliveryOutcome.UPDATED,
    ]
    assert {r.event_id for r in results} == {results[0].event_id}
    assert results[-1].delivery_count == 3
    assert await _count(session_factory, WebhookEvent) == 1


def test_redelivery_of_old_push_keeps_newer_branch_head(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    for fixture in ("push_add_file", "push_modify_file", "push_add_file"):
        asyncio.run(
            recorder.record(
                WebhookDelivery(
                    event_type=GithubEventType.PUSH,
                    payload=load_github_fixture(fixture),
                )
            )
        )

    async def _load() -> GitRef | None:
        async with session_factory() as session:
            return await session.scalar(select(GitRef))

    branch = asyncio.run(_load())
    assert branch is not None
    assert branch.head_sha == "1b7a3c2e9f4d5a6b8c0e1f2a3b4c5d6e7f8a9b0c"
    assert asyncio.run(_count(session_factory, WebhookEvent)) == 2


def test_redelivery_does_not_rerun_handler(
    session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("ping")
    asyncio.run(
        recorder.record(
            WebhookDelivery(event_type=GithubEventType.PING, payload=payload)
        )
    )

    handler = mock.AsyncMock()
    monkeypatch.setattr(
        "gitviz.events.services.get_event_handler", lambda _event_type: handler
    )
    result = asyncio.run(
        recorder.record(
            WebhookDelivery(event_type=GithubEventType.PING, payload=payload)
        )
    )

    assert result.outcome is DeliveryOutcome.UPDATED
    handler.assert_not_awaited()


def _miss_lookups(monkeypatch: pytest.MonkeyPatch, misses: int) -> None:
    """Make the first ``misses`` existing-row lookups report no row."""
    original = WebhookEventRecorder._load_existing  # noqa: SLF001
    remaining = misses

    async def _lookup(session: AsyncSession, event_key: str) -> WebhookEvent | None:
        nonlocal remaining
        if remaining > 0:
            remaining -= 1
            return None
        return await original(session, event_key)

    monkeypatch.setattr(WebhookEventRecorder, "_load_existing", staticmethod(_lookup))


def test_unique_conflict_falls_back_to_update(
    session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("push_no_commits")
    first = asyncio.run(
        recorder.record(
            WebhookDelivery(
                event_type=GithubEventType.PUSH, payload=payload, delivery_id="d-1"
            )
        )
    )

    # The lookup misses the committed row, as it would for a concurrent
    # delivery that committed between lookup and insert.
    _miss_lookups(monkeypatch, misses=1)
    second = asyncio.run(
        recorder.record(
            WebhookDelivery(
                event_type=GithubEventType.PUSH, payload=payload, delivery_id="d-2"
            )
        )
    )

    assert second.outcome is DeliveryOutcome.UPDATED
    assert second.event_id == first.event_id
    assert second.delivery_count == 2
    assert asyncio.run(_count(session_factory, WebhookEvent)) == 1


def test_unique_conflict_without_existing_row_raises(
    session_factory: async_sessionmaker[AsyncSession],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    recorder = WebhookEventRecorder(session_factory)
    payload = load_github_fixture("push_no_commits")
    asyncio.run(
        recorder.record(
            WebhookDelivery(event_type=GithubEventType.PUSH, payload=payload)
        )
    )

    _miss_lookups(monkeypatch, misses=2)
    with pytest.raises(EventPersistError):
        asyncio.run(
            recorder.record(
                WebhookDelivery(event_type=GithubEventType.PUSH, payload=payload)
            )
        )

    assert asyncio.run(_count(session_factory, WebhookEvent)) == 1
