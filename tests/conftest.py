"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool

from gitviz.common.storage import create_storage_engine, init_storage
from gitviz.webhooks.config import WebhookConfig
from tests.helpers.github_webhooks import TEST_SECRET

if typ.TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def session_factory(
    tmp_path: Path,
) -> typ.Iterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory backed by a fresh SQLite database.

    Connections are not pooled, so the factory can be driven from
    ``asyncio.run`` calls, Falcon's test client and async tests alike.
    """
    engine = create_storage_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'gitviz_test.db'}", poolclass=NullPool
    )
    asyncio.run(init_storage(engine))

    yield async_sessionmaker(engine, expire_on_commit=False)

    asyncio.run(engine.dispose())


@pytest.fixture
def webhook_config() -> WebhookConfig:
    """Return webhook configuration using the shared test secret."""
    return WebhookConfig(secret=TEST_SECRET)
