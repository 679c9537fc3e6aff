"""Shared fixtures for unit and feature tests."""

from __future__ import annotations

import typing as typ

import dramatiq
import pytest
import pytest_asyncio
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from parcel.store.storage import init_storage

if typ.TYPE_CHECKING:
    from pathlib import Path

# Bind an in-memory broker before any module declares a Dramatiq actor.
dramatiq.set_broker(StubBroker())


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """Return a SQLite URL in the test's temporary directory."""
    return f"sqlite+aiosqlite:///{tmp_path / 'parcel_test.db'}"


@pytest.fixture
def file_root(tmp_path: Path) -> Path:
    """Return an empty directory standing in for the shared file root."""
    root = tmp_path / "files"
    root.mkdir()
    return root


@pytest_asyncio.fixture
async def session_factory(
    database_url: str,
) -> typ.AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Yield a session factory over a freshly initialised SQLite database."""
    engine = create_async_engine(database_url)
    try:
        await init_storage(engine)
        yield async_sessionmaker(engine, expire_on_commit=False)
    finally:
        await engine.dispose()
