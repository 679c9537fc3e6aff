"""Unit tests for the one-shot packaging command."""

from __future__ import annotations

import json
import typing as typ

import pytest

from parcel.packaging.cli import (
    EXIT_ALREADY_RUNNING,
    EXIT_DISCOVERY_FAILED,
    EXIT_OK,
    main,
)
from parcel.store.storage import PackagingStatus
from tests.helpers.reports import (
    SeedReport,
    fetch_status,
    init_database,
    run_in_database,
    seed_report,
    two_files,
)

if typ.TYPE_CHECKING:
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


@pytest.fixture
def initialised_url(database_url: str) -> str:
    """Return the URL of a database with the schema in place."""
    init_database(database_url)
    return database_url


@pytest.fixture(autouse=True)
def share(monkeypatch: pytest.MonkeyPatch, file_root: Path) -> Path:
    """Point the packaging file root at the temporary share."""
    monkeypatch.setenv("PARCEL_FILE_ROOT", str(file_root))
    monkeypatch.delenv("PARCEL_FILES_PER_REPORT", raising=False)
    return file_root


def test_packages_and_prints_outcomes(
    initialised_url: str, file_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A run prints one JSON outcome per report and exits 0."""

    async def _seed(factory: async_sessionmaker[AsyncSession]) -> str:
        return await seed_report(
            factory, file_root, SeedReport(uri="urn:a", files=two_files())
        )

    report_id = run_in_database(initialised_url, _seed)

    assert main(["--database-url", initialised_url]) == EXIT_OK

    [outcome] = json.loads(capsys.readouterr().out)
    assert outcome["type"] == "packaged"
    assert outcome["report_id"] == report_id
    assert outcome["package"]["location"].startswith(f"share://{report_id}-")


def test_already_running_exits_2(
    initialised_url: str, file_root: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    """A stale marker blocks the run unless reconciliation is requested."""

    async def _seed(factory: async_sessionmaker[AsyncSession]) -> str:
        return await seed_report(
            factory,
            file_root,
            SeedReport(
                uri="urn:a",
                files=two_files(),
                packaging_status=PackagingStatus.PROCESSING,
            ),
        )

    report_id = run_in_database(initialised_url, _seed)

    assert main(["--database-url", initialised_url]) == EXIT_ALREADY_RUNNING
    assert "already in progress" in capsys.readouterr().err

    assert main(["--database-url", initialised_url, "--reconcile"]) == EXIT_OK

    async def _status(factory: async_sessionmaker[AsyncSession]) -> object:
        return await fetch_status(factory, report_id)

    assert run_in_database(initialised_url, _status) is PackagingStatus.PACKAGED


def test_missing_schema_is_discovery_failure(
    database_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    """An unusable store exits 1."""
    assert main(["--database-url", database_url]) == EXIT_DISCOVERY_FAILED
    assert "packaging failed" in capsys.readouterr().err


def test_init_schema_creates_tables(
    database_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    """--init-schema makes a fresh database usable."""
    assert main(["--database-url", database_url, "--init-schema"]) == EXIT_OK
    assert json.loads(capsys.readouterr().out) == []


def test_database_url_is_required(monkeypatch: pytest.MonkeyPatch) -> None:
    """Without a URL the parser exits with usage."""
    monkeypatch.delenv("PARCEL_DATABASE_URL", raising=False)

    with pytest.raises(SystemExit):
        main([])
