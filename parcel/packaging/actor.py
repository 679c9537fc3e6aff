"""Dramatiq actor for queue-driven packaging runs.

Deployments that schedule work through a broker enqueue
``package_reports_job`` instead of (or alongside) the in-process timer. Each
invocation runs one packaging run to completion. The first invocation per
database in a worker process reconciles stale ``packaging`` markers before
triggering.

Usage
-----
>>> package_reports_job.send(database_url="postgresql+asyncpg://...")

"""

from __future__ import annotations

import asyncio
import os
import sys
import threading
import typing as typ

import dramatiq
import msgspec
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from parcel.logging import get_logger, log_info
from parcel.packaging.config import PackagingConfig
from parcel.packaging.errors import RunAlreadyActiveError
from parcel.packaging.factory import build_packaging_pipeline
from parcel.store.gateway import MetadataStore

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from sqlalchemy.ext.asyncio import AsyncEngine

    from parcel.packaging.outcome import PackagingOutcome
    from parcel.packaging.pipeline import PackagingPipeline

logger = get_logger(__name__)

_ENGINE_CACHE: dict[str, AsyncEngine] = {}
_PIPELINE_CACHE: dict[str, PackagingPipeline] = {}
_RECONCILED: set[str] = set()
_CACHE_LOCK = threading.Lock()

STUB_BROKER_ENV = "PARCEL_ALLOW_STUB_BROKER"
_PYTEST_ENV_MARKERS = ("PYTEST_CURRENT_TEST", "PYTEST_XDIST_WORKER")
_broker_ready = False


def stub_broker_allowed(
    environ: cabc.Mapping[str, str], modules: cabc.Container[str]
) -> bool:
    """Return whether the in-memory broker may stand in for RabbitMQ.

    Workers running under pytest always may. Elsewhere the operator opts in
    with ``PARCEL_ALLOW_STUB_BROKER``.
    """
    if environ.get(STUB_BROKER_ENV, "").lower() in {"1", "true", "yes"}:
        return True
    return "pytest" in modules or any(key in environ for key in _PYTEST_ENV_MARKERS)


def _require_broker() -> None:
    """Make sure the job has a broker before it does any work.

    Raises
    ------
    RuntimeError
        If no broker is set and the stub broker is not allowed.

    """
    global _broker_ready  # noqa: PLW0603 - set once per worker process

    with _CACHE_LOCK:
        if _broker_ready:
            return
        try:
            broker = dramatiq.get_broker()
        except (ImportError, LookupError):
            broker = None
        if broker is None:
            if not stub_broker_allowed(os.environ, sys.modules):
                msg = (
                    "The packaging job has no Dramatiq broker; configure one or "
                    f"set {STUB_BROKER_ENV}=1"
                )
                raise RuntimeError(msg)
            dramatiq.set_broker(StubBroker())
            log_info(logger, "Packaging job is using the in-memory stub broker")
        _broker_ready = True


def _get_or_create_pipeline(database_url: str) -> tuple[PackagingPipeline, bool]:
    """Return the cached pipeline and whether it still needs reconciliation.

    Thread-safe: Dramatiq runs actors on several worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _PIPELINE_CACHE:
            engine = create_async_engine(database_url)
            _ENGINE_CACHE[database_url] = engine
            store = MetadataStore(async_sessionmaker(engine, expire_on_commit=False))
            _PIPELINE_CACHE[database_url] = build_packaging_pipeline(
                store, PackagingConfig.from_env()
            )
        needs_reconcile = database_url not in _RECONCILED
        _RECONCILED.add(database_url)
        return _PIPELINE_CACHE[database_url], needs_reconcile


async def _package_reports_async(
    pipeline: PackagingPipeline,
    *,
    reconcile: bool = False,
) -> list[PackagingOutcome] | None:
    """Run one packaging run to completion.

    Parameters
    ----------
    pipeline
        Pipeline to drive.
    reconcile
        Clear stale ``packaging`` markers before triggering.

    Returns
    -------
    list[PackagingOutcome] | None
        Outcomes of the run, or ``None`` when another run is still active.

    """
    if reconcile:
        await pipeline.reconcile()
    try:
        return await pipeline.run_to_completion()
    except RunAlreadyActiveError:
        log_info(logger, "Packaging job skipped: a run is already in progress")
        return None


@dramatiq.actor
def package_reports_job(database_url: str) -> list[dict[str, typ.Any]] | None:
    """Dramatiq actor packaging every eligible report.

    Parameters
    ----------
    database_url
        SQLAlchemy URL of the metadata store.

    Returns
    -------
    list[dict[str, Any]] | None
        Serialised outcomes, or ``None`` when the run guard refused the job.

    Raises
    ------
    EligibilityFetchError
        If the store is unreachable during discovery; Dramatiq retries the
        message.

    """
    _require_broker()
    pipeline, needs_reconcile = _get_or_create_pipeline(database_url)
    outcomes = asyncio.run(
        _package_reports_async(pipeline, reconcile=needs_reconcile)
    )
    if outcomes is None:
        return None
    return typ.cast("list[dict[str, typ.Any]]", msgspec.to_builtins(outcomes))
