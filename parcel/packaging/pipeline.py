"""Packaging pipeline: run guard, eligibility and per-report state machine.

``PackagingPipeline`` drives every eligible report through::

    (no status) --claim--> packaging --ok--> packaged
                                     \\--any error / wrong file count--> packaging_failed

A run is refused while any report is still ``packaging``. Each eligible
report gets its own task and error boundary, so one report's failure never
affects another. ``trigger()`` returns once the tasks are launched; the
returned :class:`PackagingRun` lets callers wait for the outcomes.

Usage
-----
>>> dependencies = PackagingPipelineDependencies(
...     store=MetadataStore(session_factory),
...     manifest_writer=ManifestWriter(config.file_root, config.routing),
...     archiver=ZipPackageArchiver(config.file_root),
... )
>>> pipeline = PackagingPipeline(dependencies, config=config)
>>> await pipeline.reconcile()
>>> run = await pipeline.trigger()
>>> outcomes = await run.wait()

"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import datetime as dt
import enum
import time
import typing as typ

from parcel.logging import get_logger, log_exception
from parcel.packaging.config import PackagingConfig
from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
from parcel.packaging.observability import PackagingEventLogger
from parcel.packaging.outcome import (
    FailureReason,
    PackagingFailed,
    PackagingOutcome,
    PackagingSucceeded,
    check_file_count,
    failure_from,
    transition_for,
)
from parcel.store.errors import StoreError
from parcel.store.storage import PackagingStatus

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from parcel.packaging.archiver import PackageArchiver
    from parcel.store.models import FileRecord, PackageArtifact, ReportRecord

logger = get_logger(__name__)

__all__ = [
    "PackagingPipeline",
    "PackagingPipelineDependencies",
    "PackagingRun",
    "PackagingStore",
    "RunStatus",
]


class PackagingStore(typ.Protocol):
    """Metadata store operations the pipeline relies on."""

    async def find_eligible_reports(self) -> list[ReportRecord]: ...

    async def find_files(self, report_id: str) -> list[FileRecord]: ...

    async def set_status(self, report_id: str, status: PackagingStatus) -> None: ...

    async def claim_report(self, report_id: str) -> bool: ...

    async def register_package(
        self, report_id: str, artifact: PackageArtifact
    ) -> None: ...

    async def any_report_in_status(self, status: PackagingStatus) -> bool: ...

    async def clear_status(self, status: PackagingStatus) -> int: ...


class ManifestStager(typ.Protocol):
    """Stages a manifest document and returns its path."""

    async def stage(
        self, report: ReportRecord, files: cabc.Sequence[FileRecord]
    ) -> Path: ...


@dc.dataclass(frozen=True, slots=True)
class PackagingPipelineDependencies:
    """Core collaborators for ``PackagingPipeline``.

    Attributes
    ----------
    store
        Metadata store gateway.
    manifest_writer
        Stages manifest documents for the archiver.
    archiver
        Builds the package archive.

    """

    store: PackagingStore
    manifest_writer: ManifestStager
    archiver: PackageArchiver


class RunStatus(enum.StrEnum):
    """Result of a trigger that passed the run guard."""

    ACCEPTED = "accepted"
    NOTHING_TO_DO = "nothing-to-do"


@dc.dataclass(frozen=True, slots=True)
class PackagingRun:
    """Handle on the reports dispatched by one trigger.

    Attributes
    ----------
    status
        Whether any report was dispatched.
    reports
        Eligible reports in dispatch (oldest-first) order.
    tasks
        One task per report, in the same order as ``reports``.

    """

    status: RunStatus
    reports: tuple[ReportRecord, ...] = ()
    tasks: tuple[asyncio.Task[PackagingOutcome | None], ...] = ()

    async def wait(self) -> list[PackagingOutcome]:
        """Wait for every report task and return the recorded outcomes.

        Reports skipped because they could not be claimed contribute no
        outcome.
        """
        results = await asyncio.gather(*self.tasks)
        return [result for result in results if result is not None]


class PackagingPipeline:
    """Orchestrates packaging runs over eligible reports."""

    def __init__(
        self,
        dependencies: PackagingPipelineDependencies,
        config: PackagingConfig | None = None,
        event_logger: PackagingEventLogger | None = None,
    ) -> None:
        """Configure the pipeline.

        Parameters
        ----------
        dependencies
            Store, manifest writer and archiver grouped into one object.
        config
            Optional packaging configuration; uses defaults if not provided.
        event_logger
            Optional structured event logger; a default one is created when
            omitted.

        """
        self._store = dependencies.store
        self._manifest_writer = dependencies.manifest_writer
        self._archiver = dependencies.archiver
        self._config = config or PackagingConfig()
        self._events = event_logger or PackagingEventLogger()
        self._tasks: set[asyncio.Task[PackagingOutcome | None]] = set()

    @property
    def in_flight(self) -> int:
        """Number of report tasks that have not finished yet."""
        return sum(1 for task in self._tasks if not task.done())

    async def reconcile(self) -> int:
        """Clear stale ``packaging`` markers left by an interrupted process.

        Must run once at startup, before any trigger is accepted.

        Returns
        -------
        int
            Number of reports returned to the untouched state.

        """
        cleared = await self._store.clear_status(PackagingStatus.PROCESSING)
        self._events.log_reconciled(cleared=cleared)
        return cleared

    async def trigger(self) -> PackagingRun:
        """Start a packaging run.

        Returns
        -------
        PackagingRun
            ``ACCEPTED`` with the launched tasks, or ``NOTHING_TO_DO``.

        Raises
        ------
        RunAlreadyActiveError
            If any report is currently ``packaging``. No report is touched.
        EligibilityFetchError
            If the store fails during the guard or the eligibility query.

        """
        reports = await self._discover()
        if not reports:
            self._events.log_run_empty()
            return PackagingRun(status=RunStatus.NOTHING_TO_DO)

        self._events.log_run_started(report_count=len(reports))
        tasks = tuple(self._spawn(report) for report in reports)
        return PackagingRun(
            status=RunStatus.ACCEPTED, reports=tuple(reports), tasks=tasks
        )

    async def run_to_completion(self) -> list[PackagingOutcome]:
        """Trigger a run and wait for all of its reports."""
        run = await self.trigger()
        return await run.wait()

    async def _discover(self) -> list[ReportRecord]:
        try:
            running = await self._store.any_report_in_status(
                PackagingStatus.PROCESSING
            )
            reports = [] if running else await self._store.find_eligible_reports()
        except StoreError as exc:
            self._events.log_run_failed(error=exc)
            raise EligibilityFetchError(str(exc)) from exc

        if running:
            self._events.log_run_rejected()
            raise RunAlreadyActiveError
        return reports

    def _spawn(self, report: ReportRecord) -> asyncio.Task[PackagingOutcome | None]:
        task = asyncio.create_task(
            self.package_report(report), name=f"package-report-{report.id}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def package_report(self, report: ReportRecord) -> PackagingOutcome | None:
        """Claim ``report`` and drive it to a terminal status.

        Returns
        -------
        PackagingOutcome | None
            The applied outcome, or ``None`` when the report could not be
            claimed and was left untouched.

        """
        try:
            claimed = await self._store.claim_report(report.id)
        except Exception as exc:  # noqa: BLE001 - unclaimed reports stay eligible
            self._events.log_report_skipped(report_id=report.id, error=exc)
            return None
        if not claimed:
            self._events.log_report_skipped(report_id=report.id)
            return None

        started_at = time.monotonic()
        outcome = await self.apply_outcome(await self.attempt(report))
        duration = dt.timedelta(seconds=time.monotonic() - started_at)
        if isinstance(outcome, PackagingSucceeded):
            self._events.log_report_packaged(
                report_id=report.id,
                location=outcome.package.location,
                duration=duration,
            )
        else:
            self._events.log_report_failed(outcome=outcome, duration=duration)
        return outcome

    async def attempt(self, report: ReportRecord) -> PackagingOutcome:
        """Build the package for a claimed report without touching its status.

        Every exception is converted into a ``PackagingFailed`` outcome.
        """
        try:
            files = await self._store.find_files(report.id)
            check_file_count(report.id, len(files), self._config.files_per_report)
            manifest_path = await self._manifest_writer.stage(report, files)
            artifact = await self._archiver.build(report, files, manifest_path)
        except Exception as exc:  # noqa: BLE001 - recorded as packaging_failed
            failure = failure_from(report.id, exc)
            if failure.reason is FailureReason.UNEXPECTED:
                log_exception(
                    logger, f"Unexpected error packaging report {report.id}", exc
                )
            return failure
        return PackagingSucceeded(report_id=report.id, package=artifact)

    async def apply_outcome(self, outcome: PackagingOutcome) -> PackagingOutcome:
        """Persist the status transition for ``outcome``.

        A successful outcome is registered together with the ``packaged``
        status. If registration fails the written archive is left in place
        and the report is marked ``packaging_failed``.

        Returns
        -------
        PackagingOutcome
            The outcome that was actually recorded.

        """
        if isinstance(outcome, PackagingSucceeded):
            try:
                await self._store.register_package(outcome.report_id, outcome.package)
            except Exception as exc:  # noqa: BLE001 - archive becomes an orphan
                self._events.log_report_orphaned(
                    report_id=outcome.report_id,
                    location=outcome.package.location,
                    error=exc,
                )
                failed = failure_from(outcome.report_id, exc)
                outcome = PackagingFailed(
                    report_id=failed.report_id,
                    reason=failed.reason,
                    message=failed.message,
                    orphaned_location=outcome.package.location,
                )
            else:
                return outcome

        await self._record_status(outcome)
        return outcome

    async def _record_status(self, outcome: PackagingOutcome) -> None:
        try:
            await self._store.set_status(outcome.report_id, transition_for(outcome))
        except Exception as exc:  # noqa: BLE001 - reconciliation clears the marker
            self._events.log_report_status_lost(report_id=outcome.report_id, error=exc)

    async def drain(self) -> None:
        """Wait until every in-flight report task has finished."""
        while pending := [task for task in self._tasks if not task.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel in-flight report tasks.

        Cancelled reports stay ``packaging`` until the next reconciliation.
        """
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def shutdown(self, grace_seconds: float) -> None:
        """Give in-flight reports ``grace_seconds`` to finish, then cancel."""
        pending = [task for task in self._tasks if not task.done()]
        if pending:
            await asyncio.wait(pending, timeout=grace_seconds)
        await self.aclose()
