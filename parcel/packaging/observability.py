"""Emit structured observability events for packaging runs.

This module defines event identifiers and a logger wrapper used by
``PackagingPipeline`` to report run-level decisions and per-report outcomes.

Usage
-----
>>> event_logger = PackagingEventLogger()
>>> event_logger.log_run_started(report_count=3)

"""

from __future__ import annotations

import enum
import typing as typ

from parcel.logging import get_logger, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from parcel.packaging.outcome import PackagingFailed

logger = get_logger(__name__)


class PackagingEventType(enum.StrEnum):
    """Structured log event types for packaging runs."""

    RUN_RECONCILED = "packaging.run.reconciled"
    RUN_REJECTED = "packaging.run.rejected"
    RUN_EMPTY = "packaging.run.empty"
    RUN_STARTED = "packaging.run.started"
    RUN_FAILED = "packaging.run.failed"
    REPORT_SKIPPED = "packaging.report.skipped"
    REPORT_PACKAGED = "packaging.report.packaged"
    REPORT_FAILED = "packaging.report.failed"
    REPORT_ORPHANED = "packaging.report.orphaned"
    REPORT_STATUS_LOST = "packaging.report.status_lost"


class PackagingEventLogger:
    """Emit structured packaging events via femtologging."""

    def log_reconciled(self, *, cleared: int) -> None:
        """Log how many stale PROCESSING markers were cleared at startup."""
        log_info(logger, "[%s] cleared=%d", PackagingEventType.RUN_RECONCILED, cleared)

    def log_run_rejected(self) -> None:
        """Log a trigger refused because a run is still active."""
        log_warning(
            logger,
            "[%s] reason=already_running",
            PackagingEventType.RUN_REJECTED,
        )

    def log_run_empty(self) -> None:
        """Log a trigger that found no eligible reports."""
        log_info(logger, "[%s] reports=0", PackagingEventType.RUN_EMPTY)

    def log_run_started(self, *, report_count: int) -> None:
        """Log the number of reports dispatched by a run."""
        log_info(
            logger, "[%s] reports=%d", PackagingEventType.RUN_STARTED, report_count
        )

    def log_run_failed(self, *, error: BaseException) -> None:
        """Log a run aborted during discovery.

        Parameters
        ----------
        error
            Exception raised by the guard or the eligibility query.

        """
        log_error(
            logger,
            "[%s] error_type=%s error_message=%s",
            PackagingEventType.RUN_FAILED,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_report_skipped(
        self, *, report_id: str, error: BaseException | None = None
    ) -> None:
        """Log a report that was not claimed by this run.

        Parameters
        ----------
        report_id
            Report that was left untouched.
        error
            Store error raised by the claim, or ``None`` when another run
            already holds the report.

        """
        if error is None:
            log_info(
                logger,
                "[%s] report_id=%s reason=already_claimed",
                PackagingEventType.REPORT_SKIPPED,
                report_id,
            )
            return
        log_warning(
            logger,
            "[%s] report_id=%s reason=claim_failed error_message=%s",
            PackagingEventType.REPORT_SKIPPED,
            report_id,
            str(error),
        )

    def log_report_packaged(
        self, *, report_id: str, location: str, duration: dt.timedelta
    ) -> None:
        """Log a report moved to PACKAGED."""
        log_info(
            logger,
            "[%s] report_id=%s location=%s duration_seconds=%.3f",
            PackagingEventType.REPORT_PACKAGED,
            report_id,
            location,
            duration.total_seconds(),
        )

    def log_report_failed(
        self, *, outcome: PackagingFailed, duration: dt.timedelta
    ) -> None:
        """Log a report moved to PACKAGING_FAILED.

        Parameters
        ----------
        outcome
            Failed outcome carrying the reason and error text.
        duration
            Elapsed time between claim and failure.

        """
        log_error(
            logger,
            "[%s] report_id=%s reason=%s duration_seconds=%.3f error_message=%s",
            PackagingEventType.REPORT_FAILED,
            outcome.report_id,
            outcome.reason,
            duration.total_seconds(),
            outcome.message,
        )

    def log_report_orphaned(
        self, *, report_id: str, location: str, error: BaseException
    ) -> None:
        """Log an archive left on disk because registration failed."""
        log_error(
            logger,
            "[%s] report_id=%s location=%s error_message=%s",
            PackagingEventType.REPORT_ORPHANED,
            report_id,
            location,
            str(error),
            exc_info=error,
        )

    def log_report_status_lost(
        self, *, report_id: str, error: BaseException
    ) -> None:
        """Log a terminal status write that failed; reconciliation recovers it."""
        log_error(
            logger,
            "[%s] report_id=%s error_message=%s",
            PackagingEventType.REPORT_STATUS_LOST,
            report_id,
            str(error),
            exc_info=error,
        )
