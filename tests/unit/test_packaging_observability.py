"""Unit tests for packaging observability logging."""

from __future__ import annotations

import datetime as dt

import pytest

from parcel.packaging.observability import PackagingEventLogger, PackagingEventType
from parcel.packaging.outcome import FailureReason, PackagingFailed
from tests.helpers.femtologging_capture import capture_femto_logs

_LOGGER = "parcel.packaging.observability"


class TestPackagingEventLogger:
    """Tests for ``PackagingEventLogger`` structured log events."""

    @pytest.fixture
    def events(self) -> PackagingEventLogger:
        """Return a fresh packaging event logger."""
        return PackagingEventLogger()

    def test_run_started_emits_info(self, events: PackagingEventLogger) -> None:
        """Run start carries the dispatched report count."""
        with capture_femto_logs(_LOGGER) as capture:
            events.log_run_started(report_count=3)
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "INFO"
        assert PackagingEventType.RUN_STARTED in record.message
        assert "reports=3" in record.message

    def test_run_rejected_emits_warning(self, events: PackagingEventLogger) -> None:
        """A refused trigger is logged as a warning."""
        with capture_femto_logs(_LOGGER) as capture:
            events.log_run_rejected()
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "WARN"
        assert "reason=already_running" in record.message

    def test_report_packaged_includes_location(
        self, events: PackagingEventLogger
    ) -> None:
        """Success events carry the archive location and duration."""
        with capture_femto_logs(_LOGGER) as capture:
            events.log_report_packaged(
                report_id="r-1",
                location="share://r-1-p.zip",
                duration=dt.timedelta(milliseconds=1500),
            )
            capture.wait_for_count(1)

        message = capture.records[0].message
        assert PackagingEventType.REPORT_PACKAGED in message
        assert "location=share://r-1-p.zip" in message
        assert "duration_seconds=1.500" in message

    def test_report_failed_emits_error(self, events: PackagingEventLogger) -> None:
        """Failures are logged at ERROR with their reason."""
        outcome = PackagingFailed(
            report_id="r-1",
            reason=FailureReason.FILE_COUNT_MISMATCH,
            message="Report r-1 has 1 file(s); expected 2",
        )

        with capture_femto_logs(_LOGGER) as capture:
            events.log_report_failed(outcome=outcome, duration=dt.timedelta(seconds=0))
            capture.wait_for_count(1)

        record = capture.records[0]
        assert record.level == "ERROR"
        assert "reason=file_count_mismatch" in record.message
        assert "expected 2" in record.message

    def test_report_orphaned_attaches_exception(
        self, events: PackagingEventLogger
    ) -> None:
        """Orphan events name the archive and carry the registration error."""
        error = RuntimeError("commit failed")

        with capture_femto_logs(_LOGGER) as capture:
            events.log_report_orphaned(
                report_id="r-1", location="share://r-1-p.zip", error=error
            )
            capture.wait_for_count(1)

        record = capture.records[0]
        assert PackagingEventType.REPORT_ORPHANED in record.message
        assert "location=share://r-1-p.zip" in record.message
        assert record.exc_info is not None
