"""Errors raised by the metadata store gateway."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for metadata store errors."""


class StoreUnavailableError(StoreError):
    """Raised when the metadata store cannot complete a read or write.

    The pipeline treats this as an attempt failure, never as corruption.
    """

    def __init__(self, operation: str, reason: str) -> None:
        """Record the gateway operation that failed and why."""
        self.operation = operation
        self.reason = reason
        super().__init__(f"Metadata store unavailable during {operation}: {reason}")


class ReportNotFoundError(StoreError):
    """Raised when a report id does not match any stored report."""

    def __init__(self, report_id: str) -> None:
        """Initialise with the missing report id."""
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


class TimezoneAwareRequiredError(ValueError):
    """Raised when a naive datetime is bound to a UTC column."""

    def __init__(self, context: str) -> None:
        """Attach a consistent message for the failing context."""
        super().__init__(f"{context} must be timezone aware")
