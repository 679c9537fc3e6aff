"""Errors specific to the packaging pipeline."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from pathlib import Path


class PackagingError(Exception):
    """Base class for packaging errors."""


class RunAlreadyActiveError(PackagingError):
    """Raised when a run is triggered while a report is still processing.

    This is a refusal rather than a failure: no report was touched.
    """

    def __init__(self) -> None:
        """Initialise with a fixed refusal message."""
        super().__init__("A packaging run is already in progress")


class EligibilityFetchError(PackagingError):
    """Raised when the run guard or eligibility query cannot reach the store."""

    def __init__(self, reason: str) -> None:
        """Record why discovery failed."""
        self.reason = reason
        super().__init__(f"Could not fetch reports to package: {reason}")


class FileCountMismatchError(PackagingError):
    """Raised when a report does not carry the expected number of files."""

    def __init__(self, report_id: str, *, expected: int, actual: int) -> None:
        """Record the report and both counts."""
        self.report_id = report_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Report {report_id} has {actual} file(s); expected {expected}"
        )


class SourceUnavailableError(PackagingError):
    """Raised when an attached file cannot be read for archiving."""

    def __init__(self, location: str, reason: str) -> None:
        """Record the unreadable location."""
        self.location = location
        self.reason = reason
        super().__init__(f"Source file {location} unavailable: {reason}")


class ManifestBuildError(PackagingError):
    """Raised when the manifest cannot be rendered or staged."""

    def __init__(self, report_id: str, reason: str) -> None:
        """Record the report whose manifest failed."""
        self.report_id = report_id
        self.reason = reason
        super().__init__(f"Manifest for report {report_id} failed: {reason}")


class ArchiveWriteError(PackagingError):
    """Raised when the destination archive cannot be created or finalised."""

    def __init__(self, path: Path, reason: str) -> None:
        """Record the destination path."""
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write archive {path}: {reason}")


class InvalidEntryNameError(PackagingError):
    """Raised when a file name cannot be used as an archive entry.

    Entries must be plain, unique file names so that receivers extract every
    file beside the manifest and nowhere else.
    """

    def __init__(self, filename: str, reason: str) -> None:
        """Record the offending name."""
        self.filename = filename
        self.reason = reason
        super().__init__(f"Archive entry name {filename!r} rejected: {reason}")
