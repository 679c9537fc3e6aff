"""Per-report packaging outcomes and the state-machine mapping.

A packaging attempt produces either ``PackagingSucceeded`` or
``PackagingFailed``. The pipeline applies status transitions from these values
in one place, so the decision logic can be tested without a store.
"""

from __future__ import annotations

import enum
import typing as typ

import msgspec

from parcel.packaging.errors import (
    ArchiveWriteError,
    FileCountMismatchError,
    InvalidEntryNameError,
    ManifestBuildError,
    SourceUnavailableError,
)
from parcel.store.errors import StoreError
from parcel.store.models import PackageArtifact  # noqa: TC001
from parcel.store.storage import PackagingStatus


class FailureReason(enum.StrEnum):
    """Why a packaging attempt ended in ``packaging_failed``."""

    FILE_COUNT_MISMATCH = "file_count_mismatch"
    SOURCE_UNAVAILABLE = "source_unavailable"
    INVALID_ENTRY_NAME = "invalid_entry_name"
    MANIFEST_BUILD_FAILED = "manifest_build_failed"
    ARCHIVE_WRITE_FAILED = "archive_write_failed"
    STORE_UNAVAILABLE = "store_unavailable"
    UNEXPECTED = "unexpected"


class PackagingSucceeded(msgspec.Struct, kw_only=True, frozen=True, tag="packaged"):
    """Archive written for a report and ready to be registered."""

    report_id: str
    package: PackageArtifact


class PackagingFailed(msgspec.Struct, kw_only=True, frozen=True, tag="failed"):
    """Attempt that must leave the report in ``packaging_failed``.

    Attributes
    ----------
    report_id
        Report the attempt belonged to.
    reason
        Failure category.
    message
        Human-readable error text.
    orphaned_location
        Location of an archive that was written but never registered.

    """

    report_id: str
    reason: FailureReason
    message: str
    orphaned_location: str | None = None


PackagingOutcome: typ.TypeAlias = PackagingSucceeded | PackagingFailed

_REASONS: tuple[tuple[type[Exception], FailureReason], ...] = (
    (FileCountMismatchError, FailureReason.FILE_COUNT_MISMATCH),
    (SourceUnavailableError, FailureReason.SOURCE_UNAVAILABLE),
    (InvalidEntryNameError, FailureReason.INVALID_ENTRY_NAME),
    (ManifestBuildError, FailureReason.MANIFEST_BUILD_FAILED),
    (ArchiveWriteError, FailureReason.ARCHIVE_WRITE_FAILED),
    (StoreError, FailureReason.STORE_UNAVAILABLE),
)


def reason_for(exc: Exception) -> FailureReason:
    """Classify an exception raised during a packaging attempt."""
    for exc_type, reason in _REASONS:
        if isinstance(exc, exc_type):
            return reason
    return FailureReason.UNEXPECTED


def failure_from(report_id: str, exc: Exception) -> PackagingFailed:
    """Build a ``PackagingFailed`` outcome for ``exc``."""
    return PackagingFailed(
        report_id=report_id,
        reason=reason_for(exc),
        message=str(exc) or type(exc).__name__,
    )


def transition_for(outcome: PackagingOutcome) -> PackagingStatus:
    """Return the terminal status an outcome moves its report to."""
    if isinstance(outcome, PackagingSucceeded):
        return PackagingStatus.PACKAGED
    return PackagingStatus.PACKAGING_FAILED


def check_file_count(report_id: str, file_count: int, expected: int) -> None:
    """Raise ``FileCountMismatchError`` unless ``file_count == expected``."""
    if file_count != expected:
        raise FileCountMismatchError(report_id, expected=expected, actual=file_count)
