"""Metadata store: report, file, status and package records."""

from __future__ import annotations

from .errors import ReportNotFoundError, StoreError, StoreUnavailableError
from .gateway import MetadataStore
from .models import FileRecord, PackageArtifact, ReportRecord, ReportStatusView
from .storage import (
    Package,
    PackagingStatus,
    Report,
    ReportFile,
    SubmissionStatus,
    init_storage,
)

__all__ = [
    "FileRecord",
    "MetadataStore",
    "Package",
    "PackageArtifact",
    "PackagingStatus",
    "Report",
    "ReportFile",
    "ReportNotFoundError",
    "ReportRecord",
    "ReportStatusView",
    "StoreError",
    "StoreUnavailableError",
    "SubmissionStatus",
    "init_storage",
]
