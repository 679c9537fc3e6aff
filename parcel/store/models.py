"""Detached records returned by the metadata store gateway.

The pipeline works on these immutable structs rather than ORM instances so
the packaging state machine never depends on an open session.
"""

from __future__ import annotations

import datetime as dt  # noqa: TC003

import msgspec

from parcel.store.storage import PackagingStatus  # noqa: TC001


class ReportRecord(msgspec.Struct, kw_only=True, frozen=True):
    """Identity of an eligible report.

    Attributes
    ----------
    id
        Report uuid, also used to name the manifest and archive.
    uri
        Opaque upstream identity of the report.
    modified
        Last-modified timestamp used for oldest-first ordering.

    """

    id: str
    uri: str
    modified: dt.datetime


class FileRecord(msgspec.Struct, kw_only=True, frozen=True):
    """File attached to a report."""

    filename: str
    location: str
    format: str
    size: int


class PackageArtifact(msgspec.Struct, kw_only=True, frozen=True):
    """Reference to a written zip archive.

    Attributes
    ----------
    id
        Generated package uuid.
    location
        ``share://`` URI of the archive.
    size
        Archive size in bytes.

    """

    id: str
    location: str
    size: int


class ReportStatusView(msgspec.Struct, kw_only=True, frozen=True):
    """Packaging state of a report as exposed to polling callers."""

    report_id: str
    status: PackagingStatus | None
    modified: dt.datetime
    package: PackageArtifact | None = None
