r"""Zip adapter for the PackageArchiver protocol.

Archives are written next to the source files, under the configured file
root, and referenced by ``share://`` URIs relative to that root::

    {file_root}/{report_id}-{package_id}.zip  ->  share://{report_id}-{package_id}.zip

Each attached file is stored under its declared filename and the staged
manifest under ``borderel.xml``. Entry names must be plain, unique file
names; anything else fails the build before the zip is opened. Compression
favours size over speed.

Usage
-----
>>> archiver = ZipPackageArchiver(Path("/data/files"))
>>> artifact = await archiver.build(report, files, manifest_path)
>>> artifact.location
'share://5f0c...-9a1b....zip'

"""

from __future__ import annotations

import asyncio
import os
import typing as typ
import uuid
import zipfile

from parcel.logging import get_logger, log_info
from parcel.packaging.errors import (
    ArchiveWriteError,
    InvalidEntryNameError,
    SourceUnavailableError,
)
from parcel.packaging.manifest import MANIFEST_ENTRY_NAME
from parcel.store.models import PackageArtifact

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from parcel.store.models import FileRecord, ReportRecord

logger = get_logger(__name__)

SHARE_SCHEME = "share://"
COMPRESSION_LEVEL = 9
_RESERVED_NAMES = frozenset({"", ".", ".."})


class _Source(typ.NamedTuple):
    path: Path
    arcname: str
    location: str


class ZipPackageArchiver:
    """Write report packages as deflated zip files.

    Parameters
    ----------
    file_root
        Directory that ``share://`` locations resolve against. Archives are
        written to this directory.

    """

    def __init__(self, file_root: Path) -> None:
        """Initialise the archiver with the shared file root."""
        self._file_root = file_root

    def resolve_location(self, location: str) -> Path:
        """Map a ``share://`` location to a path under the file root.

        Raises
        ------
        SourceUnavailableError
            If the location uses another scheme or escapes the root.

        """
        if not location.startswith(SHARE_SCHEME):
            raise SourceUnavailableError(location, "unsupported location scheme")
        root = self._file_root.resolve()
        path = (root / location.removeprefix(SHARE_SCHEME)).resolve()
        if not path.is_relative_to(root):
            raise SourceUnavailableError(location, "location escapes the file root")
        return path

    def location_for(self, path: Path) -> str:
        """Return the ``share://`` URI for a path under the file root."""
        relative = path.resolve().relative_to(self._file_root.resolve())
        return f"{SHARE_SCHEME}{relative.as_posix()}"

    async def build(
        self,
        report: ReportRecord,
        files: cabc.Sequence[FileRecord],
        manifest_path: Path,
    ) -> PackageArtifact:
        """Write ``{report.id}-{package_id}.zip`` and return its reference.

        The staged manifest is removed afterwards in every case.
        """
        package_id = str(uuid.uuid4())
        destination = self._file_root / f"{report.id}-{package_id}.zip"
        try:
            size = await asyncio.to_thread(
                self._write_archive, destination, files, manifest_path
            )
        finally:
            await asyncio.to_thread(manifest_path.unlink, missing_ok=True)

        location = self.location_for(destination)
        log_info(logger, "%s was created: %d bytes", location, size)
        return PackageArtifact(id=package_id, location=location, size=size)

    def _collect_sources(
        self, files: cabc.Sequence[FileRecord], manifest_path: Path
    ) -> list[_Source]:
        """Resolve and check every input before the destination is created."""
        sources = [
            _Source(self.resolve_location(file.location), file.filename, file.location)
            for file in files
        ]
        sources.append(
            _Source(manifest_path, MANIFEST_ENTRY_NAME, str(manifest_path))
        )
        _check_entry_names(sources)
        for source in sources:
            if not source.path.is_file():
                raise SourceUnavailableError(source.location, "file does not exist")
            if not os.access(source.path, os.R_OK):
                raise SourceUnavailableError(source.location, "file is not readable")
        return sources

    def _write_archive(
        self,
        destination: Path,
        files: cabc.Sequence[FileRecord],
        manifest_path: Path,
    ) -> int:
        """Write the zip synchronously and return its size in bytes."""
        sources = self._collect_sources(files, manifest_path)
        try:
            archive = zipfile.ZipFile(
                destination,
                "w",
                compression=zipfile.ZIP_DEFLATED,
                compresslevel=COMPRESSION_LEVEL,
            )
        except OSError as exc:
            raise ArchiveWriteError(destination, str(exc)) from exc

        try:
            with archive:
                for source in sources:
                    self._add(archive, source, destination)
            return destination.stat().st_size
        except OSError as exc:
            destination.unlink(missing_ok=True)
            raise ArchiveWriteError(destination, str(exc)) from exc
        except (SourceUnavailableError, ArchiveWriteError):
            destination.unlink(missing_ok=True)
            raise

    def _add(
        self, archive: zipfile.ZipFile, source: _Source, destination: Path
    ) -> None:
        try:
            archive.write(source.path, arcname=source.arcname)
        except OSError as exc:
            # the source vanished between the readability check and the copy
            if not source.path.is_file():
                raise SourceUnavailableError(source.location, str(exc)) from exc
            raise ArchiveWriteError(destination, str(exc)) from exc


def _check_entry_names(sources: cabc.Sequence[_Source]) -> None:
    """Reject entry names that are not plain, unique file names."""
    seen: set[str] = set()
    for source in sources:
        name = source.arcname
        if name in _RESERVED_NAMES or "/" in name or "\\" in name:
            raise InvalidEntryNameError(name, "not a plain file name")
        if name in seen:
            raise InvalidEntryNameError(name, "duplicate entry name")
        seen.add(name)
