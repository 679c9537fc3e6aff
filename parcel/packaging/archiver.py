"""PackageArchiver protocol for writing report packages.

This module defines the port for archive output. The pipeline depends only on
this protocol; :class:`parcel.packaging.zip_archiver.ZipPackageArchiver` is
the filesystem adapter used in production.

Usage
-----
>>> from parcel.packaging.archiver import PackageArchiver
>>> from parcel.packaging.zip_archiver import ZipPackageArchiver
>>> isinstance(ZipPackageArchiver(Path("/data/files")), PackageArchiver)
True

"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    from pathlib import Path

    from parcel.store.models import FileRecord, PackageArtifact, ReportRecord


@typ.runtime_checkable
class PackageArchiver(typ.Protocol):
    """Protocol for bundling a report's files and manifest into one archive."""

    async def build(
        self,
        report: ReportRecord,
        files: cabc.Sequence[FileRecord],
        manifest_path: Path,
    ) -> PackageArtifact:
        """Write the archive and return a reference to it.

        Implementations must remove ``manifest_path`` once it has been folded
        into the archive, whether or not the build succeeds.

        Parameters
        ----------
        report
            Report being packaged; its id names the archive.
        files
            Attached files, stored under their declared names.
        manifest_path
            Staged manifest document.

        Raises
        ------
        SourceUnavailableError
            If an attached file cannot be read.
        ArchiveWriteError
            If the destination cannot be created or finalised.

        """
        ...
