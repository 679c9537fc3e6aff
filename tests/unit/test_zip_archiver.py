"""Unit tests for the zip package archiver."""

from __future__ import annotations

import zipfile
from pathlib import Path

import pytest

from parcel.packaging.archiver import PackageArchiver
from parcel.packaging.errors import InvalidEntryNameError, SourceUnavailableError
from parcel.packaging.zip_archiver import ZipPackageArchiver
from parcel.store.models import FileRecord, ReportRecord
from tests.helpers.fakes import BASE_TIME


@pytest.fixture
def report() -> ReportRecord:
    """Return a report record."""
    return ReportRecord(id="r-1", uri="urn:report:r-1", modified=BASE_TIME)


@pytest.fixture
def archiver(file_root: Path) -> ZipPackageArchiver:
    """Return an archiver rooted at the temporary share."""
    return ZipPackageArchiver(file_root)


def _attach(file_root: Path, name: str, content: bytes) -> FileRecord:
    (file_root / "r-1").mkdir(exist_ok=True)
    (file_root / "r-1" / name).write_bytes(content)
    return FileRecord(
        filename=name,
        location=f"share://r-1/{name}",
        format="application/octet-stream",
        size=len(content),
    )


def _manifest(file_root: Path) -> Path:
    path = file_root / "r-1-borderel.xml"
    path.write_bytes(b"<borderel/>")
    return path


def test_satisfies_archiver_protocol(archiver: ZipPackageArchiver) -> None:
    """The zip adapter implements the archiver port."""
    assert isinstance(archiver, PackageArchiver)


class TestLocations:
    """Mapping between share URIs and paths."""

    def test_resolve_location(self, archiver: ZipPackageArchiver, file_root: Path) -> None:
        """share:// URIs resolve under the file root."""
        assert archiver.resolve_location("share://r-1/a.xbrl") == (
            file_root.resolve() / "r-1" / "a.xbrl"
        )

    @pytest.mark.parametrize(
        "location", ["file:///etc/passwd", "share://../outside.txt"]
    )
    def test_rejects_foreign_locations(
        self, archiver: ZipPackageArchiver, location: str
    ) -> None:
        """Other schemes and root escapes are unavailable sources."""
        with pytest.raises(SourceUnavailableError):
            archiver.resolve_location(location)

    def test_location_for_round_trips(
        self, archiver: ZipPackageArchiver, file_root: Path
    ) -> None:
        """Paths under the root map back to share URIs."""
        assert archiver.location_for(file_root / "r-1-p.zip") == "share://r-1-p.zip"


class TestBuild:
    """Archive creation."""

    @pytest.mark.asyncio
    async def test_writes_files_and_manifest(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
    ) -> None:
        """The archive holds every file under its name plus borderel.xml."""
        files = [
            _attach(file_root, "bbcdr.xbrl", b"<xbrl>" + b"0" * 2048 + b"</xbrl>"),
            _attach(file_root, "jaarrekening.pdf", b"%PDF-1.4"),
        ]
        manifest = _manifest(file_root)

        artifact = await archiver.build(report, files, manifest)

        path = archiver.resolve_location(artifact.location)
        assert path.name == f"r-1-{artifact.id}.zip"
        assert artifact.size == path.stat().st_size
        with zipfile.ZipFile(path) as archive:
            assert sorted(archive.namelist()) == [
                "bbcdr.xbrl",
                "borderel.xml",
                "jaarrekening.pdf",
            ]
            assert archive.read("borderel.xml") == b"<borderel/>"
            assert archive.read("jaarrekening.pdf") == b"%PDF-1.4"
            info = archive.getinfo("bbcdr.xbrl")
            assert info.compress_type == zipfile.ZIP_DEFLATED
            assert info.compress_size < info.file_size
        assert not manifest.exists(), "staged manifest should be removed"

    @pytest.mark.asyncio
    async def test_missing_source_leaves_no_archive(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
    ) -> None:
        """A missing attachment fails the build before any zip is created."""
        present = _attach(file_root, "bbcdr.xbrl", b"<xbrl/>")
        missing = FileRecord(
            filename="gone.pdf",
            location="share://r-1/gone.pdf",
            format="application/pdf",
            size=3,
        )
        manifest = _manifest(file_root)

        with pytest.raises(SourceUnavailableError) as excinfo:
            await archiver.build(report, [present, missing], manifest)

        assert excinfo.value.location == "share://r-1/gone.pdf"
        assert list(file_root.glob("*.zip")) == []
        assert not manifest.exists()

    @pytest.mark.asyncio
    async def test_each_build_gets_a_fresh_name(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
    ) -> None:
        """Repeated builds never overwrite an earlier archive."""
        files = [_attach(file_root, "a.xbrl", b"a")]

        first = await archiver.build(report, files, _manifest(file_root))
        second = await archiver.build(report, files, _manifest(file_root))

        assert first.location != second.location
        assert len(list(file_root.glob("r-1-*.zip"))) == 2


def _renamed(file_root: Path, filename: str) -> FileRecord:
    """Return a readable attachment declared under ``filename``."""
    stored = _attach(file_root, "stored.bin", b"payload")
    return FileRecord(
        filename=filename,
        location=stored.location,
        format=stored.format,
        size=stored.size,
    )


class TestEntryNames:
    """Attachment names must be safe, unique archive entries."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "filename",
        ["", ".", "..", "../../evil.txt", "nested/a.pdf", "..\\evil.txt"],
    )
    async def test_rejects_unsafe_names(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
        filename: str,
    ) -> None:
        """Names that are not plain file names fail before a zip is created."""
        manifest = _manifest(file_root)

        with pytest.raises(InvalidEntryNameError, match="not a plain file name"):
            await archiver.build(report, [_renamed(file_root, filename)], manifest)

        assert list(file_root.glob("*.zip")) == []
        assert not manifest.exists()

    @pytest.mark.asyncio
    async def test_rejects_attachment_named_like_manifest(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
    ) -> None:
        """An attachment may not shadow the manifest entry."""
        files = [
            _renamed(file_root, "borderel.xml"),
            _attach(file_root, "b.pdf", b"%PDF"),
        ]

        with pytest.raises(InvalidEntryNameError) as excinfo:
            await archiver.build(report, files, _manifest(file_root))

        assert excinfo.value.filename == "borderel.xml"
        assert excinfo.value.reason == "duplicate entry name"
        assert list(file_root.glob("*.zip")) == []

    @pytest.mark.asyncio
    async def test_rejects_duplicate_attachment_names(
        self,
        archiver: ZipPackageArchiver,
        report: ReportRecord,
        file_root: Path,
    ) -> None:
        """Two attachments with one name would hide each other."""
        files = [_renamed(file_root, "a.pdf"), _renamed(file_root, "a.pdf")]

        with pytest.raises(InvalidEntryNameError, match="duplicate entry name"):
            await archiver.build(report, files, _manifest(file_root))

        assert list(file_root.glob("*.zip")) == []
