"""Metadata store gateway used by the packaging pipeline.

Each method is a single request/response against the database; no
transaction spans more than one call. Database failures surface as
``StoreUnavailableError`` so callers can treat them as attempt failures.

Usage
-----
>>> from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
>>> engine = create_async_engine("sqlite+aiosqlite:///parcel.db")
>>> store = MetadataStore(async_sessionmaker(engine, expire_on_commit=False))
>>> reports = await store.find_eligible_reports()

"""

from __future__ import annotations

import contextlib
import typing as typ

from sqlalchemy import exists, select, update
from sqlalchemy.exc import SQLAlchemyError

from parcel.store.errors import ReportNotFoundError, StoreUnavailableError
from parcel.store.models import (
    FileRecord,
    PackageArtifact,
    ReportRecord,
    ReportStatusView,
)
from parcel.store.storage import (
    Package,
    PackagingStatus,
    Report,
    ReportFile,
    SubmissionStatus,
    utcnow,
)

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

__all__ = ["MetadataStore"]


class MetadataStore:
    """Read/write access to report, file, status and package records."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Bind the gateway to an async session factory."""
        self._session_factory = session_factory

    @contextlib.asynccontextmanager
    async def _session(
        self, operation: str, *, write: bool = False
    ) -> typ.AsyncIterator[AsyncSession]:
        """Yield a session, committing when ``write`` is set."""
        try:
            async with self._session_factory() as session:
                if write:
                    async with session.begin():
                        yield session
                else:
                    yield session
        except SQLAlchemyError as exc:
            raise StoreUnavailableError(operation, str(exc)) from exc

    async def find_eligible_reports(self) -> list[ReportRecord]:
        """Return sent reports with no packaging status, oldest first."""
        stmt = (
            select(Report.id, Report.uri, Report.modified)
            .where(
                Report.submission_status == SubmissionStatus.SENT,
                Report.packaging_status.is_(None),
            )
            .order_by(Report.modified.asc(), Report.id.asc())
        )
        async with self._session("find_eligible_reports") as session:
            rows = (await session.execute(stmt)).all()
        return [
            ReportRecord(id=row.id, uri=row.uri, modified=row.modified) for row in rows
        ]

    async def find_files(self, report_id: str) -> list[FileRecord]:
        """Return the files attached to ``report_id`` ordered by filename."""
        stmt = (
            select(ReportFile)
            .where(ReportFile.report_id == report_id)
            .order_by(ReportFile.filename.asc(), ReportFile.id.asc())
        )
        async with self._session("find_files") as session:
            files = (await session.scalars(stmt)).all()
        return [
            FileRecord(
                filename=file.filename,
                location=file.location,
                format=file.format,
                size=file.size,
            )
            for file in files
        ]

    async def set_status(self, report_id: str, status: PackagingStatus) -> None:
        """Overwrite the packaging status and refresh ``modified``."""
        stmt = (
            update(Report)
            .where(Report.id == report_id)
            .values(packaging_status=status, modified=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with self._session("set_status", write=True) as session:
            await session.execute(stmt)

    async def claim_report(self, report_id: str) -> bool:
        """Move ``report_id`` to PROCESSING only if it has no status yet.

        Returns
        -------
        bool
            ``True`` when this call performed the transition, ``False`` when
            the report already carried a status.

        """
        stmt = (
            update(Report)
            .where(Report.id == report_id, Report.packaging_status.is_(None))
            .values(packaging_status=PackagingStatus.PROCESSING, modified=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with self._session("claim_report", write=True) as session:
            result = await session.execute(stmt)
        return typ.cast("int", getattr(result, "rowcount", 0)) == 1

    async def register_package(
        self, report_id: str, artifact: PackageArtifact
    ) -> None:
        """Attach ``artifact`` to the report and mark it PACKAGED atomically.

        Raises
        ------
        ReportNotFoundError
            If the report vanished; nothing is written in that case.
        StoreUnavailableError
            If the database rejects the write.

        """
        now = utcnow()
        stmt = (
            update(Report)
            .where(Report.id == report_id)
            .values(packaging_status=PackagingStatus.PACKAGED, modified=now)
            .execution_options(synchronize_session=False)
        )
        async with self._session("register_package", write=True) as session:
            result = await session.execute(stmt)
            if typ.cast("int", getattr(result, "rowcount", 0)) != 1:
                raise ReportNotFoundError(report_id)
            session.add(
                Package(
                    id=artifact.id,
                    report_id=report_id,
                    location=artifact.location,
                    size=artifact.size,
                    packaged_at=now,
                )
            )

    async def any_report_in_status(self, status: PackagingStatus) -> bool:
        """Return whether any report currently carries ``status``."""
        stmt = select(exists().where(Report.packaging_status == status))
        async with self._session("any_report_in_status") as session:
            found = await session.scalar(stmt)
        return bool(found)

    async def clear_status(self, status: PackagingStatus) -> int:
        """Reset every report in ``status`` to no status; return the count."""
        stmt = (
            update(Report)
            .where(Report.packaging_status == status)
            .values(packaging_status=None, modified=utcnow())
            .execution_options(synchronize_session=False)
        )
        async with self._session("clear_status", write=True) as session:
            result = await session.execute(stmt)
        return typ.cast("int", getattr(result, "rowcount", 0))

    async def get_report_status(self, report_id: str) -> ReportStatusView:
        """Return the packaging status of ``report_id`` and its package."""
        async with self._session("get_report_status") as session:
            report = await session.get(Report, report_id)
            if report is None:
                raise ReportNotFoundError(report_id)
            package = await session.scalar(
                select(Package).where(Package.report_id == report_id)
            )
        artifact = (
            PackageArtifact(id=package.id, location=package.location, size=package.size)
            if package is not None
            else None
        )
        return ReportStatusView(
            report_id=report.id,
            status=report.packaging_status,
            modified=report.modified,
            package=artifact,
        )
