"""Persistence models for reports, their files and generated packages."""

from __future__ import annotations

import datetime as dt
import enum
import typing as typ
import uuid

from sqlalchemy import (
    BigInteger,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from parcel.store.errors import TimezoneAwareRequiredError

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


class SubmissionStatus(enum.StrEnum):
    """Upstream lifecycle of a report; only ``sent`` reports are packaged."""

    DRAFT = "draft"
    SENT = "sent"


class PackagingStatus(enum.StrEnum):
    """Packaging state machine; ``None`` in the column means untouched."""

    PROCESSING = "packaging"
    PACKAGED = "packaged"
    PACKAGING_FAILED = "packaging_failed"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class Base(DeclarativeBase):
    """Base declarative class for Parcel models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Force bound datetime values to UTC with tzinfo."""
        if value is None:
            return None
        if value.tzinfo is None:
            raise TimezoneAwareRequiredError("modified")
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class Report(Base):
    """Outbound report awaiting or carrying a packaging status."""

    __tablename__ = "reports"
    __table_args__ = (
        UniqueConstraint("uri", name="uq_reports_uri"),
        Index(
            "ix_reports_eligibility",
            "submission_status",
            "packaging_status",
            "modified",
        ),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    uri: Mapped[str] = mapped_column(String(512), nullable=False)
    submission_status: Mapped[SubmissionStatus] = mapped_column(
        Enum(
            SubmissionStatus,
            native_enum=False,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=SubmissionStatus.DRAFT,
        nullable=False,
    )
    packaging_status: Mapped[PackagingStatus | None] = mapped_column(
        Enum(
            PackagingStatus,
            native_enum=False,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        default=None,
    )
    modified: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )

    files: Mapped[list[ReportFile]] = relationship(
        back_populates="report", cascade="all, delete-orphan"
    )
    package: Mapped[Package | None] = relationship(back_populates="report")


class ReportFile(Base):
    """File attached to a report; read-only input for packaging."""

    __tablename__ = "report_files"
    __table_args__ = (Index("ix_report_files_report_id", "report_id"),)

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    report_id: Mapped[str] = mapped_column(
        ForeignKey("reports.id", ondelete="CASCADE"), nullable=False
    )
    filename: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[str] = mapped_column(String(1024), nullable=False)
    format: Mapped[str] = mapped_column(String(255), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    report: Mapped[Report] = relationship(back_populates="files")


class Package(Base):
    """Zip archive registered against exactly one report."""

    __tablename__ = "packages"
    __table_args__ = (UniqueConstraint("report_id", name="uq_packages_report_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    report_id: Mapped[str] = mapped_column(
        ForeignKey("reports.id", ondelete="CASCADE"), nullable=False
    )
    location: Mapped[str] = mapped_column(String(1024), nullable=False)
    size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    packaged_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, nullable=False
    )

    report: Mapped[Report] = relationship(back_populates="package")


async def init_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
