"""Configuration for report packaging.

Usage
-----
Create a configuration with defaults:

>>> config = PackagingConfig()
>>> config.files_per_report
2

Or load from environment variables:

>>> import os
>>> os.environ["PARCEL_FILES_PER_REPORT"] = "3"
>>> PackagingConfig.from_env().files_per_report
3

"""

from __future__ import annotations

import dataclasses as dc
import os
from pathlib import Path

_DEFAULT_FILE_ROOT = Path("/data/files")


@dc.dataclass(frozen=True, slots=True)
class ManifestRouting:
    """Fixed routing metadata written into every manifest.

    Attributes
    ----------
    entity
        Organisation identifier of the receiving party.
    application
        Application identifier the delivery is routed to.
    flow
        Delivery marker announcing a completed submission.
    default_key
        Placeholder used for the ``SLEUTEL`` parameter when the caller
        supplies no key.

    """

    entity: str = "ABB"
    application: str = "BBC DR"
    flow: str = "AANLEVERING GEDAAN"
    default_key: str = "test"


@dc.dataclass(frozen=True, slots=True)
class PackagingConfig:
    """Configuration for the packaging pipeline.

    Attributes
    ----------
    file_root
        Directory that ``share://`` locations resolve against. Manifests are
        staged and archives written here.
    files_per_report
        Number of attached files a complete report must have. Reports with
        any other count are marked ``packaging_failed``.
    trigger_interval_seconds
        Interval of the in-process periodic trigger; ``0`` disables it.
    routing
        Manifest routing metadata.

    """

    file_root: Path = _DEFAULT_FILE_ROOT
    files_per_report: int = 2
    trigger_interval_seconds: int = 30
    routing: ManifestRouting = dc.field(default_factory=ManifestRouting)

    @staticmethod
    def _parse_int(env_var: str, default: int, *, minimum: int) -> int:
        """Read an integer env var no smaller than ``minimum``."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < minimum:
            msg = f"{env_var} must be at least {minimum}, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> PackagingConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``PARCEL_FILE_ROOT``: root directory for ``share://`` locations.
        - ``PARCEL_FILES_PER_REPORT``: expected attachment count (positive).
        - ``PARCEL_TRIGGER_INTERVAL_SECONDS``: periodic trigger interval
          (non-negative; ``0`` disables the timer).
        - ``PARCEL_MANIFEST_KEY``: default ``SLEUTEL`` manifest parameter.

        Raises
        ------
        ValueError
            If a numeric variable is malformed or out of range.

        """
        raw_root = os.environ.get("PARCEL_FILE_ROOT", "").strip()
        file_root = Path(raw_root) if raw_root else _DEFAULT_FILE_ROOT

        raw_key = os.environ.get("PARCEL_MANIFEST_KEY", "").strip()
        routing = ManifestRouting(default_key=raw_key) if raw_key else ManifestRouting()

        return cls(
            file_root=file_root,
            files_per_report=cls._parse_int("PARCEL_FILES_PER_REPORT", 2, minimum=1),
            trigger_interval_seconds=cls._parse_int(
                "PARCEL_TRIGGER_INTERVAL_SECONDS", 30, minimum=0
            ),
            routing=routing,
        )
