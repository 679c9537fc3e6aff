"""Package every eligible report once and print the outcomes as JSON."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
import typing as typ

import msgspec
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
from parcel.packaging.factory import build_packaging_pipeline
from parcel.store.gateway import MetadataStore
from parcel.store.storage import init_storage

if typ.TYPE_CHECKING:
    from parcel.packaging.config import PackagingConfig
    from parcel.packaging.outcome import PackagingOutcome

EXIT_OK = 0
EXIT_DISCOVERY_FAILED = 1
EXIT_ALREADY_RUNNING = 2


async def run_once(
    database_url: str,
    *,
    init_schema: bool = False,
    reconcile: bool = False,
    config: PackagingConfig | None = None,
) -> list[PackagingOutcome]:
    """Run the pipeline once and wait for every report.

    Parameters
    ----------
    database_url
        SQLAlchemy URL of the metadata store.
    init_schema
        Create missing tables before running.
    reconcile
        Clear stale ``packaging`` markers first.
    config
        Packaging configuration; read from the environment when omitted.

    """
    engine = create_async_engine(database_url)
    try:
        if init_schema:
            await init_storage(engine)
        store = MetadataStore(async_sessionmaker(engine, expire_on_commit=False))
        pipeline = build_packaging_pipeline(store, config)
        if reconcile:
            await pipeline.reconcile()
        return await pipeline.run_to_completion()
    finally:
        await engine.dispose()


def main(argv: list[str] | None = None) -> int:
    """Run one packaging pass from the command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        0 when the run completed (including reports marked failed), 1 when
        discovery failed, 2 when another run is still active.

    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--database-url",
        default=os.environ.get("PARCEL_DATABASE_URL"),
        help="SQLAlchemy URL of the metadata store (default: $PARCEL_DATABASE_URL)",
    )
    parser.add_argument(
        "--init-schema",
        action="store_true",
        help="Create missing tables before packaging",
    )
    parser.add_argument(
        "--reconcile",
        action="store_true",
        help=(
            "Clear stale packaging markers first; only safe when no other "
            "Parcel process is running"
        ),
    )
    args = parser.parse_args(argv)
    if not args.database_url:
        parser.error("--database-url or PARCEL_DATABASE_URL is required")

    try:
        outcomes = asyncio.run(
            run_once(
                args.database_url,
                init_schema=args.init_schema,
                reconcile=args.reconcile,
            )
        )
    except RunAlreadyActiveError as exc:
        print(f"packaging skipped: {exc}", file=sys.stderr)
        return EXIT_ALREADY_RUNNING
    except EligibilityFetchError as exc:
        print(f"packaging failed: {exc}", file=sys.stderr)
        return EXIT_DISCOVERY_FAILED

    print(msgspec.json.encode(outcomes).decode("utf-8"))
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
