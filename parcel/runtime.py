"""Parcel runtime entrypoint.

This module provides the Granian ASGI application factory. It delegates to
:func:`parcel.api.app.create_app` while keeping the
``parcel.runtime:create_app`` entrypoint stable.

When ``PARCEL_DATABASE_URL`` is set, the runtime builds the metadata store and
packaging pipeline so the app serves the packaging endpoints and runs the
periodic trigger. Otherwise it starts in health-only mode.

Configuration is driven by environment variables:

- ``PARCEL_HOST``: Bind address (default ``0.0.0.0``)
- ``PARCEL_PORT``: Listen port (default ``8080``)
- ``PARCEL_LOG_LEVEL``: Log level (default ``INFO``)
- ``PARCEL_DATABASE_URL``: Database connection URL (optional; enables
  packaging when set)
- ``PARCEL_FILE_ROOT``, ``PARCEL_FILES_PER_REPORT``, ``PARCEL_MANIFEST_KEY``,
  ``PARCEL_TRIGGER_INTERVAL_SECONDS``: see
  :class:`parcel.packaging.config.PackagingConfig`

Run the service directly with ``python -m parcel.runtime``.
"""

from __future__ import annotations

import os
import typing as typ

from parcel.logging import (
    configure_logging,
    get_logger,
    log_error,
    log_info,
    log_warning,
)

if typ.TYPE_CHECKING:
    import falcon.asgi

__all__ = ["create_app", "main"]

logger = get_logger(__name__)

_MIN_PORT = 1
_MAX_PORT = 65535


def _parse_port(port_str: str) -> int:
    """Parse and validate a port number string.

    Raises
    ------
    SystemExit
        If port_str is not a valid integer in range 1-65535.

    """
    try:
        port = int(port_str)
        if not (_MIN_PORT <= port <= _MAX_PORT):
            msg = f"port {port} outside valid range {_MIN_PORT}-{_MAX_PORT}"
            raise ValueError(msg)  # noqa: TRY301 - unify conversion and range errors
    except ValueError as exc:
        log_error(
            logger,
            "Invalid PARCEL_PORT value: %r (must be %d-%d): %s",
            port_str,
            _MIN_PORT,
            _MAX_PORT,
            exc,
        )
        raise SystemExit(1) from exc
    return port


def create_app() -> falcon.asgi.App:
    """Create the Falcon ASGI application from the environment.

    Returns
    -------
    falcon.asgi.App
        Health-only app without ``PARCEL_DATABASE_URL``; otherwise the app
        with the packaging endpoints and lifespan middleware.

    """
    from parcel.api.app import create_app as _create_api_app

    database_url = os.environ.get("PARCEL_DATABASE_URL")

    if database_url is None:
        return _create_api_app()

    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from parcel.api.app import AppDependencies
    from parcel.packaging.config import PackagingConfig
    from parcel.packaging.factory import build_packaging_pipeline
    from parcel.store.gateway import MetadataStore

    engine = create_async_engine(database_url)
    store = MetadataStore(async_sessionmaker(engine, expire_on_commit=False))
    config = PackagingConfig.from_env()

    deps = AppDependencies(
        pipeline=build_packaging_pipeline(store, config),
        store=store,
        trigger_interval_seconds=config.trigger_interval_seconds,
    )
    return _create_api_app(deps)


def main() -> None:
    """Start the Parcel runtime server using Granian.

    Reads ``PARCEL_HOST``, ``PARCEL_PORT``, and ``PARCEL_LOG_LEVEL`` from
    the environment and starts the ASGI server.
    """
    from granian import Granian
    from granian.constants import Interfaces

    host = os.environ.get("PARCEL_HOST", "0.0.0.0")  # noqa: S104 - bind all interfaces for container
    port = _parse_port(os.environ.get("PARCEL_PORT", "8080"))
    log_level_str = os.environ.get("PARCEL_LOG_LEVEL", "INFO")

    normalized_level, invalid_level = configure_logging(log_level_str)
    if invalid_level:
        log_warning(
            logger,
            "Invalid PARCEL_LOG_LEVEL %r, falling back to %s",
            log_level_str,
            normalized_level,
        )

    log_info(
        logger,
        "Starting Parcel runtime on %s:%d (log_level=%s)",
        host,
        port,
        normalized_level,
    )

    server = Granian(
        "parcel.runtime:create_app",
        address=host,
        port=port,
        interface=Interfaces.ASGI,
        factory=True,
    )
    server.serve()


if __name__ == "__main__":
    main()
