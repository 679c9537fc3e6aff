"""Application factory for the Parcel Falcon ASGI application.

This module provides ``create_app()`` which builds the Falcon ASGI
application with health endpoints and, when a pipeline and store are
supplied, the packaging trigger and status endpoints.

Usage
-----
Create a health-only app (no database)::

    app = create_app()

Create a full app with packaging endpoints::

    from parcel.api.app import AppDependencies, create_app

    deps = AppDependencies(
        pipeline=pipeline,
        store=store,
        trigger_interval_seconds=30,
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from parcel.api.errors import (
    handle_eligibility_fetch_failed,
    handle_report_not_found,
    handle_run_already_active,
    handle_store_unavailable,
)
from parcel.api.health.resources import HealthResource, ReadyResource
from parcel.api.lifecycle import DEFAULT_SHUTDOWN_GRACE_SECONDS
from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
from parcel.store.errors import ReportNotFoundError, StoreUnavailableError

if typ.TYPE_CHECKING:
    from parcel.packaging.pipeline import PackagingPipeline
    from parcel.store.gateway import MetadataStore

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    When ``pipeline`` and ``store`` are both provided, the application
    includes the lifespan middleware and packaging endpoints. Otherwise only
    health endpoints are registered.

    Attributes
    ----------
    pipeline
        Packaging pipeline shared by the trigger endpoint and the timer.
    store
        Metadata store used by the status endpoint.
    trigger_interval_seconds
        Periodic trigger interval; ``0`` disables the timer.
    shutdown_grace_seconds
        Time given to in-flight reports when the server stops.

    """

    pipeline: PackagingPipeline | None = None
    store: MetadataStore | None = None
    trigger_interval_seconds: float = 0
    shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or incomplete, only
        ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    pipeline = dependencies.pipeline if dependencies is not None else None
    store = dependencies.store if dependencies is not None else None
    has_domain = pipeline is not None and store is not None

    middleware: list[object] = []
    if has_domain and dependencies is not None:
        from parcel.api.lifecycle import PackagingLifecycle

        middleware.append(
            PackagingLifecycle(
                typ.cast("PackagingPipeline", pipeline),
                trigger_interval_seconds=dependencies.trigger_interval_seconds,
                shutdown_grace_seconds=dependencies.shutdown_grace_seconds,
            )
        )

    app = falcon.asgi.App(middleware=middleware)  # type: ignore[no-matching-overload]  # Falcon stubs
    app.req_options.strip_url_path_trailing_slash = True

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(pipeline))

    if has_domain:
        from parcel.api.reports.resources import (
            PackagingRunResource,
            ReportPackageResource,
        )

        app.add_route(
            "/package-bbcdr-reports",
            PackagingRunResource(typ.cast("PackagingPipeline", pipeline)),
        )
        app.add_route(
            "/reports/{report_id}/package",
            ReportPackageResource(typ.cast("MetadataStore", store)),
        )

    app.add_error_handler(RunAlreadyActiveError, handle_run_already_active)
    app.add_error_handler(EligibilityFetchError, handle_eligibility_fetch_failed)
    app.add_error_handler(ReportNotFoundError, handle_report_not_found)
    app.add_error_handler(StoreUnavailableError, handle_store_unavailable)

    return app
