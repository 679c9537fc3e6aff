"""Report packaging resources.

``POST /package-bbcdr-reports`` starts a packaging run and answers as soon as
the eligible reports have been dispatched. Callers observe completion by
polling ``GET /reports/{report_id}/package``.

Usage
-----
Register the resources on the Falcon app::

    app.add_route("/package-bbcdr-reports", PackagingRunResource(pipeline))
    app.add_route("/reports/{report_id}/package", ReportPackageResource(store))

"""

from __future__ import annotations

import typing as typ

import falcon
import msgspec

from parcel.packaging.pipeline import RunStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from parcel.packaging.pipeline import PackagingPipeline
    from parcel.store.gateway import MetadataStore

__all__ = ["PackagingRunResource", "ReportPackageResource"]


class PackagingRunResource:
    """Trigger surface for packaging runs.

    Responses
    ---------
    202
        Run accepted; ``reports`` is the number of reports dispatched.
    200
        Nothing to do; no report is eligible.
    503
        A run is already active (see ``handle_run_already_active``).
    500
        The eligibility query failed (see
        ``handle_eligibility_fetch_failed``).

    """

    def __init__(self, pipeline: PackagingPipeline) -> None:
        """Bind the resource to the packaging pipeline."""
        self._pipeline = pipeline

    async def on_post(self, _req: Request, resp: Response) -> None:
        """Handle POST requests starting a packaging run."""
        run = await self._pipeline.trigger()
        resp.media = {"status": run.status.value, "reports": len(run.reports)}
        resp.status = (
            falcon.HTTP_202 if run.status is RunStatus.ACCEPTED else falcon.HTTP_200
        )


class ReportPackageResource:
    """Polling endpoint exposing a report's packaging status."""

    def __init__(self, store: MetadataStore) -> None:
        """Bind the resource to the metadata store."""
        self._store = store

    async def on_get(self, _req: Request, resp: Response, *, report_id: str) -> None:
        """Return status, modification time and package of ``report_id``.

        Raises
        ------
        ReportNotFoundError
            If no report has this id; mapped to HTTP 404.

        """
        view = await self._store.get_report_status(report_id)
        resp.media = msgspec.to_builtins(view)
        resp.status = falcon.HTTP_200
