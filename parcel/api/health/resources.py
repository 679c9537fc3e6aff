"""Health probe resources for liveness and readiness checks.

Neither probe touches the metadata store. Both are always registered,
including in health-only mode where no database is configured.

Usage
-----
Register health endpoints on the Falcon app::

    from parcel.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(pipeline))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from parcel.packaging.pipeline import PackagingPipeline

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe returning ``{"status": "ok"}``."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests."""
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe returning ``{"status": "ready"}``.

    When bound to a pipeline the body also reports ``in_flight``, the number
    of report tasks still running.

    """

    def __init__(self, pipeline: PackagingPipeline | None = None) -> None:
        """Optionally bind the probe to the packaging pipeline."""
        self._pipeline = pipeline

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        body: dict[str, typ.Any] = {"status": "ready"}
        if self._pipeline is not None:
            body["in_flight"] = self._pipeline.in_flight
        resp.media = body
        resp.status = HTTPStatus.OK
