"""Falcon error handlers translating packaging errors into HTTP responses.

Usage
-----
Register error handlers on the Falcon app::

    app.add_error_handler(RunAlreadyActiveError, handle_run_already_active)
    app.add_error_handler(EligibilityFetchError, handle_eligibility_fetch_failed)
    app.add_error_handler(ReportNotFoundError, handle_report_not_found)
    app.add_error_handler(StoreUnavailableError, handle_store_unavailable)

"""

from __future__ import annotations

import typing as typ

import falcon

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
    from parcel.store.errors import ReportNotFoundError, StoreUnavailableError

__all__ = [
    "handle_eligibility_fetch_failed",
    "handle_report_not_found",
    "handle_run_already_active",
    "handle_store_unavailable",
]


async def handle_run_already_active(
    _req: Request,
    resp: Response,
    ex: RunAlreadyActiveError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a tripped run guard to HTTP 503.

    No report was touched; the caller may retry once the current run has
    finished.
    """
    resp.status = falcon.HTTP_503
    resp.media = {
        "title": "Packaging already running",
        "description": str(ex),
    }


async def handle_eligibility_fetch_failed(
    _req: Request,
    resp: Response,
    ex: EligibilityFetchError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a failed discovery query to HTTP 500.

    Parameters
    ----------
    _req
        Falcon request (unused).
    resp
        Falcon response whose status and media are set.
    ex
        The discovery error carrying the store failure reason.
    _params
        URI template parameters (unused).

    """
    resp.status = falcon.HTTP_500
    resp.media = {
        "title": "Eligibility fetch failed",
        "description": str(ex),
    }


async def handle_report_not_found(
    _req: Request,
    resp: Response,
    ex: ReportNotFoundError,
    _params: dict[str, typ.Any],
) -> None:
    """Map ``ReportNotFoundError`` to an HTTP 404 JSON response."""
    resp.status = falcon.HTTP_404
    resp.media = {
        "title": "Report not found",
        "description": str(ex),
    }


async def handle_store_unavailable(
    _req: Request,
    resp: Response,
    ex: StoreUnavailableError,
    _params: dict[str, typ.Any],
) -> None:
    """Map a store outage during a status lookup to HTTP 503."""
    resp.status = falcon.HTTP_503
    resp.media = {
        "title": "Metadata store unavailable",
        "description": str(ex),
    }
