"""Unit tests for parcel.api.errors handlers.

Usage
-----
Run with pytest::

    pytest tests/unit/test_api_errors.py

"""

from __future__ import annotations

import falcon.asgi
import falcon.testing
import pytest

from parcel.api.errors import (
    handle_eligibility_fetch_failed,
    handle_report_not_found,
    handle_run_already_active,
    handle_store_unavailable,
)
from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
from parcel.store.errors import ReportNotFoundError, StoreUnavailableError


class _RaisingResource:
    """Resource raising the exception chosen by the route."""

    def __init__(self, exc: Exception) -> None:
        self._exc = exc

    async def on_get(
        self, req: falcon.asgi.Request, resp: falcon.asgi.Response
    ) -> None:
        raise self._exc


@pytest.fixture
def client() -> falcon.testing.TestClient:
    """Build a test client with every handler registered."""
    app = falcon.asgi.App()
    app.add_route("/busy", _RaisingResource(RunAlreadyActiveError()))
    app.add_route("/discovery", _RaisingResource(EligibilityFetchError("timeout")))
    app.add_route("/missing", _RaisingResource(ReportNotFoundError("r-9")))
    app.add_route(
        "/store", _RaisingResource(StoreUnavailableError("get_report_status", "down"))
    )
    app.add_error_handler(RunAlreadyActiveError, handle_run_already_active)
    app.add_error_handler(EligibilityFetchError, handle_eligibility_fetch_failed)
    app.add_error_handler(ReportNotFoundError, handle_report_not_found)
    app.add_error_handler(StoreUnavailableError, handle_store_unavailable)
    return falcon.testing.TestClient(app)


@pytest.mark.parametrize(
    ("path", "status", "title", "fragment"),
    [
        ("/busy", falcon.HTTP_503, "Packaging already running", "in progress"),
        ("/discovery", falcon.HTTP_500, "Eligibility fetch failed", "timeout"),
        ("/missing", falcon.HTTP_404, "Report not found", "r-9"),
        ("/store", falcon.HTTP_503, "Metadata store unavailable", "down"),
    ],
)
def test_handler_maps_error(
    client: falcon.testing.TestClient,
    path: str,
    status: str,
    title: str,
    fragment: str,
) -> None:
    """Each error maps to its status with a title and description."""
    result = client.simulate_get(path)

    assert result.status == status, f"expected {status} for {path}"
    assert result.json["title"] == title
    assert fragment in result.json["description"]
