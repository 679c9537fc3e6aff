"""Parcel HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application exposing the packaging trigger, report status polling
and health probes.

Usage
-----
Create and run the application::

    from parcel.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full mode with packaging endpoints

Public API
----------
AppDependencies
    Frozen dataclass holding the pipeline, store and timer settings.
create_app
    Application factory registering health endpoints and, when
    dependencies are complete, the packaging endpoints and lifespan
    middleware.
"""

from parcel.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
