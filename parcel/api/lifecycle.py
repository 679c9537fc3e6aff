"""ASGI lifespan middleware for the packaging pipeline.

On startup the middleware clears stale ``packaging`` markers before the
app accepts any trigger, then starts the periodic timer. On shutdown it
stops the timer and gives in-flight reports a grace period before
cancelling them.

Usage
-----
Register the middleware when creating the Falcon app::

    lifecycle = PackagingLifecycle(pipeline, trigger_interval_seconds=30)
    app = falcon.asgi.App(middleware=[lifecycle])

"""

from __future__ import annotations

import typing as typ

from parcel.logging import get_logger, log_info
from parcel.packaging.scheduler import PeriodicTrigger

if typ.TYPE_CHECKING:
    from parcel.packaging.pipeline import PackagingPipeline

__all__ = ["DEFAULT_SHUTDOWN_GRACE_SECONDS", "PackagingLifecycle"]

logger = get_logger(__name__)

DEFAULT_SHUTDOWN_GRACE_SECONDS = 10.0


class PackagingLifecycle:
    """Falcon middleware bound to the ASGI lifespan events.

    Parameters
    ----------
    pipeline
        The packaging pipeline shared with the trigger resource.
    trigger_interval_seconds
        Periodic trigger interval; ``0`` leaves the timer off.
    shutdown_grace_seconds
        How long in-flight reports may run after shutdown begins.

    """

    def __init__(
        self,
        pipeline: PackagingPipeline,
        *,
        trigger_interval_seconds: float = 0,
        shutdown_grace_seconds: float = DEFAULT_SHUTDOWN_GRACE_SECONDS,
    ) -> None:
        """Store the pipeline and timing settings."""
        self._pipeline = pipeline
        self._interval = trigger_interval_seconds
        self._grace = shutdown_grace_seconds
        self._trigger: PeriodicTrigger | None = None

    @property
    def trigger(self) -> PeriodicTrigger | None:
        """The running periodic trigger, if one was started."""
        return self._trigger

    async def process_startup(self, _scope: object, _event: object) -> None:
        """Reconcile stale markers, then start the periodic trigger."""
        await self._pipeline.reconcile()
        if self._interval > 0:
            self._trigger = PeriodicTrigger(self._pipeline, self._interval)
            self._trigger.start()
            log_info(
                logger, "periodic packaging trigger every %ss", self._interval
            )

    async def process_shutdown(self, _scope: object, _event: object) -> None:
        """Stop the trigger and drain in-flight reports."""
        try:
            if self._trigger is not None:
                await self._trigger.stop()
        finally:
            self._trigger = None
            await self._drain()

    async def _drain(self) -> None:
        in_flight = self._pipeline.in_flight
        if in_flight:
            log_info(
                logger,
                "waiting up to %ss for %d in-flight reports",
                self._grace,
                in_flight,
            )
        await self._pipeline.shutdown(self._grace)
