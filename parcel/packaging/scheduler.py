"""In-process periodic trigger for packaging runs.

The trigger fires on a fixed interval and starts a run without waiting for
it to finish. A tick that lands while reports are still being packaged is
refused by the run guard and simply skipped. Any other error is logged and
the timer keeps running.

Usage
-----
>>> trigger = PeriodicTrigger(pipeline, interval_seconds=30)
>>> trigger.start()
>>> ...
>>> await trigger.stop()

"""

from __future__ import annotations

import asyncio
import contextlib
import typing as typ

from parcel.logging import get_logger, log_debug, log_exception, log_info
from parcel.packaging.errors import EligibilityFetchError, RunAlreadyActiveError
from parcel.store.storage import utcnow

if typ.TYPE_CHECKING:
    from parcel.packaging.pipeline import PackagingPipeline, RunStatus

logger = get_logger(__name__)


class PeriodicTrigger:
    """Fire ``pipeline.trigger()`` every ``interval_seconds``."""

    def __init__(self, pipeline: PackagingPipeline, interval_seconds: float) -> None:
        """Bind the trigger to a pipeline and a positive interval."""
        if interval_seconds <= 0:
            msg = f"interval_seconds must be positive, got {interval_seconds}"
            raise ValueError(msg)
        self._pipeline = pipeline
        self._interval = interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the timer loop is active."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the timer loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="packaging-trigger")

    async def stop(self) -> None:
        """Stop the timer loop; in-flight runs are not affected."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def tick(self) -> RunStatus | None:
        """Trigger one run; return its status or ``None`` when refused."""
        log_info(logger, "packaging triggered by timer at %s", utcnow().isoformat())
        try:
            run = await self._pipeline.trigger()
        except (RunAlreadyActiveError, EligibilityFetchError) as exc:
            log_debug(logger, "timer trigger skipped: %s", exc)
            return None
        return run.status

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception as exc:  # noqa: BLE001 - the timer outlives failed ticks
                log_exception(logger, "timer trigger failed", exc)
