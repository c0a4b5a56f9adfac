"""Background refresh of the summary snapshot.

Runs outside the reducers: reads the places straight from storage,
recomputes the snapshot and publishes it. The host may expire the run at
any point, which cancels the work cooperatively.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime

from .data_store import PersistenceError
from .gateway import PersistenceGateway
from .models import WidgetSnapshot
from .snapshot import SnapshotWriter, next_refresh_time

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_HOUR = 3
DEFAULT_REFRESH_MINUTE = 0


class BackgroundRefresh:
    def __init__(
        self,
        gateway: PersistenceGateway,
        snapshot_writer: SnapshotWriter,
        now: Callable[[], datetime] = datetime.now,
        hour: int = DEFAULT_REFRESH_HOUR,
        minute: int = DEFAULT_REFRESH_MINUTE,
    ):
        self.gateway = gateway
        self.snapshot_writer = snapshot_writer
        self.now = now
        self.hour = hour
        self.minute = minute
        self._task: asyncio.Task | None = None

    def next_run(self, now: datetime | None = None) -> datetime:
        """Earliest time the next refresh should begin."""
        return next_refresh_time(now or self.now(), self.hour, self.minute)

    async def run(self) -> WidgetSnapshot | None:
        """Recompute and publish the snapshot; None when it could not be."""
        try:
            places = await self.gateway.load()
        except PersistenceError:
            logger.warning("Background refresh could not load places", exc_info=True)
            return None
        return await asyncio.to_thread(self.snapshot_writer.publish, places, self.now())

    def handle(self) -> asyncio.Task:
        """Start a refresh run in the background and return its task."""
        if self._task is not None and not self._task.done():
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run())
        logger.debug("Background refresh started; next run at %s", self.next_run())
        return self._task

    def expire(self) -> bool:
        """Cancel an in-flight run. Returns whether there was one to cancel."""
        if self._task is None or self._task.done():
            return False
        self._task.cancel()
        logger.info("Background refresh expired before completing")
        return True

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()
