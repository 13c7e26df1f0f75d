from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

LOGGER = logging.getLogger(__name__)


class DeletionScheduler:
    """Delayed, cancellable channel deletions keyed by channel id."""

    def __init__(self) -> None:
        self._pending: dict[int, asyncio.Task[None]] = {}

    def schedule(
        self,
        channel_id: int,
        delay_seconds: float,
        action: Callable[[], Awaitable[object]],
    ) -> asyncio.Task[None]:
        self.cancel(channel_id)

        async def run_after_delay() -> None:
            try:
                await asyncio.sleep(delay_seconds)
            finally:
                if self._pending.get(channel_id) is task:
                    self._pending.pop(channel_id, None)
            # no longer cancellable once the action has started
            await action()

        task = asyncio.create_task(run_after_delay(), name=f"delete-channel-{channel_id}")
        self._pending[channel_id] = task
        LOGGER.debug("Scheduled deletion of channel %s in %.1fs", channel_id, delay_seconds)
        return task

    def cancel(self, channel_id: int) -> bool:
        task = self._pending.pop(channel_id, None)
        if task is None or task.done():
            return False
        task.cancel()
        LOGGER.info("Cancelled scheduled deletion of channel %s", channel_id)
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for channel_id in list(self._pending):
            if self.cancel(channel_id):
                cancelled += 1
        return cancelled

    def is_pending(self, channel_id: int) -> bool:
        task = self._pending.get(channel_id)
        return task is not None and not task.done()

    @property
    def pending_count(self) -> int:
        return sum(1 for task in self._pending.values() if not task.done())
