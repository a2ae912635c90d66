"""
Reconciliation scheduler.

Runs one cycle as soon as it is started, then one cycle every interval. Only
one trigger is ever armed: start() cancels the previous one first, so a
reconnect never leaves two loops running side by side.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.scheduler")


class ReconciliationScheduler:
    def __init__(self, cycle: Callable[[], Awaitable[Any]], interval_s: float):
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self.cycle = cycle
        self.interval_s = interval_s
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Arm the trigger (replacing any armed one); the first cycle runs right away."""
        self.stop()
        logger.info(f"Checking remote files every {_format_interval(self.interval_s)}")
        self._task = asyncio.create_task(self._loop(), name="sftpsync-reconcile")
        return self._task

    def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None or task.done():
            return
        # A cycle that triggers a reconnect stops its own scheduler; let it finish
        if task is asyncio.current_task():
            return
        task.cancel()

    async def aclose(self) -> None:
        """Stop and wait for an in-progress cycle to unwind."""
        task = self._task
        self.stop()
        if task is not None and task is not asyncio.current_task():
            await asyncio.gather(task, return_exceptions=True)

    async def _loop(self) -> None:
        while True:
            try:
                await self.cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Reconciliation cycle failed unexpectedly: {e}", exc_info=True)
            if asyncio.current_task() is not self._task:
                return
            await asyncio.sleep(self.interval_s)


def _format_interval(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        return f"{int(seconds // 60)} minutes"
    return f"{seconds:g}s"
