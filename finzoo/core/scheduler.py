# finzoo/core/scheduler.py
import asyncio
import logging
from typing import Callable

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    A single owned handle for a recurring background job.

    The job is a plain (sync) callable; it runs in a worker thread so
    DB-bound work does not block the event loop. Errors are logged and
    the loop keeps going.

    Lifecycle:
      - start(): schedule on the running loop (no-op if already running)
      - stop(): cancel and wait; the task may be started again
      - dispose(): stop for good; start() afterwards raises RuntimeError
    """

    def __init__(self, name: str, interval: float, func: Callable[[], object]):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._func = func
        self._task: asyncio.Task | None = None
        self._disposed = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self._disposed:
            raise RuntimeError(f"Periodic task '{self.name}' was disposed")
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self.name)

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await asyncio.to_thread(self._func)
            except Exception:
                logger.exception("Periodic task '%s' failed", self.name)

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def dispose(self) -> None:
        self._disposed = True
        await self.stop()
