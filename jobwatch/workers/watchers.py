from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from jobwatch.core.logging import get_logger

if TYPE_CHECKING:
    from jobwatch.application.tracker import JobTracker

logger = get_logger(__name__)

POLLING_STOPPED_MESSAGE = "Status updates stopped unexpectedly"


class PollingWorker:
    """Owns one polling task per open watch."""

    def __init__(self) -> None:
        self._tasks: dict[str, asyncio.Task] = {}

    def is_running(self, watch_id: str) -> bool:
        task = self._tasks.get(watch_id)
        return task is not None and not task.done()

    def start(self, watch_id: str, tracker: JobTracker) -> bool:
        """Begin polling for ``tracker``; returns ``False`` if nothing was started."""

        if self.is_running(watch_id) or not tracker.needs_polling:
            return False
        task = asyncio.get_running_loop().create_task(self._run(watch_id, tracker), name=f"poll:{watch_id}")
        self._tasks[watch_id] = task
        return True

    async def _run(self, watch_id: str, tracker: JobTracker) -> None:
        try:
            view = await tracker.watch()
        except asyncio.CancelledError:
            logger.info("polling_cancelled", watch_id=watch_id)
            raise
        except Exception as exc:
            logger.exception("polling_crashed", watch_id=watch_id)
            tracker.mark_failed(f"{POLLING_STOPPED_MESSAGE} ({type(exc).__name__})")
        else:
            logger.info("polling_finished", watch_id=watch_id, state=view.state)
        finally:
            if self._tasks.get(watch_id) is asyncio.current_task():
                del self._tasks[watch_id]

    async def stop(self, watch_id: str) -> None:
        task = self._tasks.pop(watch_id, None)
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def shutdown(self) -> None:
        for watch_id in list(self._tasks):
            await self.stop(watch_id)

    def cancel_all(self) -> None:
        """Cancel every task without waiting for it to unwind."""

        for task in self._tasks.values():
            if not task.done() and not task.get_loop().is_closed():
                task.cancel()
        self._tasks.clear()

    def running(self) -> list[str]:
        return [watch_id for watch_id, task in self._tasks.items() if not task.done()]


_worker: PollingWorker | None = None


def get_polling_worker() -> PollingWorker:
    global _worker
    if _worker is None:
        _worker = PollingWorker()
    return _worker
