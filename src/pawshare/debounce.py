"""
Debounced scheduling of coroutine work on the running event loop.

Every ``trigger()`` resets the window; the action runs once the window has
passed without another trigger. ``cancel()`` drops a pending run and any task
it already started, so nothing fires against torn-down state.
"""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    def __init__(self, delay: float, action: Callable[[], Coroutine[Any, Any, Any]], name: str = "debounce"):
        self._delay = delay
        self._action = action
        self._name = name
        self._timer: Optional[asyncio.TimerHandle] = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None or bool(self._tasks)

    def trigger(self, delay: Optional[float] = None) -> None:
        """(Re)start the window. ``delay`` overrides the default window for this trigger."""
        if self._timer:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay if delay is None else delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self._run())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self) -> None:
        try:
            await self._action()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("%s action failed", self._name)

    def cancel(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()

    async def flush(self) -> None:
        """Wait for any started run to finish. Used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
