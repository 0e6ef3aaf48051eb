from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional, Set, Tuple


class Debouncer:
    """Coalesce bursts of calls into one run of ``fn`` after ``quiet_period`` seconds.

    Only the arguments of the last call inside the quiet window are used.
    Calling never blocks: the run happens on the event loop once the window
    closes. Call :meth:`cancel` on unmount to drop a pending run, or
    :meth:`flush` to run it right away.
    """

    def __init__(self, quiet_period: float, fn: Callable[..., Awaitable[Any]]) -> None:
        self.quiet_period = quiet_period
        self._fn = fn
        self._timer: Optional[asyncio.TimerHandle] = None
        self._args: Optional[Tuple[Any, ...]] = None
        self._running: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def __call__(self, *args: Any) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
        self._args = args
        self._timer = loop.call_later(self.quiet_period, self._fire)

    def _fire(self) -> None:
        self._timer = None
        args, self._args = self._args, None
        if args is None:
            return
        task = asyncio.get_running_loop().create_task(self._fn(*args))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def flush(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None
        args, self._args = self._args, None
        if args is not None:
            await self._fn(*args)

    async def wait(self) -> None:
        """Wait for runs already started by the timer."""
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._args = None
