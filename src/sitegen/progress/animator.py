"""
Smooth display progress between the coarse step boundaries the server reports.

The server only says which stage started or finished; the animator eases the
displayed percentage toward the latest target so the bar keeps moving while a
long stage runs. It has no effect on pipeline correctness.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from ..config import Settings
from ..config import settings as default_settings

# Within this many points of the target the animator moves at half speed
SLOWDOWN_WINDOW = 10.0


class ProgressAnimator:
    """Ease-out interpolation of a displayed percentage toward a target.

    The displayed value never decreases until ``reset()`` starts a new job.
    Outside a running event loop no tick task is started and callers drive
    the animation with ``tick()``.
    """

    def __init__(
        self,
        on_update: Callable[[float], None] | None = None,
        increment: float | None = None,
        interval: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or default_settings
        self.on_update = on_update
        self.increment = increment if increment is not None else settings.progress_increment
        self.interval = interval if interval is not None else settings.progress_tick_interval
        self.displayed = 0.0
        self.target = 0.0
        self._task: asyncio.Task[None] | None = None
        self._fast = False

    @property
    def percent(self) -> int:
        return round(self.displayed)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def animate_to(self, target: float, fast: bool = False) -> None:
        """Move the target and restart ticking from the current displayed value."""
        target = min(max(float(target), 0.0), 100.0)
        if target > self.target:
            self.target = target
        self._fast = fast

        self.stop()
        if self.displayed >= self.target:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._task = loop.create_task(self._run())

    def tick(self) -> float:
        """Advance one step toward the target and return the displayed value."""
        if self.displayed < self.target:
            increment = self.increment * 2 if self._fast else self.increment
            remaining = self.target - self.displayed
            step = increment if remaining > SLOWDOWN_WINDOW else increment / 2
            self.displayed = min(self.displayed + step, self.target)
            if self.on_update is not None:
                self.on_update(self.displayed)
        return self.displayed

    async def _run(self) -> None:
        interval = self.interval / 2 if self._fast else self.interval
        while self.displayed < self.target:
            await asyncio.sleep(interval)
            self.tick()

    def stop(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def reset(self) -> None:
        self.stop()
        self.displayed = 0.0
        self.target = 0.0
        self._fast = False
        if self.on_update is not None:
            self.on_update(self.displayed)

    async def settle(self) -> None:
        """Wait until the running animation reaches its target or is stopped."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})
