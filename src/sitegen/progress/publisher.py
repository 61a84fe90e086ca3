"""Publisher fanning progress updates out to in-process subscribers."""

from __future__ import annotations

import inspect
from collections.abc import Awaitable, Callable

from ..logging import get_logger
from .models import ProgressUpdate

logger = get_logger(__name__)

ProgressCallback = Callable[[ProgressUpdate], Awaitable[None] | None]


class ProgressPublisher:
    def __init__(self) -> None:
        self._subscribers: list[ProgressCallback] = []

    def subscribe(self, callback: ProgressCallback) -> Callable[[], None]:
        """Register a sync or async callback; returns a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, update: ProgressUpdate) -> None:
        """Deliver an update to every subscriber in registration order.

        A failing subscriber is logged and does not stop delivery to the others.
        """
        logger.debug(
            "Publishing progress update",
            step=update.step,
            status=update.status,
            progress=update.progress,
            subscribers=len(self._subscribers),
        )
        for callback in list(self._subscribers):
            try:
                result = callback(update)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(
                    "Progress subscriber failed",
                    subscriber=getattr(callback, "__qualname__", repr(callback)),
                    step=update.step,
                )
