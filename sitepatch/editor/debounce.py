"""Coalesce bursts of edits into one persistence write."""

from __future__ import annotations

import asyncio
import logging
import typing as typ

from sitepatch._constants import DEFAULT_DEBOUNCE_SECONDS

logger = logging.getLogger(__name__)

SaveCallback = typ.Callable[[], typ.Awaitable[None]]


class DebouncedSaver:
    """Own one quiescence timer that runs ``callback`` after ``delay`` seconds.

    Every :meth:`schedule` restarts the timer. :meth:`cancel` drops a pending
    write; :meth:`flush` drops the timer and runs the write immediately,
    waiting for any write already in flight first. Failures of timer-driven
    writes are logged; failures during :meth:`flush` propagate.
    """

    def __init__(
        self, callback: SaveCallback, delay: float = DEFAULT_DEBOUNCE_SECONDS
    ) -> None:
        self._callback = callback
        self.delay = delay
        self._timer: asyncio.Task[None] | None = None
        self._inflight: asyncio.Task[None] | None = None

    @property
    def pending(self) -> bool:
        """Return True while a timer-driven write is waiting to fire."""
        return self._timer is not None

    def schedule(self) -> None:
        """Start or restart the timer. Requires a running event loop."""
        self.cancel()
        self._timer = asyncio.get_running_loop().create_task(self._run_later())

    def cancel(self) -> None:
        """Drop the pending write, if any."""
        if self._timer is None:
            return
        self._timer.cancel()
        self._timer = None

    async def flush(self) -> None:
        """Run the pending write now instead of waiting for the timer."""
        was_pending = self.pending
        self.cancel()
        await self.drain()
        if was_pending:
            await self._callback()

    async def drain(self) -> None:
        """Wait for a timer-driven write that has already started."""
        task = self._inflight
        if task is None or task.done():
            return
        await asyncio.wait({task})

    async def _run_later(self) -> None:
        await asyncio.sleep(self.delay)
        self._timer = None
        self._inflight = asyncio.current_task()
        try:
            await self._callback()
        except Exception:
            logger.exception("Debounced save failed")
        finally:
            self._inflight = None


__all__ = ["DebouncedSaver", "SaveCallback"]
