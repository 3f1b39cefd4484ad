"""
Periodic refresh of a screen.

`start()` runs the initial (primary) load and then a background reload every
`interval` seconds. `trigger()` is the manual refresh button: a background
reload outside the cadence. Only one reload runs at a time; a tick or trigger
arriving while one is in flight joins it instead of starting another.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Optional

from sheetdesk.config import get_settings
from sheetdesk.utils.logging import get_logger

log = get_logger(__name__)

Refresh = Callable[[bool], Awaitable[Any]]


class RefreshLoop:
    """
    Timer-driven reloads for one screen.

    Parameters
    ----------
    refresh : callable
        `refresh(background)` performs one load; `background=False` only for
        the initial load.
    interval : float | None
        Seconds between background reloads; defaults to
        settings.refresh_interval_seconds.
    """

    def __init__(self, refresh: Refresh, interval: Optional[float] = None, name: str = "refresh") -> None:
        self._refresh = refresh
        self.interval = interval if interval is not None else get_settings().refresh_interval_seconds
        self.name = name
        self._loop_task: Optional[asyncio.Task[None]] = None
        self._inflight: Optional[asyncio.Task[Any]] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def start(self) -> "asyncio.Task[None]":
        """Start (or restart) the loop; an existing loop is cancelled first."""
        if self._loop_task is not None and not self._loop_task.done():
            log.debug("Restarting %s loop", self.name)
            self._loop_task.cancel()
        self._loop_task = asyncio.get_running_loop().create_task(self._run(), name=self.name)
        return self._loop_task

    def trigger(self) -> "asyncio.Task[Any]":
        """Manual refresh through the background path."""
        return self._begin(background=True)

    def _begin(self, background: bool) -> "asyncio.Task[Any]":
        if self._inflight is not None and not self._inflight.done():
            return self._inflight
        self._inflight = asyncio.get_running_loop().create_task(self._refresh(background))
        return self._inflight

    async def _run(self) -> None:
        await self._guarded(background=False)
        while True:
            await asyncio.sleep(self.interval)
            self.ticks += 1
            log.info("Auto-refreshing %s", self.name, extra={"tick": self.ticks})
            await self._guarded(background=True)

    async def _guarded(self, background: bool) -> None:
        try:
            await self._begin(background)
        except asyncio.CancelledError:
            raise
        except Exception:  # noqa: BLE001 - keep the timer alive across a failed reload
            log.exception("Refresh of %s failed", self.name)

    async def stop(self) -> None:
        """Cancel the loop and any reload it is waiting on."""
        tasks = [t for t in (self._loop_task, self._inflight) if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._loop_task = None
        self._inflight = None


__all__ = ["Refresh", "RefreshLoop"]
