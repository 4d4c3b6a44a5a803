"""Timer/event hybrid scheduler for the nearby computation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from pyzmon._constants import DEFAULT_IDLE_POLL_INTERVAL_S, DEFAULT_NEARBY_INTERVAL_S
from pyzmon.exceptions import MonitorStateError

_logger = logging.getLogger(__name__)


class WakeSignal:
    """Single-slot wake-up notification.

    Raising the signal while a previous one is still pending is a no-op;
    waiting consumes it.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def is_set(self) -> bool:
        return self._event.is_set()

    def notify(self) -> None:
        self._event.set()

    def clear(self) -> None:
        self._event.clear()

    async def wait(self, timeout: float) -> bool:
        """Wait for the signal or *timeout*; returns ``True`` if woken early."""
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
            return True
        except TimeoutError:
            return False
        finally:
            self._event.clear()


class NearbyScheduler:
    """Runs *tick* every ``interval`` seconds, earlier when woken.

    While ``is_active()`` is false the loop only polls every
    ``idle_interval`` seconds. After every active cycle ``after_cycle`` is
    awaited (profile cache persistence). Exceptions from either callback
    are logged and the loop carries on with the next cycle.
    """

    def __init__(
        self,
        *,
        tick: Callable[[], None],
        is_active: Callable[[], bool],
        after_cycle: Callable[[], Awaitable[None]] | None = None,
        interval: float = DEFAULT_NEARBY_INTERVAL_S,
        idle_interval: float = DEFAULT_IDLE_POLL_INTERVAL_S,
        wake: WakeSignal | None = None,
    ) -> None:
        self._tick = tick
        self._is_active = is_active
        self._after_cycle = after_cycle
        self._interval = interval
        self._idle_interval = idle_interval
        self.wake = wake or WakeSignal()
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self.cycles = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            raise MonitorStateError("Scheduler already running")
        self._running = True
        self.wake.clear()
        self._task = asyncio.get_running_loop().create_task(self._run(), name="pyzmon-nearby")

    async def stop(self) -> None:
        """Request shutdown and wait for the in-flight cycle to finish."""
        self._running = False
        self.wake.notify()
        task = self._task
        if task is None:
            return
        try:
            await task
        finally:
            self._task = None

    async def _run(self) -> None:
        while self._running:
            if not self._is_active():
                await asyncio.sleep(self._idle_interval)
                continue
            try:
                self._tick()
            except Exception:
                _logger.exception("Nearby tick failed")
            self.cycles += 1
            if not self._running:
                break
            woken = await self.wake.wait(self._interval)
            if woken:
                _logger.debug("Nearby scheduler woken early")
            if self._after_cycle is not None:
                try:
                    await self._after_cycle()
                except Exception:
                    _logger.exception("Post-cycle hook failed")
