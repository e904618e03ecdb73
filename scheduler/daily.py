"""Once-a-day wake-up for the notification scheduler."""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta
from typing import Awaitable, Callable, Optional

from scheduler.timers import TimerHandle, TimerSource

logger = logging.getLogger(__name__)


def next_occurrence(now: datetime, at: time) -> datetime:
    """First instant strictly after ``now`` whose local time of day is ``at``."""

    candidate = datetime.combine(now.date(), at)
    if candidate <= now:
        candidate = datetime.combine(now.date() + timedelta(days=1), at)
    return candidate


class DailyRefreshTrigger:
    """
    Re-arming daily timer.

    The trigger is always armed for the next occurrence of ``at`` while it
    runs. Each firing awaits the callback and then re-arms for the following
    day. Ticks missed while the process was stopped are not replayed.
    """

    def __init__(
        self,
        timers: TimerSource,
        callback: Callable[[], Awaitable[None]],
        *,
        at: time = time(0, 0),
    ) -> None:
        self._timers = timers
        self._callback = callback
        self._at = at
        self._handle: Optional[TimerHandle] = None
        self._next_run: Optional[datetime] = None
        self._running = False

    @property
    def next_run(self) -> Optional[datetime]:
        return self._next_run if self._running else None

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._arm()

    def stop(self) -> None:
        self._running = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._next_run = None

    def _arm(self) -> None:
        fire_at = next_occurrence(self._timers.now(), self._at)
        self._handle = self._timers.schedule(fire_at, self._fire, name="daily-refresh")
        self._next_run = fire_at
        logger.debug("Daily refresh armed for %s", fire_at)

    async def _fire(self) -> None:
        if not self._running:
            return
        logger.info("Daily refresh firing")
        try:
            await self._callback()
        except Exception:
            logger.exception("Daily refresh callback failed")
        finally:
            if self._running:
                self._arm()
