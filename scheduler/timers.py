"""Clock and one-shot timer source backed by APScheduler."""

from __future__ import annotations

import contextlib
import logging
from datetime import datetime
from typing import Awaitable, Callable, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], Awaitable[None]]


class TimerRejectedError(RuntimeError):
    """Raised when a timer is requested for an instant that is not in the future."""

    def __init__(self, fire_at: datetime, now: datetime) -> None:
        super().__init__(f"refusing to schedule {fire_at.isoformat()} (now {now.isoformat()})")
        self.fire_at = fire_at
        self.now = now


class TimerHandle(Protocol):
    def cancel(self) -> None:
        """Disarm the timer. Calling it again, or after firing, does nothing."""


class TimerSource(Protocol):
    def now(self) -> datetime:
        """Current server-local wall-clock time (naive)."""

    def schedule(self, fire_at: datetime, callback: TimerCallback, *, name: Optional[str] = None) -> TimerHandle:
        """Run ``callback`` on the event loop at ``fire_at``."""


class _JobHandle:
    def __init__(self, job) -> None:
        self._job = job

    def cancel(self) -> None:
        with contextlib.suppress(JobLookupError):
            self._job.remove()


class APSchedulerTimerSource:
    """
    One-shot timers as ``DateTrigger`` jobs on an ``AsyncIOScheduler``.

    Callbacks are coroutine functions, so the scheduler's asyncio executor runs
    them on the application's event loop rather than in a worker thread.
    """

    def __init__(
        self,
        scheduler: Optional[AsyncIOScheduler] = None,
        *,
        misfire_grace_seconds: int = 60,
    ) -> None:
        self._scheduler = scheduler or AsyncIOScheduler()
        self._misfire_grace_seconds = misfire_grace_seconds

    @property
    def running(self) -> bool:
        return bool(self._scheduler.running)

    def start(self) -> None:
        """Start the backing scheduler. Must be called from a running event loop."""
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("Timer source started")

    def shutdown(self) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Timer source stopped")

    def now(self) -> datetime:
        return datetime.now()

    def schedule(self, fire_at: datetime, callback: TimerCallback, *, name: Optional[str] = None) -> TimerHandle:
        now = self.now()
        if fire_at <= now:
            raise TimerRejectedError(fire_at, now)
        job = self._scheduler.add_job(
            callback,
            DateTrigger(run_date=fire_at),
            name=name,
            misfire_grace_time=self._misfire_grace_seconds,
        )
        logger.debug("Timer armed name=%s fire_at=%s job=%s", name, fire_at, job.id)
        return _JobHandle(job)
