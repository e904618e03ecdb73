"""Reminder scheduling for today's schedule entries.

The scheduler keeps one armed timer per notify-enabled entry dated today
whose reminder instant is still ahead. Every trigger (store mutation, daily
refresh, startup) rebuilds that set from the store: all timers are cancelled
and the current ones re-armed, so a stale timer can never outlive the data it
was derived from.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time
from functools import partial
from typing import Dict, List, Optional, Protocol

from scheduler.daily import DailyRefreshTrigger
from scheduler.models import ArmedTimer, NotificationEvent, ScheduleEntry, compute_fire_at
from scheduler.subscribers import SubscriberRegistry
from scheduler.timers import TimerRejectedError, TimerSource

logger = logging.getLogger(__name__)


class ScheduleSource(Protocol):
    async def query_by_date(self, day: date) -> List[ScheduleEntry]:
        ...

    async def get_by_id(self, entry_id: int) -> Optional[ScheduleEntry]:
        ...


class NotificationScheduler:
    """Owns the armed-timer set and pushes reminders to the subscriber registry."""

    def __init__(
        self,
        store: ScheduleSource,
        subscribers: SubscriberRegistry,
        timers: TimerSource,
        *,
        lead_minutes: int = 10,
        refresh_at: time = time(0, 0),
    ) -> None:
        self._store = store
        self._subscribers = subscribers
        self._timers = timers
        self._lead_minutes = lead_minutes
        self._lock = asyncio.Lock()
        self._armed: Dict[int, ArmedTimer] = {}
        # entry id -> day a reminder went out; at most one per entry per day
        self._notified: Dict[int, date] = {}
        self._daily = DailyRefreshTrigger(timers, self.on_daily_refresh, at=refresh_at)

    @property
    def subscribers(self) -> SubscriberRegistry:
        return self._subscribers

    @property
    def daily_trigger(self) -> DailyRefreshTrigger:
        return self._daily

    def armed(self) -> Dict[int, datetime]:
        """Snapshot of the armed set as ``{entry_id: fire_at}``."""

        return {entry_id: timer.fire_at for entry_id, timer in self._armed.items()}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        self._daily.start()
        await self.reconcile()
        logger.info("Notification scheduler started (armed=%s)", len(self._armed))

    async def shutdown(self) -> None:
        self._daily.stop()
        async with self._lock:
            self._cancel_all()
        self._subscribers.clear()
        logger.info("Notification scheduler stopped")

    # ------------------------------------------------------------------
    # Triggers
    # ------------------------------------------------------------------
    async def on_mutation(self) -> None:
        await self.reconcile()

    async def on_daily_refresh(self) -> None:
        await self.reconcile()

    async def reconcile(self) -> bool:
        """Rebuild the armed set from today's entries.

        Returns ``False`` when the store could not be read; the existing
        timers are then left as they were until the next trigger.
        """

        async with self._lock:
            today = self._timers.now().date()
            try:
                entries = await self._store.query_by_date(today)
            except Exception:
                logger.exception("Reconciliation aborted: schedule store query failed for %s", today)
                return False

            self._cancel_all()
            self._notified = {entry_id: day for entry_id, day in self._notified.items() if day == today}

            now = self._timers.now()
            for entry in entries:
                if not entry.notify or entry.date != today:
                    continue
                if self._notified.get(entry.id) == today:
                    continue
                fire_at = compute_fire_at(entry, self._lead_minutes)
                if fire_at <= now:
                    logger.debug("Skipping schedule %s: reminder time %s already passed", entry.id, fire_at)
                    continue
                self._arm(entry.id, fire_at)

            logger.info("Reconciled %s entries for %s, armed=%s", len(entries), today, len(self._armed))
            return True

    async def on_timer_fire(self, entry_id: int, timer: Optional[ArmedTimer] = None) -> Optional[NotificationEvent]:
        """Send the reminder for ``entry_id`` using its current data.

        Returns the broadcast event, or ``None`` when the fire turned out to be
        stale: the entry was deleted, muted, moved to another day or already
        notified, or an edit moved its reminder to a later instant that a newer
        timer now covers.
        """

        async with self._lock:
            current = self._armed.get(entry_id)
            if timer is not None and current is timer:
                del self._armed[entry_id]

            try:
                entry = await self._store.get_by_id(entry_id)
            except Exception:
                logger.exception("Reminder for schedule %s dropped: store lookup failed", entry_id)
                return None

            now = self._timers.now()
            today = now.date()
            if entry is None:
                logger.info("Reminder for schedule %s skipped: entry no longer exists", entry_id)
                return None
            if not entry.notify:
                logger.info("Reminder for schedule %s skipped: notifications disabled", entry_id)
                return None
            if entry.date != today:
                logger.info("Reminder for schedule %s skipped: entry moved to %s", entry_id, entry.date)
                return None
            if self._notified.get(entry_id) == today:
                logger.info("Reminder for schedule %s skipped: already sent today", entry_id)
                return None
            if timer is not None:
                due = compute_fire_at(entry, self._lead_minutes)
                if due != timer.fire_at and due > now:
                    # rescheduled while this timer was firing; the newer timer owns it
                    logger.info("Reminder for schedule %s skipped: rescheduled to %s", entry_id, due)
                    return None

            self._notified[entry_id] = today
            pending = self._armed.pop(entry_id, None)
            if pending is not None and pending is not timer:
                pending.cancel()

            event = NotificationEvent.from_entry(entry)

        await self._subscribers.broadcast(event)
        return event

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _arm(self, entry_id: int, fire_at: datetime) -> None:
        timer = ArmedTimer(entry_id=entry_id, fire_at=fire_at)
        try:
            timer.cancel_handle = self._timers.schedule(
                fire_at, partial(self._fire, timer), name=f"notify-{entry_id}"
            )
        except TimerRejectedError as exc:
            logger.warning("Skipping schedule %s: %s", entry_id, exc)
            return
        self._armed[entry_id] = timer
        logger.debug("Armed reminder for schedule %s at %s", entry_id, fire_at)

    def _cancel_all(self) -> None:
        for timer in self._armed.values():
            timer.cancel()
        self._armed.clear()

    async def _fire(self, timer: ArmedTimer) -> None:
        if not timer.claim():
            logger.debug("Timer for schedule %s was cancelled before firing", timer.entry_id)
            return
        try:
            await self.on_timer_fire(timer.entry_id, timer)
        except Exception:
            logger.exception("Reminder for schedule %s failed", timer.entry_id)
