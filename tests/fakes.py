from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, List, Optional

from api.services.schedule_store import ScheduleStore
from scheduler.models import ScheduleEntry
from scheduler.timers import TimerCallback, TimerRejectedError


@dataclass
class FakeTimer:
    fire_at: datetime
    callback: TimerCallback
    name: Optional[str]
    seq: int
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimerSource:
    """
    Manually driven clock.

    Nothing fires until a test calls ``advance``/``advance_to``; timers due by
    the target instant then run in fire-time order with the clock set to each
    timer's instant.
    """

    def __init__(self, now: datetime) -> None:
        self._now = now
        self._timers: List[FakeTimer] = []
        self._seq = 0

    def now(self) -> datetime:
        return self._now

    def set_now(self, instant: datetime) -> None:
        """Move the clock without running any timers."""
        self._now = instant

    def schedule(self, fire_at: datetime, callback: TimerCallback, *, name: Optional[str] = None) -> FakeTimer:
        if fire_at <= self._now:
            raise TimerRejectedError(fire_at, self._now)
        self._seq += 1
        timer = FakeTimer(fire_at=fire_at, callback=callback, name=name, seq=self._seq)
        self._timers.append(timer)
        return timer

    def pending(self, prefix: str = "") -> List[FakeTimer]:
        return sorted(
            (t for t in self._timers if not t.cancelled and not t.fired and (t.name or "").startswith(prefix)),
            key=lambda t: (t.fire_at, t.seq),
        )

    async def advance_to(self, instant: datetime) -> None:
        while True:
            due = [t for t in self.pending() if t.fire_at <= instant]
            if not due:
                break
            timer = due[0]
            self._now = timer.fire_at
            timer.fired = True
            await timer.callback()
        self._now = instant

    async def advance(self, delta: timedelta) -> None:
        await self.advance_to(self._now + delta)


class RecordingConnection:
    def __init__(self) -> None:
        self.messages: List[Any] = []

    async def send_json(self, data: Any) -> None:
        self.messages.append(data)


class BrokenConnection:
    def __init__(self) -> None:
        self.attempts = 0
        self.closed = False

    async def send_json(self, data: Any) -> None:
        self.attempts += 1
        raise ConnectionError("socket closed")

    async def close(self) -> None:
        self.closed = True
        raise RuntimeError("already closed")


class StalledConnection:
    def __init__(self) -> None:
        self.closed = False

    async def send_json(self, data: Any) -> None:
        await asyncio.sleep(3600)

    async def close(self) -> None:
        self.closed = True


@dataclass
class FlakyStore:
    """Schedule source whose queries can be switched to fail."""

    entries: List[ScheduleEntry] = field(default_factory=list)
    failing: bool = False

    async def query_by_date(self, day: date) -> List[ScheduleEntry]:
        if self.failing:
            raise ConnectionError("store unavailable")
        return [e for e in self.entries if e.date == day]

    async def get_by_id(self, entry_id: int) -> Optional[ScheduleEntry]:
        if self.failing:
            raise ConnectionError("store unavailable")
        return next((e for e in self.entries if e.id == entry_id), None)


class GatedStore(ScheduleStore):
    """In-memory store whose day queries wait until ``gate`` is open."""

    def __init__(self) -> None:
        super().__init__()
        self.gate = asyncio.Event()
        self.gate.set()
        self.waiting = asyncio.Event()

    async def query_by_date(self, day: date) -> List[ScheduleEntry]:
        self.waiting.set()
        await self.gate.wait()
        return await super().query_by_date(day)
