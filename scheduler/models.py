"""Value types shared by the schedule store and the notification engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, Optional

from scheduler.timers import TimerHandle


@dataclass(frozen=True)
class ScheduleEntry:
    """A single dated occurrence in a user's day plan."""

    id: int
    title: str
    date: date
    time: time
    duration_minutes: int
    notify: bool = True
    description: Optional[str] = None
    user_id: Optional[int] = None

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.time)

    @property
    def clock_time(self) -> str:
        return self.time.strftime("%H:%M")


def compute_fire_at(entry: ScheduleEntry, lead_minutes: int = 10) -> datetime:
    """Return the instant a reminder for ``entry`` is due.

    Calendar arithmetic rolls over hour and day boundaries, so an entry at
    00:05 is due at 23:55 on the previous day.
    """

    return entry.starts_at - timedelta(minutes=lead_minutes)


@dataclass
class ArmedTimer:
    """A pending reminder for one entry."""

    entry_id: int
    fire_at: datetime
    cancel_handle: Optional[TimerHandle] = None
    _claimed: bool = field(default=False, repr=False)

    @property
    def claimed(self) -> bool:
        return self._claimed

    def claim(self) -> bool:
        """Take the single outcome of this timer: fire or cancel, never both."""

        if self._claimed:
            return False
        self._claimed = True
        return True

    def cancel(self) -> bool:
        claimed = self.claim()
        if self.cancel_handle is not None:
            self.cancel_handle.cancel()
        return claimed


@dataclass(frozen=True)
class NotificationEvent:
    schedule_id: int
    title: str
    time: str

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> "NotificationEvent":
        return cls(schedule_id=entry.id, title=entry.title, time=entry.clock_time)

    def to_message(self) -> Dict[str, Any]:
        """Wire format pushed to every subscriber."""

        return {
            "type": "notification",
            "data": {
                "scheduleId": self.schedule_id,
                "title": self.title,
                "time": self.time,
            },
        }
