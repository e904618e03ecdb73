"""Reminder scheduling engine for the day planner."""

from .daily import DailyRefreshTrigger, next_occurrence
from .models import ArmedTimer, NotificationEvent, ScheduleEntry, compute_fire_at
from .service import NotificationScheduler, ScheduleSource
from .subscribers import Subscriber, SubscriberRegistry
from .timers import APSchedulerTimerSource, TimerHandle, TimerRejectedError, TimerSource

__all__ = [
    "APSchedulerTimerSource",
    "ArmedTimer",
    "DailyRefreshTrigger",
    "NotificationEvent",
    "NotificationScheduler",
    "ScheduleEntry",
    "ScheduleSource",
    "Subscriber",
    "SubscriberRegistry",
    "TimerHandle",
    "TimerRejectedError",
    "TimerSource",
    "compute_fire_at",
    "next_occurrence",
]
