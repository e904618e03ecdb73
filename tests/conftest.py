from __future__ import annotations

from datetime import datetime

import pytest

from api.services.schedule_store import ScheduleStore
from scheduler.service import NotificationScheduler
from scheduler.subscribers import SubscriberRegistry

from .fakes import FakeTimerSource

# Mid-morning so "today" has room on both sides of the clock.
NOW = datetime(2026, 10, 17, 9, 0)


@pytest.fixture()
def clock() -> FakeTimerSource:
    return FakeTimerSource(NOW)


@pytest.fixture()
def store() -> ScheduleStore:
    return ScheduleStore()


@pytest.fixture()
def subscribers() -> SubscriberRegistry:
    return SubscriberRegistry(send_timeout=0.05)


@pytest.fixture()
def notifier(store: ScheduleStore, subscribers: SubscriberRegistry, clock: FakeTimerSource) -> NotificationScheduler:
    """
    Scheduler wired to a real in-memory store.

    The store's mutation hook is connected the same way the app factory does it.
    """
    scheduler = NotificationScheduler(store, subscribers, clock, lead_minutes=10)
    store.add_mutation_listener(scheduler.on_mutation)
    return scheduler
