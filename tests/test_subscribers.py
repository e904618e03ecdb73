from __future__ import annotations

import pytest

from scheduler.models import NotificationEvent
from scheduler.subscribers import SubscriberRegistry

from .fakes import BrokenConnection, RecordingConnection, StalledConnection

EVENT = NotificationEvent(schedule_id=3, title="Standup", time="09:30")
MESSAGE = {"type": "notification", "data": {"scheduleId": 3, "title": "Standup", "time": "09:30"}}


@pytest.mark.asyncio
async def test_broadcast_reaches_each_connection_once(subscribers: SubscriberRegistry) -> None:
    connections = [RecordingConnection() for _ in range(3)]
    for conn in connections:
        subscribers.register(conn)

    delivered = await subscribers.broadcast(EVENT)

    assert delivered == 3
    assert [conn.messages for conn in connections] == [[MESSAGE]] * 3


@pytest.mark.asyncio
async def test_failing_connection_is_dropped_without_affecting_others(subscribers: SubscriberRegistry) -> None:
    healthy = RecordingConnection()
    broken = BrokenConnection()
    subscribers.register(healthy)
    subscribers.register(broken)

    assert await subscribers.broadcast(EVENT) == 1
    assert broken not in subscribers
    assert broken.closed
    assert len(subscribers) == 1

    await subscribers.broadcast(EVENT)
    assert broken.attempts == 1
    assert healthy.messages == [MESSAGE, MESSAGE]


@pytest.mark.asyncio
async def test_stalled_connection_times_out_and_is_dropped(subscribers: SubscriberRegistry) -> None:
    healthy = RecordingConnection()
    stalled = StalledConnection()
    subscribers.register(stalled)
    subscribers.register(healthy)

    assert await subscribers.broadcast(EVENT) == 1
    assert healthy.messages == [MESSAGE]
    assert stalled not in subscribers
    assert stalled.closed


@pytest.mark.asyncio
async def test_broadcast_without_subscribers_is_a_noop(subscribers: SubscriberRegistry) -> None:
    assert await subscribers.broadcast(EVENT) == 0


def test_unregister_is_idempotent(subscribers: SubscriberRegistry) -> None:
    conn = RecordingConnection()
    subscribers.register(conn)

    subscribers.unregister(conn)
    subscribers.unregister(conn)
    subscribers.unregister(RecordingConnection())

    assert len(subscribers) == 0


def test_event_message_shape() -> None:
    assert EVENT.to_message() == MESSAGE
