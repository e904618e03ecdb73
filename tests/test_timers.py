from __future__ import annotations

import asyncio
from datetime import datetime, timedelta

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from scheduler.timers import APSchedulerTimerSource, TimerRejectedError


async def _noop() -> None:
    return None


def test_past_instant_is_rejected() -> None:
    source = APSchedulerTimerSource()

    with pytest.raises(TimerRejectedError):
        source.schedule(datetime.now() - timedelta(seconds=1), _noop)


def test_cancel_is_idempotent() -> None:
    backend = AsyncIOScheduler()
    source = APSchedulerTimerSource(backend)

    handle = source.schedule(datetime.now() + timedelta(hours=1), _noop, name="notify-1")
    assert len(backend.get_jobs()) == 1

    handle.cancel()
    handle.cancel()

    assert backend.get_jobs() == []


@pytest.mark.asyncio
async def test_coroutine_callback_runs_on_the_event_loop() -> None:
    source = APSchedulerTimerSource()
    fired = asyncio.Event()
    loop = asyncio.get_running_loop()
    seen_loops = []

    async def callback() -> None:
        seen_loops.append(asyncio.get_running_loop())
        fired.set()

    source.start()
    try:
        source.schedule(datetime.now() + timedelta(milliseconds=200), callback)
        await asyncio.wait_for(fired.wait(), timeout=5)
    finally:
        source.shutdown()

    assert seen_loops == [loop]
