"""HTTP routes for managing schedule entries.

Handlers talk to the ``ScheduleStore`` kept on ``app.state``; every
successful mutation triggers a reminder reconciliation through the store's
mutation listeners.
"""

from __future__ import annotations

from datetime import timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response

from api.models.schemas import Schedule, ScheduleCreate, ScheduleUpdate
from api.services.schedule_store import ScheduleStore
from scheduler.timers import TimerSource

router = APIRouter(prefix="/api/schedules", tags=["schedules"])


def get_store(request: Request) -> ScheduleStore:
    return request.app.state.store


def get_timers(request: Request) -> TimerSource:
    return request.app.state.timers


@router.get("", response_model=List[Schedule])
async def list_schedules(
    user_id: Optional[int] = Query(None, alias="userId"),
    store: ScheduleStore = Depends(get_store),
) -> List[Schedule]:
    """Return every entry, optionally only those owned by ``userId``."""

    return [Schedule.from_entry(entry) for entry in await store.list_entries(user_id)]


@router.get("/today", response_model=List[Schedule])
async def today_schedules(
    store: ScheduleStore = Depends(get_store),
    timers: TimerSource = Depends(get_timers),
) -> List[Schedule]:
    today = timers.now().date()
    return [Schedule.from_entry(entry) for entry in await store.query_by_date(today)]


@router.get("/tomorrow", response_model=List[Schedule])
async def tomorrow_schedules(
    store: ScheduleStore = Depends(get_store),
    timers: TimerSource = Depends(get_timers),
) -> List[Schedule]:
    tomorrow = timers.now().date() + timedelta(days=1)
    return [Schedule.from_entry(entry) for entry in await store.query_by_date(tomorrow)]


@router.get("/upcoming", response_model=List[Schedule])
async def upcoming_schedules(
    store: ScheduleStore = Depends(get_store),
    timers: TimerSource = Depends(get_timers),
) -> List[Schedule]:
    """Entries dated today or later, ordered by date then start time."""

    today = timers.now().date()
    return [Schedule.from_entry(entry) for entry in await store.query_upcoming(today)]


@router.get("/{schedule_id}", response_model=Schedule)
async def get_schedule(schedule_id: str, store: ScheduleStore = Depends(get_store)) -> Schedule:
    entry = await store.get_by_id(_parse_id(schedule_id))
    if entry is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return Schedule.from_entry(entry)


@router.post("", response_model=Schedule, status_code=201)
async def create_schedule(request: ScheduleCreate, store: ScheduleStore = Depends(get_store)) -> Schedule:
    """Create an entry and re-arm today's reminders."""

    try:
        entry = await store.create(request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return Schedule.from_entry(entry)


@router.put("/{schedule_id}", response_model=Schedule)
async def update_schedule(
    schedule_id: str,
    request: ScheduleUpdate,
    store: ScheduleStore = Depends(get_store),
) -> Schedule:
    """Apply a partial update; fields absent from the body are kept."""

    try:
        entry = await store.update(_parse_id(schedule_id), request)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if entry is None:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return Schedule.from_entry(entry)


@router.delete("/{schedule_id}", status_code=204)
async def delete_schedule(schedule_id: str, store: ScheduleStore = Depends(get_store)) -> Response:
    if not await store.delete(_parse_id(schedule_id)):
        raise HTTPException(status_code=404, detail="Schedule not found")
    return Response(status_code=204)


def _parse_id(value: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid ID format") from None
