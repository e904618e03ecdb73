"""In-memory schedule repository.

Entries live in a dict keyed by id and are handed out as immutable
``ScheduleEntry`` values. Every successful create, update, or delete awaits
the registered mutation listeners after the change is committed, which is how
the notification scheduler learns that its timers need rebuilding.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from api.models.schemas import ScheduleCreate, ScheduleUpdate
from scheduler.models import ScheduleEntry

logger = logging.getLogger(__name__)

MutationListener = Callable[[], Awaitable[None]]


def parse_clock_time(value: Any) -> time:
    """Parse an ``HH:MM`` string; reject anything else."""

    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if not isinstance(value, str):
        raise ValueError(f"invalid time {value!r}: expected HH:MM")
    try:
        return datetime.strptime(value.strip(), "%H:%M").time()
    except ValueError as exc:
        raise ValueError(f"invalid time {value!r}: expected HH:MM") from exc


class ScheduleStore:
    """Simple mutable schedule repository."""

    def __init__(self) -> None:
        self._entries: Dict[int, ScheduleEntry] = {}
        self._next_id = 1
        self._listeners: List[MutationListener] = []

    def add_mutation_listener(self, listener: MutationListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def list_entries(self, user_id: Optional[int] = None) -> List[ScheduleEntry]:
        entries = list(self._entries.values())
        if user_id is not None:
            entries = [entry for entry in entries if entry.user_id == user_id]
        return entries

    async def get_by_id(self, entry_id: int) -> Optional[ScheduleEntry]:
        return self._entries.get(entry_id)

    async def query_by_date(self, day: date) -> List[ScheduleEntry]:
        return sorted(
            (entry for entry in self._entries.values() if entry.date == day),
            key=lambda entry: entry.time,
        )

    async def query_upcoming(self, from_day: date) -> List[ScheduleEntry]:
        return sorted(
            (entry for entry in self._entries.values() if entry.date >= from_day),
            key=lambda entry: (entry.date, entry.time),
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def create(self, payload: ScheduleCreate) -> ScheduleEntry:
        entry_id = self._next_id
        entry = self._validate(
            ScheduleEntry(
                id=entry_id,
                title=payload.title,
                description=payload.description,
                date=payload.date,
                time=parse_clock_time(payload.time),
                duration_minutes=payload.duration_minutes,
                notify=payload.notify,
                user_id=payload.user_id,
            )
        )
        self._next_id += 1
        self._entries[entry_id] = entry
        logger.info("Schedule %s created for %s %s", entry_id, entry.date, entry.clock_time)
        await self._notify()
        return entry

    async def update(self, entry_id: int, payload: ScheduleUpdate) -> Optional[ScheduleEntry]:
        current = self._entries.get(entry_id)
        if current is None:
            return None
        changes = payload.model_dump(exclude_unset=True)
        # Explicit nulls only clear the optional fields.
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key in ("description", "user_id")
        }
        if "time" in changes:
            changes["time"] = parse_clock_time(changes["time"])
        updated = self._validate(replace(current, **changes))
        self._entries[entry_id] = updated
        logger.info("Schedule %s updated fields=%s", entry_id, sorted(changes))
        await self._notify()
        return updated

    async def delete(self, entry_id: int) -> bool:
        if self._entries.pop(entry_id, None) is None:
            return False
        logger.info("Schedule %s deleted", entry_id)
        await self._notify()
        return True

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _validate(entry: ScheduleEntry) -> ScheduleEntry:
        if not entry.title or not entry.title.strip():
            raise ValueError("title is required")
        if entry.duration_minutes <= 0:
            raise ValueError("duration must be a positive number of minutes")
        return entry

    async def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                await listener()
            except Exception:
                # the change is already committed
                logger.exception("Mutation listener %r failed", listener)
