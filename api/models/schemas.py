"""Pydantic data models used by the FastAPI layer.

Field names on the wire follow the browser client (``duration``, ``userId``);
the Python attributes keep snake_case.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from scheduler.models import ScheduleEntry

CLOCK_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class ScheduleCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    date: dt.date
    time: str = Field(..., pattern=CLOCK_TIME_PATTERN, description="Local start time as HH:MM")
    duration_minutes: int = Field(..., alias="duration", gt=0, description="Length in minutes")
    notify: bool = True
    user_id: Optional[int] = Field(None, alias="userId")


class ScheduleUpdate(BaseModel):
    """Partial update; only the fields present in the request are applied."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=CLOCK_TIME_PATTERN)
    duration_minutes: Optional[int] = Field(None, alias="duration", gt=0)
    notify: Optional[bool] = None
    user_id: Optional[int] = Field(None, alias="userId")


class Schedule(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int
    title: str
    description: Optional[str] = None
    date: dt.date
    time: str
    duration_minutes: int = Field(..., alias="duration")
    notify: bool
    user_id: Optional[int] = Field(None, alias="userId")

    @classmethod
    def from_entry(cls, entry: ScheduleEntry) -> "Schedule":
        return cls(
            id=entry.id,
            title=entry.title,
            description=entry.description,
            date=entry.date,
            time=entry.clock_time,
            duration_minutes=entry.duration_minutes,
            notify=entry.notify,
            user_id=entry.user_id,
        )


__all__ = [
    "CLOCK_TIME_PATTERN",
    "Schedule",
    "ScheduleCreate",
    "ScheduleUpdate",
]
