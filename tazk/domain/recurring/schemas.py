"""Recurring task schemas - Pydantic models for validation"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...models import RECURRENCE_FREQUENCIES, TASK_PRIORITIES

TIME_OF_DAY_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d(:[0-5]\d)?$")


def _normalize_time(value: Optional[str]) -> Optional[str]:
    """Accept HH:MM or HH:MM:SS, store HH:MM:00"""
    if value is None:
        return value
    if not TIME_OF_DAY_PATTERN.match(value):
        raise ValueError("time_of_day must be HH:MM")
    return f"{value[:5]}:00"


def _check_days(value: Optional[list[int]]) -> Optional[list[int]]:
    if value is None:
        return value
    if any(day < 0 or day > 6 for day in value):
        raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(value))


class RecurringTaskBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: str = "medium"
    frequency: str
    time_of_day: str = "09:00"
    days_of_week: Optional[list[int]] = None
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    default_status_id: Optional[str] = None
    assigned_to: Optional[str] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v not in TASK_PRIORITIES:
            raise ValueError(f"priority must be one of: {', '.join(TASK_PRIORITIES)}")
        return v

    @field_validator("frequency")
    @classmethod
    def validate_frequency(cls, v):
        if v not in RECURRENCE_FREQUENCIES:
            raise ValueError(f"frequency must be one of: {', '.join(RECURRENCE_FREQUENCIES)}")
        return v

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, v):
        return _normalize_time(v)

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v):
        return _check_days(v)

    @model_validator(mode="after")
    def check_schedule(self):
        if self.frequency == "weekly" and not self.days_of_week:
            raise ValueError("Weekly rules need at least one day of the week")
        if self.frequency == "monthly" and self.day_of_month is None:
            self.day_of_month = 1
        return self


class RecurringTaskCreate(RecurringTaskBase):
    team_id: Optional[str] = None  # None = personal rule


class RecurringTaskUpdate(BaseModel):
    """Partial update; the schedule is re-validated against the merged rule"""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[str] = None
    frequency: Optional[str] = None
    time_of_day: Optional[str] = None
    days_of_week: Optional[list[int]] = None
    day_of_month: Optional[int] = Field(None, ge=1, le=31)
    default_status_id: Optional[str] = None
    assigned_to: Optional[str] = None

    @field_validator("time_of_day")
    @classmethod
    def validate_time_of_day(cls, v):
        return _normalize_time(v)

    @field_validator("days_of_week")
    @classmethod
    def validate_days_of_week(cls, v):
        return _check_days(v)


class RecurringTaskResponse(BaseModel):
    id: str
    user_id: str
    team_id: Optional[str]
    title: str
    description: Optional[str]
    priority: str
    frequency: str
    time_of_day: str
    days_of_week: Optional[list[int]]
    day_of_month: Optional[int]
    default_status_id: Optional[str]
    assigned_to: Optional[str]
    is_active: bool
    last_created_at: Optional[datetime]
    next_scheduled_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class RecurringRunResponse(BaseModel):
    message: str
    tasks_created: int
    routines_processed: int
    errors: Optional[list[str]] = None
