"""Metrics schemas"""

from typing import Optional

from pydantic import BaseModel


class StatusCount(BaseModel):
    name: str
    count: int
    color: Optional[str] = None


class UserCount(BaseModel):
    name: str
    count: int


class MetricsResponse(BaseModel):
    total: int
    completed: int
    overdue: int
    by_status: list[StatusCount]
    by_user: list[UserCount]
