"""Notification domain schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    body: Optional[str]
    data: Optional[dict[str, Any]] = None
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MarkAllReadResponse(BaseModel):
    message: str
    updated: int
