"""Task domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...models import TASK_PRIORITIES


def _check_priority(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in TASK_PRIORITIES:
        raise ValueError(f"priority must be one of: {', '.join(TASK_PRIORITIES)}")
    return value


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    priority: str = "medium"
    status_id: Optional[str] = None  # Defaults to the first active status of the scope
    team_id: Optional[str] = None  # None = personal task
    assigned_to: Optional[str] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notify_email: Optional[EmailStr] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        return _check_priority(v)


class TaskUpdate(BaseModel):
    """Partial update; send assigned_to/due_date as null to clear them"""

    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    priority: Optional[str] = None
    status_id: Optional[str] = None
    assigned_to: Optional[str] = None
    start_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notify_email: Optional[EmailStr] = None

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        return _check_priority(v)


class TaskResponse(BaseModel):
    id: str
    title: str
    description: Optional[str]
    priority: str
    status_id: Optional[str]
    status_name: Optional[str] = None
    status_color: Optional[str] = None
    team_id: Optional[str]
    created_by: str
    assigned_to: Optional[str]
    assigned_to_email: Optional[str] = None
    start_date: Optional[datetime]
    due_date: Optional[datetime]
    notify_email: Optional[str]
    recurring_task_id: Optional[str] = None
    sprint_id: Optional[str] = None
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_task(cls, task) -> "TaskResponse":
        return cls(
            id=task.id,
            title=task.title,
            description=task.description,
            priority=task.priority,
            status_id=task.status_id,
            status_name=task.status.name if task.status else None,
            status_color=task.status.color if task.status else None,
            team_id=task.team_id,
            created_by=task.created_by,
            assigned_to=task.assigned_to,
            assigned_to_email=task.assignee.email if task.assignee else None,
            start_date=task.start_date,
            due_date=task.due_date,
            notify_email=task.notify_email,
            recurring_task_id=task.recurring_task_id,
            sprint_id=task.sprint_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        if not v.strip():
            raise ValueError("Comment cannot be empty")
        return v.strip()


class CommentResponse(BaseModel):
    id: str
    task_id: str
    user_id: str
    author_name: Optional[str] = None
    author_email: Optional[str] = None
    content: str
    created_at: Optional[datetime]

    @classmethod
    def from_comment(cls, comment) -> "CommentResponse":
        return cls(
            id=comment.id,
            task_id=comment.task_id,
            user_id=comment.user_id,
            author_name=comment.author.display_name if comment.author else None,
            author_email=comment.author.email if comment.author else None,
            content=comment.content,
            created_at=comment.created_at,
        )
