"""Task service - Business logic for task operations"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity, log_task_assigned, log_task_status_changed
from ...models import Profile, Task, TaskComment, TaskStatus
from ...permissions import MANAGER_ROLES, get_membership, require_scope_access
from ...services.notification_service import (
    dispatch_task_assigned,
    dispatch_task_comment,
    dispatch_task_completed,
    dispatch_task_created,
)
from ...shared.timeutils import to_naive_utc
from ..statuses.repository import StatusRepository
from .repository import TaskRepository
from .schemas import CommentCreate, TaskCreate, TaskUpdate

logger = logging.getLogger(__name__)

# Columns whose edits are recorded as a plain "updated" activity
PLAIN_FIELDS = ("title", "description", "priority", "start_date", "due_date", "notify_email")


class TaskService:
    """Service layer for task business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TaskRepository()

    def get_tasks(
        self,
        user: Profile,
        team_id: Optional[str] = None,
        status_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Task]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_tasks(self.db, team_id, user.id, status_id, assigned_to, search)

    def get_task(self, task_id: str, user: Profile) -> Task:
        """Get a task visible to the user: own personal task, or any task of one of their teams"""
        task = self.repo.get_task_by_id(self.db, task_id)
        if not task:
            raise HTTPException(status_code=404, detail="Task not found")
        if task.team_id is None:
            if task.created_by != user.id:
                raise HTTPException(status_code=404, detail="Task not found")
        elif not get_membership(self.db, task.team_id, user.id):
            raise HTTPException(status_code=404, detail="Task not found")
        return task

    def _resolve_status(self, status_id: Optional[str], team_id: Optional[str], user: Profile) -> Optional[TaskStatus]:
        """The given status if it belongs to the scope, else the scope's first active status"""
        if status_id is None:
            return StatusRepository.get_first_active(self.db, team_id, user.id)

        status = StatusRepository.get_status_by_id(self.db, status_id)
        in_scope = status is not None and (
            status.team_id == team_id if team_id else status.team_id is None and status.created_by == user.id
        )
        if not in_scope:
            raise HTTPException(status_code=400, detail="Status does not belong to this task's team")
        return status

    def _check_assignee(self, assigned_to: Optional[str], team_id: Optional[str], user: Profile) -> None:
        if assigned_to is None:
            return
        if team_id is None:
            if assigned_to != user.id:
                raise HTTPException(status_code=400, detail="Personal tasks can only be assigned to yourself")
        elif not get_membership(self.db, team_id, assigned_to):
            raise HTTPException(status_code=400, detail="Assignee is not a member of this team")

    def create_task(
        self, data: TaskCreate, user: Profile, background_tasks: Optional[BackgroundTasks] = None
    ) -> Task:
        """Create a task in the caller's personal space or one of their teams"""
        require_scope_access(self.db, data.team_id, user)
        status = self._resolve_status(data.status_id, data.team_id, user)
        self._check_assignee(data.assigned_to, data.team_id, user)

        task = self.repo.create_task(
            self.db,
            title=data.title.strip(),
            description=data.description,
            priority=data.priority,
            status_id=status.id if status else None,
            team_id=data.team_id,
            created_by=user.id,
            assigned_to=data.assigned_to,
            start_date=to_naive_utc(data.start_date),
            due_date=to_naive_utc(data.due_date),
            notify_email=data.notify_email,
        )
        logger.info(f"✅ Created task {task.id} for {user.email} (team: {task.team_id})")

        log_activity(self.db, "created", "task", task.id, task.team_id, user, {"title": task.title})
        if task.assigned_to:
            log_task_assigned(self.db, task, user, task.assignee.email)

        if background_tasks is not None:
            background_tasks.add_task(dispatch_task_created, task_id=task.id, actor_id=user.id)
            if task.assigned_to and task.assigned_to != user.id:
                background_tasks.add_task(dispatch_task_assigned, task_id=task.id, actor_id=user.id)
        return task

    def update_task(
        self,
        task_id: str,
        data: TaskUpdate,
        user: Profile,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Task:
        task = self.get_task(task_id, user)
        fields = data.model_dump(exclude_unset=True)

        old_status = task.status
        old_assignee_id = task.assigned_to
        updates = {}

        if "status_id" in fields and fields["status_id"] != task.status_id:
            if fields["status_id"] is None:
                raise HTTPException(status_code=400, detail="A task must have a status")
            updates["status_id"] = self._resolve_status(fields["status_id"], task.team_id, user).id

        if "assigned_to" in fields and fields["assigned_to"] != task.assigned_to:
            self._check_assignee(fields["assigned_to"], task.team_id, user)
            updates["assigned_to"] = fields["assigned_to"]

        changed_fields = []
        for key in PLAIN_FIELDS:
            if key not in fields:
                continue
            value = fields[key]
            if key in ("start_date", "due_date"):
                value = to_naive_utc(value)
            elif key == "title":
                if value is None:
                    raise HTTPException(status_code=400, detail="Title cannot be empty")
                value = value.strip()
            elif key == "priority" and value is None:
                continue
            if value != getattr(task, key):
                updates[key] = value
                changed_fields.append(key)

        if not updates:
            return task

        task = self.repo.update_task(self.db, task, **updates)

        if changed_fields:
            log_activity(
                self.db, "updated", "task", task.id, task.team_id, user,
                {"title": task.title, "fields": changed_fields},
            )

        if "status_id" in updates:
            new_status = task.status
            log_task_status_changed(
                self.db, task, user, old_status.name if old_status else None, new_status.name if new_status else None
            )
            just_completed = new_status is not None and new_status.is_completed and not (
                old_status is not None and old_status.is_completed
            )
            if just_completed and background_tasks is not None:
                background_tasks.add_task(dispatch_task_completed, task_id=task.id, actor_id=user.id)

        if "assigned_to" in updates:
            if task.assigned_to:
                log_task_assigned(self.db, task, user, task.assignee.email, reassigned=old_assignee_id is not None)
                if task.assigned_to != user.id and background_tasks is not None:
                    background_tasks.add_task(dispatch_task_assigned, task_id=task.id, actor_id=user.id)
            else:
                log_activity(self.db, "unassigned", "task", task.id, task.team_id, user, {"title": task.title})

        return task

    def delete_task(self, task_id: str, user: Profile) -> None:
        """Creators delete their tasks; team owners and admins delete any team task"""
        task = self.get_task(task_id, user)
        if task.created_by != user.id:
            membership = get_membership(self.db, task.team_id, user.id) if task.team_id else None
            if not membership or membership.role not in MANAGER_ROLES:
                raise HTTPException(status_code=403, detail="Only the creator or a team admin can delete this task")

        title, team_id = task.title, task.team_id
        self.repo.delete_task(self.db, task)
        logger.info(f"🗑️ Deleted task {task_id}")
        log_activity(self.db, "deleted", "task", task_id, team_id, user, {"title": title})

    def get_comments(self, task_id: str, user: Profile) -> list[TaskComment]:
        task = self.get_task(task_id, user)
        return self.repo.get_comments(self.db, task.id)

    def add_comment(
        self, task_id: str, data: CommentCreate, user: Profile, background_tasks: Optional[BackgroundTasks] = None
    ) -> TaskComment:
        """Anyone who can see the task can comment on it"""
        task = self.get_task(task_id, user)
        comment = self.repo.create_comment(self.db, task.id, user.id, data.content)
        logger.info(f"💬 Comment {comment.id} added to task {task.id} by {user.email}")

        log_activity(
            self.db, "updated", "task", task.id, task.team_id, user,
            {"title": task.title, "comment_added": True},
        )
        if background_tasks is not None:
            background_tasks.add_task(dispatch_task_comment, comment_id=comment.id)
        return comment

    def delete_comment(self, task_id: str, comment_id: str, user: Profile) -> None:
        """Only the author removes a comment"""
        task = self.get_task(task_id, user)
        comment = self.repo.get_comment(self.db, task.id, comment_id)
        if not comment:
            raise HTTPException(status_code=404, detail="Comment not found")
        if comment.user_id != user.id:
            raise HTTPException(status_code=403, detail="You can only delete your own comments")

        self.repo.delete_comment(self.db, comment)
        log_activity(
            self.db, "updated", "task", task.id, task.team_id, user,
            {"title": task.title, "comment_removed": True},
        )
