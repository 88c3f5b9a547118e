"""
Sprint service - Business logic for sprints

Lifecycle: planning -> active -> completed. A scope has at most one active
sprint at a time. Tasks join a sprint through tasks.sprint_id; tasks without a
sprint form the scope's backlog.
"""

import logging
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...models import Profile, Sprint, Task
from ...permissions import can_manage_scope, get_membership, require_scope_access
from ...services.notification_service import dispatch_sprint_started, dispatch_task_added_to_sprint
from ...shared.timeutils import to_naive_utc, utcnow
from ..tasks.repository import TaskRepository
from .repository import SprintRepository
from .schemas import SprintCreate, SprintUpdate

logger = logging.getLogger(__name__)

# Sprints that still accept tasks and edits
OPEN_STATUSES = ("planning", "active")


class SprintService:
    """Service layer for sprint business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SprintRepository()

    def _require_manage(self, team_id: Optional[str], user: Profile) -> None:
        membership = require_scope_access(self.db, team_id, user)
        if not can_manage_scope(membership):
            raise HTTPException(status_code=403, detail="Only team owners and admins can manage sprints")

    def get_sprint(self, sprint_id: str, user: Profile) -> Sprint:
        sprint = self.repo.get_sprint_by_id(self.db, sprint_id)
        if not sprint:
            raise HTTPException(status_code=404, detail="Sprint not found")
        if sprint.team_id is None:
            if sprint.created_by != user.id:
                raise HTTPException(status_code=404, detail="Sprint not found")
        elif not get_membership(self.db, sprint.team_id, user.id):
            raise HTTPException(status_code=404, detail="Sprint not found")
        return sprint

    def _get_open_sprint(self, sprint_id: str, user: Profile) -> Sprint:
        sprint = self.get_sprint(sprint_id, user)
        self._require_manage(sprint.team_id, user)
        if sprint.status not in OPEN_STATUSES:
            raise HTTPException(status_code=400, detail=f"Sprint is {sprint.status}")
        return sprint

    def get_sprints(self, user: Profile, team_id: Optional[str] = None) -> list[Sprint]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_sprints(self.db, team_id, user.id)

    def get_backlog(self, user: Profile, team_id: Optional[str] = None) -> list[Task]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_backlog(self.db, team_id, user.id)

    def get_sprint_tasks(self, sprint_id: str, user: Profile) -> list[Task]:
        sprint = self.get_sprint(sprint_id, user)
        return self.repo.get_sprint_tasks(self.db, sprint.id)

    def create_sprint(self, data: SprintCreate, user: Profile) -> Sprint:
        self._require_manage(data.team_id, user)
        sprint = self.repo.create_sprint(
            self.db,
            name=data.name,
            goal=(data.goal or "").strip() or None,
            status="planning",
            start_date=to_naive_utc(data.start_date),
            end_date=to_naive_utc(data.end_date),
            team_id=data.team_id,
            created_by=user.id,
        )
        logger.info(f"🏃 Created sprint '{sprint.name}' (team: {sprint.team_id})")
        log_activity(self.db, "created", "sprint", sprint.id, sprint.team_id, user, {"name": sprint.name})
        return sprint

    def update_sprint(self, sprint_id: str, data: SprintUpdate, user: Profile) -> Sprint:
        sprint = self._get_open_sprint(sprint_id, user)
        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is None:
            raise HTTPException(status_code=400, detail="Sprint name is required")
        if "goal" in updates:
            updates["goal"] = (updates["goal"] or "").strip() or None
        for key in ("start_date", "end_date"):
            if key in updates:
                updates[key] = to_naive_utc(updates[key])

        start_date = updates.get("start_date", sprint.start_date)
        end_date = updates.get("end_date", sprint.end_date)
        if start_date and end_date and end_date <= start_date:
            raise HTTPException(status_code=400, detail="end_date must be after start_date")

        sprint = self.repo.update_sprint(self.db, sprint, **updates)
        log_activity(
            self.db, "updated", "sprint", sprint.id, sprint.team_id, user,
            {"name": sprint.name, "fields": sorted(updates.keys())},
        )
        return sprint

    def start_sprint(
        self, sprint_id: str, user: Profile, background_tasks: Optional[BackgroundTasks] = None
    ) -> Sprint:
        sprint = self.get_sprint(sprint_id, user)
        self._require_manage(sprint.team_id, user)
        if sprint.status != "planning":
            raise HTTPException(status_code=400, detail="Only sprints in planning can be started")
        if self.repo.get_active_sprint(self.db, sprint.team_id, sprint.created_by):
            raise HTTPException(status_code=409, detail="There is already an active sprint. Complete it first.")

        sprint = self.repo.update_sprint(
            self.db, sprint, status="active", start_date=sprint.start_date or utcnow()
        )
        logger.info(f"▶️ Sprint '{sprint.name}' started by {user.email}")
        log_activity(self.db, "started", "sprint", sprint.id, sprint.team_id, user, {"name": sprint.name})

        if sprint.team_id and background_tasks is not None:
            background_tasks.add_task(dispatch_sprint_started, sprint_id=sprint.id, actor_id=user.id)
        return sprint

    def complete_sprint(self, sprint_id: str, user: Profile) -> Sprint:
        sprint = self.get_sprint(sprint_id, user)
        self._require_manage(sprint.team_id, user)
        if sprint.status != "active":
            raise HTTPException(status_code=400, detail="Only the active sprint can be completed")

        sprint = self.repo.update_sprint(self.db, sprint, status="completed")
        logger.info(f"🏁 Sprint '{sprint.name}' completed by {user.email}")
        log_activity(self.db, "completed", "sprint", sprint.id, sprint.team_id, user, {"name": sprint.name})
        return sprint

    def delete_sprint(self, sprint_id: str, user: Profile) -> None:
        sprint = self.get_sprint(sprint_id, user)
        self._require_manage(sprint.team_id, user)

        name, team_id = sprint.name, sprint.team_id
        released = self.repo.delete_sprint(self.db, sprint)
        logger.info(f"🗑️ Deleted sprint '{name}' ({released} tasks back to the backlog)")
        log_activity(
            self.db, "deleted", "sprint", sprint_id, team_id, user, {"name": name, "tasks_released": released}
        )

    def add_task(
        self,
        sprint_id: str,
        task_id: str,
        user: Profile,
        background_tasks: Optional[BackgroundTasks] = None,
    ) -> Task:
        """Move a task of the same scope into an open sprint"""
        sprint = self._get_open_sprint(sprint_id, user)
        task = TaskRepository.get_task_by_id(self.db, task_id)
        same_scope = task is not None and (
            task.team_id == sprint.team_id
            if sprint.team_id
            else task.team_id is None and task.created_by == sprint.created_by
        )
        if not same_scope:
            raise HTTPException(status_code=404, detail="Task not found")
        if task.sprint_id == sprint.id:
            return task

        task = TaskRepository.update_task(self.db, task, sprint_id=sprint.id)
        log_activity(
            self.db, "updated", "task", task.id, task.team_id, user,
            {"title": task.title, "added_to_sprint": sprint.name},
        )
        if task.assigned_to and task.assigned_to != user.id and background_tasks is not None:
            background_tasks.add_task(dispatch_task_added_to_sprint, task_id=task.id, actor_id=user.id)
        return task

    def remove_task(self, sprint_id: str, task_id: str, user: Profile) -> Task:
        """Send a task of the sprint back to the backlog"""
        sprint = self.get_sprint(sprint_id, user)
        self._require_manage(sprint.team_id, user)
        task = TaskRepository.get_task_by_id(self.db, task_id)
        if not task or task.sprint_id != sprint.id:
            raise HTTPException(status_code=404, detail="Task is not in this sprint")

        task = TaskRepository.update_task(self.db, task, sprint_id=None)
        log_activity(
            self.db, "updated", "task", task.id, task.team_id, user,
            {"title": task.title, "removed_from_sprint": sprint.name},
        )
        return task
