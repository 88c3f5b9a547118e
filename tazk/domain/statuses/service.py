"""Status service - Business logic for task status operations"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...models import Profile, TaskStatus
from ...permissions import can_manage_scope, require_scope_access
from .repository import StatusRepository
from .schemas import StatusCreate, StatusReorderRequest, StatusUpdate

logger = logging.getLogger(__name__)


class StatusService:
    """Service layer for task status business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = StatusRepository()

    def _require_manage(self, team_id: Optional[str], user: Profile) -> None:
        membership = require_scope_access(self.db, team_id, user)
        if not can_manage_scope(membership):
            raise HTTPException(status_code=403, detail="Only team owners and admins can manage statuses")

    def _get_visible_status(self, status_id: str, user: Profile) -> TaskStatus:
        status = self.repo.get_status_by_id(self.db, status_id)
        if not status:
            raise HTTPException(status_code=404, detail="Status not found")
        if status.team_id is None and status.created_by != user.id:
            raise HTTPException(status_code=404, detail="Status not found")
        return status

    def get_statuses(self, user: Profile, team_id: Optional[str] = None) -> list[TaskStatus]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_statuses(self.db, team_id, user.id)

    def create_status(self, data: StatusCreate, user: Profile) -> TaskStatus:
        self._require_manage(data.team_id, user)

        position = self.repo.get_max_order(self.db, data.team_id, user.id) + 1
        status = self.repo.create_status(
            self.db,
            name=data.name.strip(),
            color=data.color,
            order_position=position,
            is_active=True,
            team_id=data.team_id,
            created_by=user.id,
        )
        logger.info(f"✅ Created status '{status.name}' at position {position}")
        log_activity(self.db, "created", "status", status.id, status.team_id, user, {"name": status.name})
        return status

    def update_status(self, status_id: str, data: StatusUpdate, user: Profile) -> TaskStatus:
        status = self._get_visible_status(status_id, user)
        self._require_manage(status.team_id, user)

        moved = 0
        if data.is_active is False and status.is_active:
            moved = self._move_tasks_away(status, user)

        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is not None:
            updates["name"] = updates["name"].strip()
        status = self.repo.update_status(self.db, status, **updates)

        if "is_active" in updates:
            action = "activated" if status.is_active else "deactivated"
            details = {"name": status.name, "tasks_moved": moved}
        else:
            action = "updated"
            details = {"name": status.name, "changes": updates}
        log_activity(self.db, action, "status", status.id, status.team_id, user, details)
        return status

    def toggle_status(self, status_id: str, user: Profile) -> TaskStatus:
        status = self._get_visible_status(status_id, user)
        return self.update_status(status_id, StatusUpdate(is_active=not status.is_active), user)

    def delete_status(self, status_id: str, user: Profile) -> None:
        status = self._get_visible_status(status_id, user)
        self._require_manage(status.team_id, user)

        moved = self._move_tasks_away(status, user)
        name, team_id = status.name, status.team_id
        self.repo.clear_rule_defaults(self.db, status.id)
        self.repo.delete_status(self.db, status)
        logger.info(f"🗑️ Deleted status '{name}' ({moved} tasks moved)")
        log_activity(self.db, "deleted", "status", status_id, team_id, user, {"name": name, "tasks_moved": moved})

    def reorder_statuses(self, data: StatusReorderRequest, user: Profile) -> list[TaskStatus]:
        self._require_manage(data.team_id, user)

        statuses = {s.id: s for s in self.repo.get_statuses(self.db, data.team_id, user.id)}
        unknown = [status_id for status_id in data.status_ids if status_id not in statuses]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown status ids: {', '.join(unknown)}")
        if len(set(data.status_ids)) != len(data.status_ids):
            raise HTTPException(status_code=400, detail="Duplicate status ids")

        for index, status_id in enumerate(data.status_ids):
            statuses[status_id].order_position = index + 1
        self.db.commit()
        return self.repo.get_statuses(self.db, data.team_id, user.id)

    def _move_tasks_away(self, status: TaskStatus, user: Profile) -> int:
        """Move the tasks of a status being hidden or removed to the first other active status"""
        if not self.repo.count_tasks(self.db, status.id):
            return 0

        target = self.repo.get_first_active(self.db, status.team_id, user.id, exclude_id=status.id)
        if not target:
            raise HTTPException(
                status_code=400,
                detail="At least one other active status is required to hold this status's tasks",
            )
        moved = self.repo.move_tasks(self.db, status.id, target.id)
        if moved:
            logger.info(f"📦 Moved {moved} tasks from '{status.name}' to '{target.name}'")
        return moved
