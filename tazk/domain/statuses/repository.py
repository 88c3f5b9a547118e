"""Status repository - Database operations for task statuses"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import RecurringTask, Task, TaskStatus

DEFAULT_STATUSES = (
    ("Pending", "#ff9800"),
    ("In progress", "#2196F3"),
    ("Completed", "#4CAF50"),
)


class StatusRepository:
    """Repository for task status database operations"""

    @staticmethod
    def scope_query(db: Session, team_id: Optional[str], user_id: str):
        """Statuses of a team, or the personal statuses of a user"""
        query = db.query(TaskStatus)
        if team_id:
            return query.filter(TaskStatus.team_id == team_id)
        return query.filter(TaskStatus.team_id.is_(None), TaskStatus.created_by == user_id)

    @staticmethod
    def get_statuses(db: Session, team_id: Optional[str], user_id: str) -> list[TaskStatus]:
        return (
            StatusRepository.scope_query(db, team_id, user_id)
            .order_by(TaskStatus.order_position, TaskStatus.created_at)
            .all()
        )

    @staticmethod
    def get_status_by_id(db: Session, status_id: str) -> Optional[TaskStatus]:
        return db.query(TaskStatus).filter(TaskStatus.id == status_id).first()

    @staticmethod
    def get_first_active(
        db: Session, team_id: Optional[str], user_id: str, exclude_id: Optional[str] = None
    ) -> Optional[TaskStatus]:
        query = StatusRepository.scope_query(db, team_id, user_id).filter(TaskStatus.is_active.is_(True))
        if exclude_id:
            query = query.filter(TaskStatus.id != exclude_id)
        return query.order_by(TaskStatus.order_position, TaskStatus.created_at).first()

    @staticmethod
    def get_max_order(db: Session, team_id: Optional[str], user_id: str) -> int:
        query = StatusRepository.scope_query(db, team_id, user_id).with_entities(
            func.max(TaskStatus.order_position)
        )
        return query.scalar() or 0

    @staticmethod
    def seed_default_statuses(db: Session, team_id: Optional[str], created_by: str) -> list[TaskStatus]:
        """Add the default status set to a new scope. Caller commits."""
        statuses = []
        for position, (name, color) in enumerate(DEFAULT_STATUSES, start=1):
            status = TaskStatus(
                name=name,
                color=color,
                order_position=position,
                is_active=True,
                team_id=team_id,
                created_by=created_by,
            )
            db.add(status)
            statuses.append(status)
        return statuses

    @staticmethod
    def create_status(db: Session, **status_data) -> TaskStatus:
        status = TaskStatus(**status_data)
        db.add(status)
        db.commit()
        db.refresh(status)
        return status

    @staticmethod
    def update_status(db: Session, status: TaskStatus, **updates) -> TaskStatus:
        for key, value in updates.items():
            if value is not None and hasattr(status, key):
                setattr(status, key, value)
        db.commit()
        db.refresh(status)
        return status

    @staticmethod
    def count_tasks(db: Session, status_id: str) -> int:
        return db.query(Task).filter(Task.status_id == status_id).count()

    @staticmethod
    def move_tasks(db: Session, from_status_id: str, to_status_id: Optional[str]) -> int:
        """Move every task in one status to another. Caller commits."""
        return (
            db.query(Task)
            .filter(Task.status_id == from_status_id)
            .update({Task.status_id: to_status_id}, synchronize_session=False)
        )

    @staticmethod
    def clear_rule_defaults(db: Session, status_id: str) -> int:
        """Drop a status from the recurring rules that default to it. Caller commits."""
        return (
            db.query(RecurringTask)
            .filter(RecurringTask.default_status_id == status_id)
            .update({RecurringTask.default_status_id: None}, synchronize_session=False)
        )

    @staticmethod
    def delete_status(db: Session, status: TaskStatus) -> None:
        db.delete(status)
        db.commit()
