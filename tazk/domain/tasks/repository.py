"""Task repository - Database operations for tasks"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Task, TaskComment


class TaskRepository:
    """Repository for task database operations"""

    @staticmethod
    def scope_query(db: Session, team_id: Optional[str], user_id: str):
        """Tasks of a team, or the personal tasks created by a user"""
        query = db.query(Task).options(joinedload(Task.status), joinedload(Task.assignee))
        if team_id:
            return query.filter(Task.team_id == team_id)
        return query.filter(Task.team_id.is_(None), Task.created_by == user_id)

    @staticmethod
    def get_tasks(
        db: Session,
        team_id: Optional[str],
        user_id: str,
        status_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        search: Optional[str] = None,
    ) -> list[Task]:
        query = TaskRepository.scope_query(db, team_id, user_id)
        if status_id:
            query = query.filter(Task.status_id == status_id)
        if assigned_to:
            query = query.filter(Task.assigned_to == assigned_to)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Task.title.ilike(pattern), Task.description.ilike(pattern)))
        return query.order_by(Task.created_at.desc()).all()

    @staticmethod
    def get_task_by_id(db: Session, task_id: str) -> Optional[Task]:
        return db.query(Task).filter(Task.id == task_id).first()

    @staticmethod
    def create_task(db: Session, **task_data) -> Task:
        task = Task(**task_data)
        db.add(task)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def update_task(db: Session, task: Task, **updates) -> Task:
        """Apply updates as given; None clears a column"""
        for key, value in updates.items():
            if hasattr(task, key):
                setattr(task, key, value)
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def delete_task(db: Session, task: Task) -> None:
        db.delete(task)
        db.commit()

    @staticmethod
    def get_comments(db: Session, task_id: str) -> list[TaskComment]:
        return (
            db.query(TaskComment)
            .options(joinedload(TaskComment.author))
            .filter(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at)
            .all()
        )

    @staticmethod
    def get_comment(db: Session, task_id: str, comment_id: str) -> Optional[TaskComment]:
        return (
            db.query(TaskComment)
            .filter(TaskComment.id == comment_id, TaskComment.task_id == task_id)
            .first()
        )

    @staticmethod
    def create_comment(db: Session, task_id: str, user_id: str, content: str) -> TaskComment:
        comment = TaskComment(task_id=task_id, user_id=user_id, content=content)
        db.add(comment)
        db.commit()
        db.refresh(comment)
        return comment

    @staticmethod
    def delete_comment(db: Session, comment: TaskComment) -> None:
        db.delete(comment)
        db.commit()
