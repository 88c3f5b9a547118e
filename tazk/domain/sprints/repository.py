"""Sprint repository - Database operations for sprints"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Sprint, Task

BACKLOG_LIMIT = 100


class SprintRepository:
    """Repository for sprint database operations"""

    @staticmethod
    def scope_query(db: Session, team_id: Optional[str], user_id: str):
        """Sprints of a team, or the personal sprints of a user"""
        query = db.query(Sprint)
        if team_id:
            return query.filter(Sprint.team_id == team_id)
        return query.filter(Sprint.team_id.is_(None), Sprint.created_by == user_id)

    @staticmethod
    def get_sprints(db: Session, team_id: Optional[str], user_id: str) -> list[Sprint]:
        return SprintRepository.scope_query(db, team_id, user_id).order_by(Sprint.created_at.desc()).all()

    @staticmethod
    def get_sprint_by_id(db: Session, sprint_id: str) -> Optional[Sprint]:
        return db.query(Sprint).filter(Sprint.id == sprint_id).first()

    @staticmethod
    def get_active_sprint(db: Session, team_id: Optional[str], user_id: str) -> Optional[Sprint]:
        return SprintRepository.scope_query(db, team_id, user_id).filter(Sprint.status == "active").first()

    @staticmethod
    def create_sprint(db: Session, **sprint_data) -> Sprint:
        sprint = Sprint(**sprint_data)
        db.add(sprint)
        db.commit()
        db.refresh(sprint)
        return sprint

    @staticmethod
    def update_sprint(db: Session, sprint: Sprint, **updates) -> Sprint:
        for key, value in updates.items():
            if hasattr(sprint, key):
                setattr(sprint, key, value)
        db.commit()
        db.refresh(sprint)
        return sprint

    @staticmethod
    def delete_sprint(db: Session, sprint: Sprint) -> int:
        """Delete a sprint; its tasks go back to the backlog"""
        released = (
            db.query(Task)
            .filter(Task.sprint_id == sprint.id)
            .update({Task.sprint_id: None}, synchronize_session=False)
        )
        db.delete(sprint)
        db.commit()
        return released

    @staticmethod
    def get_sprint_tasks(db: Session, sprint_id: str) -> list[Task]:
        return (
            db.query(Task)
            .options(joinedload(Task.status), joinedload(Task.assignee))
            .filter(Task.sprint_id == sprint_id)
            .order_by(Task.created_at.desc())
            .all()
        )

    @staticmethod
    def get_backlog(db: Session, team_id: Optional[str], user_id: str) -> list[Task]:
        """Tasks of the scope that belong to no sprint, newest first"""
        query = db.query(Task).options(joinedload(Task.status), joinedload(Task.assignee))
        if team_id:
            query = query.filter(Task.team_id == team_id)
        else:
            query = query.filter(Task.team_id.is_(None), Task.created_by == user_id)
        return query.filter(Task.sprint_id.is_(None)).order_by(Task.created_at.desc()).limit(BACKLOG_LIMIT).all()
