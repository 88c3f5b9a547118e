"""Activity repository - read side of the activity_logs table"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import ActivityLog


class ActivityRepository:
    @staticmethod
    def get_logs(
        db: Session,
        team_id: Optional[str],
        user_id: str,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 50,
    ) -> list[ActivityLog]:
        query = db.query(ActivityLog)
        if team_id:
            query = query.filter(ActivityLog.team_id == team_id)
        else:
            query = query.filter(ActivityLog.team_id.is_(None), ActivityLog.user_id == user_id)
        if entity_type:
            query = query.filter(ActivityLog.entity_type == entity_type)
        if entity_id:
            query = query.filter(ActivityLog.entity_id == entity_id)
        return query.order_by(ActivityLog.created_at.desc()).limit(limit).all()
