"""Recurring task repository - Database operations for recurring task rules"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import RecurringTask


class RecurringTaskRepository:
    """Repository for recurring task rule database operations"""

    @staticmethod
    def get_due_rules(db: Session, now: datetime) -> list[RecurringTask]:
        """Active rules whose next run is now or in the past"""
        return (
            db.query(RecurringTask)
            .filter(
                RecurringTask.is_active.is_(True),
                RecurringTask.next_scheduled_at.isnot(None),
                RecurringTask.next_scheduled_at <= now,
            )
            .order_by(RecurringTask.next_scheduled_at)
            .all()
        )

    @staticmethod
    def get_rules(db: Session, team_id: Optional[str], user_id: str) -> list[RecurringTask]:
        query = db.query(RecurringTask)
        if team_id:
            query = query.filter(RecurringTask.team_id == team_id)
        else:
            query = query.filter(RecurringTask.team_id.is_(None), RecurringTask.user_id == user_id)
        return query.order_by(RecurringTask.created_at.desc()).all()

    @staticmethod
    def get_rule(db: Session, rule_id: str) -> Optional[RecurringTask]:
        return db.query(RecurringTask).filter(RecurringTask.id == rule_id).first()

    @staticmethod
    def create_rule(db: Session, **rule_data) -> RecurringTask:
        rule = RecurringTask(**rule_data)
        db.add(rule)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def update_rule(db: Session, rule: RecurringTask, **updates) -> RecurringTask:
        for key, value in updates.items():
            if hasattr(rule, key):
                setattr(rule, key, value)
        db.commit()
        db.refresh(rule)
        return rule

    @staticmethod
    def delete_rule(db: Session, rule: RecurringTask) -> None:
        db.delete(rule)
        db.commit()
