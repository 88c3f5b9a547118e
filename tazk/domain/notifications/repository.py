"""Notification repository - Database operations for in-app notifications"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Notification


class NotificationRepository:
    """Repository for in-app notification database operations"""

    @staticmethod
    def get_notifications(
        db: Session, user_id: str, unread_only: bool = False, limit: int = 50
    ) -> list[Notification]:
        query = db.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return query.order_by(Notification.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_notification(db: Session, notification_id: str, user_id: str) -> Optional[Notification]:
        return (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user_id)
            .first()
        )

    @staticmethod
    def create_notification(
        db: Session,
        user_id: str,
        type: str,
        title: str,
        body: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ) -> Notification:
        notification = Notification(user_id=user_id, type=type, title=title, body=body, data=data or {})
        db.add(notification)
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_read(db: Session, notification: Notification) -> Notification:
        notification.is_read = True
        db.commit()
        db.refresh(notification)
        return notification

    @staticmethod
    def mark_all_read(db: Session, user_id: str) -> int:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
            .update({Notification.is_read: True}, synchronize_session=False)
        )
        db.commit()
        return updated

    @staticmethod
    def delete_notification(db: Session, notification: Notification) -> None:
        db.delete(notification)
        db.commit()
