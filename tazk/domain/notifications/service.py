"""Notification service - in-app notification inbox"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Notification, Profile
from .repository import NotificationRepository

logger = logging.getLogger(__name__)


class NotificationService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = NotificationRepository()

    def get_notifications(self, user: Profile, unread_only: bool = False, limit: int = 50) -> list[Notification]:
        return self.repo.get_notifications(self.db, user.id, unread_only, limit)

    def get_notification(self, notification_id: str, user: Profile) -> Notification:
        notification = self.repo.get_notification(self.db, notification_id, user.id)
        if not notification:
            raise HTTPException(status_code=404, detail="Notification not found")
        return notification

    def mark_read(self, notification_id: str, user: Profile) -> Notification:
        return self.repo.mark_read(self.db, self.get_notification(notification_id, user))

    def mark_all_read(self, user: Profile) -> int:
        updated = self.repo.mark_all_read(self.db, user.id)
        logger.info(f"✅ Marked {updated} notifications as read for {user.email}")
        return updated

    def delete_notification(self, notification_id: str, user: Profile) -> None:
        self.repo.delete_notification(self.db, self.get_notification(notification_id, user))
