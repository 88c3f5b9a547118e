"""Push repository - Database operations for push subscriptions"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import PushSubscription
from ...shared.timeutils import utcnow


class PushSubscriptionRepository:
    """Repository for push subscription database operations"""

    @staticmethod
    def get_for_users(db: Session, user_ids: list[str]) -> list[PushSubscription]:
        if not user_ids:
            return []
        return (
            db.query(PushSubscription)
            .filter(PushSubscription.user_id.in_(user_ids))
            .order_by(PushSubscription.created_at)
            .all()
        )

    @staticmethod
    def get_by_endpoint(db: Session, user_id: str, endpoint: str) -> Optional[PushSubscription]:
        return (
            db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
            .first()
        )

    @staticmethod
    def upsert(
        db: Session, user_id: str, endpoint: str, p256dh: str, auth: str, user_agent: Optional[str] = None
    ) -> PushSubscription:
        """Insert or refresh the subscription for (user, endpoint)"""
        subscription = PushSubscriptionRepository.get_by_endpoint(db, user_id, endpoint)
        if subscription:
            subscription.p256dh = p256dh
            subscription.auth = auth
            subscription.user_agent = user_agent or subscription.user_agent
            subscription.updated_at = utcnow()
        else:
            subscription = PushSubscription(
                user_id=user_id,
                endpoint=endpoint,
                p256dh=p256dh,
                auth=auth,
                user_agent=user_agent,
            )
            db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    @staticmethod
    def delete_by_ids(db: Session, subscription_ids: list[str]) -> int:
        if not subscription_ids:
            return 0
        deleted = (
            db.query(PushSubscription)
            .filter(PushSubscription.id.in_(subscription_ids))
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted

    @staticmethod
    def delete_by_endpoint(db: Session, user_id: str, endpoint: str) -> int:
        deleted = (
            db.query(PushSubscription)
            .filter(PushSubscription.user_id == user_id, PushSubscription.endpoint == endpoint)
            .delete(synchronize_session=False)
        )
        db.commit()
        return deleted
