"""
Push service - Web Push fan-out to every browser subscription of a set of users.

Deliveries are signed with the server's VAPID key pair and sent concurrently;
subscriptions the push service reports as gone (404/410) are pruned.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import HTTPException
from pywebpush import WebPushException, webpush
from sqlalchemy.orm import Session

from ...config import (
    PUSH_ICON_URL,
    PUSH_TTL_SECONDS,
    VAPID_PRIVATE_KEY,
    VAPID_PUBLIC_KEY,
    VAPID_SUBJECT,
)
from ...models import Profile, PushSubscription
from ...permissions import get_teammate_ids
from .repository import PushSubscriptionRepository
from .schemas import (
    PushDeliveryResult,
    PushNotificationRequest,
    PushNotificationResponse,
    PushSubscriptionCreate,
)

logger = logging.getLogger(__name__)

# Push service answers meaning the subscription no longer exists
GONE_STATUS_CODES = (404, 410)


def build_payload(request: PushNotificationRequest) -> dict:
    return {
        "title": request.title,
        "body": request.body or "",
        "icon": PUSH_ICON_URL,
        "badge": PUSH_ICON_URL,
        "tag": request.tag or "default",
        "data": {"url": request.url or "/", **(request.data or {})},
    }


def _deliver(subscription: PushSubscription, payload: str) -> PushDeliveryResult:
    """Blocking delivery to one subscription; runs in a worker thread"""
    try:
        response = webpush(
            subscription_info={
                "endpoint": subscription.endpoint,
                "keys": {"p256dh": subscription.p256dh, "auth": subscription.auth},
            },
            data=payload,
            vapid_private_key=VAPID_PRIVATE_KEY,
            # webpush adds aud/exp to the claims dict, so each call gets its own
            vapid_claims={"sub": VAPID_SUBJECT},
            ttl=PUSH_TTL_SECONDS,
        )
        return PushDeliveryResult(
            subscription_id=subscription.id,
            success=True,
            status_code=getattr(response, "status_code", None),
        )
    except WebPushException as e:
        status_code = e.response.status_code if e.response is not None else None
        return PushDeliveryResult(
            subscription_id=subscription.id, success=False, status_code=status_code, error=str(e)
        )
    except Exception as e:
        return PushDeliveryResult(subscription_id=subscription.id, success=False, error=str(e))


def check_push_targets(db: Session, caller: Profile, user_ids: list[str]) -> None:
    """Users may only push to themselves and to people they share a team with"""
    outsiders = set(user_ids) - get_teammate_ids(db, caller.id)
    if outsiders:
        logger.warning(f"⚠️ {caller.email} tried to push to {len(outsiders)} user(s) outside their teams")
        raise HTTPException(status_code=403, detail="You can only notify members of your teams")


async def send_push_notification(db: Session, request: PushNotificationRequest) -> PushNotificationResponse:
    """Send one notification to all subscriptions of the target users"""
    user_ids = request.target_user_ids()
    if not user_ids:
        raise HTTPException(status_code=400, detail="No user IDs provided")

    if not VAPID_PUBLIC_KEY or not VAPID_PRIVATE_KEY:
        logger.error("❌ VAPID keys not configured")
        raise HTTPException(status_code=500, detail="VAPID keys not configured")

    subscriptions = PushSubscriptionRepository.get_for_users(db, user_ids)
    if not subscriptions:
        logger.info(f"ℹ️ No push subscriptions for {len(user_ids)} user(s)")
        return PushNotificationResponse(message="No subscriptions", sent=0, failed=0, results=[])

    payload = json.dumps(build_payload(request))

    results: list[PushDeliveryResult] = []
    to_prune: list[str] = []
    deliverable: list[PushSubscription] = []
    for subscription in subscriptions:
        if not subscription.endpoint or not subscription.p256dh or not subscription.auth:
            logger.warning(f"⚠️ Invalid push subscription {subscription.id}, removing")
            results.append(
                PushDeliveryResult(
                    subscription_id=subscription.id, success=False, error="Invalid subscription"
                )
            )
            to_prune.append(subscription.id)
        else:
            deliverable.append(subscription)

    deliveries = await asyncio.gather(
        *(asyncio.to_thread(_deliver, subscription, payload) for subscription in deliverable)
    )
    for result in deliveries:
        if not result.success:
            logger.warning(
                f"⚠️ Push to subscription {result.subscription_id} failed "
                f"(status {result.status_code}): {result.error}"
            )
            if result.status_code in GONE_STATUS_CODES:
                to_prune.append(result.subscription_id)
        results.append(result)

    if to_prune:
        pruned = PushSubscriptionRepository.delete_by_ids(db, to_prune)
        logger.info(f"🗑️ Pruned {pruned} expired push subscription(s)")

    sent = sum(1 for r in results if r.success)
    failed = len(results) - sent
    logger.info(f"📲 Push fan-out done: {sent} sent, {failed} failed")
    return PushNotificationResponse(message="Done", sent=sent, failed=failed, results=results)


async def notify_user(
    db: Session,
    user_id: str,
    title: str,
    body: str,
    url: str = "/",
    tag: Optional[str] = None,
) -> Optional[PushNotificationResponse]:
    """Best-effort push for in-app events; failures are logged, never raised"""
    try:
        return await send_push_notification(
            db, PushNotificationRequest(user_id=user_id, title=title, body=body, url=url, tag=tag)
        )
    except Exception as e:
        logger.error(f"❌ Push notification to {user_id} failed: {e}")
        return None


async def notify_task_assigned(
    db: Session, user_id: str, task_title: str, assigner_name: str, task_id: Optional[str] = None
):
    return await notify_user(
        db,
        user_id,
        "New task assigned",
        f'{assigner_name} assigned you: "{task_title}"',
        url=f"/?task={task_id}" if task_id else "/",
        tag="task-assigned",
    )


async def notify_task_completed(
    db: Session, user_id: str, task_title: str, completed_by_name: str, task_id: Optional[str] = None
):
    return await notify_user(
        db,
        user_id,
        "Task completed",
        f'{completed_by_name} completed "{task_title}"',
        url=f"/?task={task_id}" if task_id else "/",
        tag="task-completed",
    )


async def notify_team_invite(db: Session, user_id: str, team_name: str, inviter_name: str):
    return await notify_user(
        db,
        user_id,
        "Team invitation",
        f'{inviter_name} invited you to the team "{team_name}"',
        url="/",
        tag="team-invite",
    )


async def notify_task_comment(
    db: Session, user_id: str, task_title: str, commenter_name: str, task_id: Optional[str] = None
):
    return await notify_user(
        db,
        user_id,
        "New comment",
        f'{commenter_name} commented on "{task_title}"',
        url=f"/?task={task_id}" if task_id else "/",
        tag="task-comment",
    )


async def notify_sprint_started(db: Session, user_id: str, sprint_name: str, starter_name: str):
    return await notify_user(
        db,
        user_id,
        "Sprint started",
        f'{starter_name} started the sprint "{sprint_name}"',
        url="/?view=sprints",
        tag="sprint-started",
    )


async def notify_task_added_to_sprint(
    db: Session, user_id: str, task_title: str, sprint_name: str, task_id: Optional[str] = None
):
    return await notify_user(
        db,
        user_id,
        "Task added to sprint",
        f'"{task_title}" was added to the sprint "{sprint_name}"',
        url=f"/?task={task_id}" if task_id else "/",
        tag="sprint-task",
    )


def save_subscription(db: Session, user_id: str, data: PushSubscriptionCreate) -> PushSubscription:
    subscription = PushSubscriptionRepository.upsert(
        db,
        user_id=user_id,
        endpoint=data.endpoint,
        p256dh=data.keys.p256dh,
        auth=data.keys.auth,
        user_agent=data.user_agent,
    )
    logger.info(f"✅ Push subscription saved for user {user_id}")
    return subscription


def remove_subscription(db: Session, user_id: str, endpoint: str) -> None:
    deleted = PushSubscriptionRepository.delete_by_endpoint(db, user_id, endpoint)
    if not deleted:
        raise HTTPException(status_code=404, detail="Subscription not found")
    logger.info(f"🗑️ Push subscription removed for user {user_id}")
