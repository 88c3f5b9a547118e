"""Push router - subscription management and the push fan-out function"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_service_or_user
from ...config import VAPID_PUBLIC_KEY
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from .schemas import (
    PushNotificationRequest,
    PushNotificationResponse,
    PushSubscriptionCreate,
    PushSubscriptionDelete,
    PushSubscriptionResponse,
    VapidPublicKeyResponse,
)
from .service import check_push_targets, remove_subscription, save_subscription, send_push_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/push", tags=["Push"])
functions_router = APIRouter(prefix="/functions", tags=["Functions"])


@router.get("/vapid-public-key", response_model=VapidPublicKeyResponse)
async def get_vapid_public_key():
    """Application server key the browser needs to subscribe"""
    if not VAPID_PUBLIC_KEY:
        raise HTTPException(status_code=503, detail="Push notifications are not configured")
    return {"public_key": VAPID_PUBLIC_KEY}


@router.post("/subscriptions", response_model=PushSubscriptionResponse, status_code=201)
async def subscribe(
    data: PushSubscriptionCreate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return save_subscription(db, current_user.id, data)


@router.delete("/subscriptions", response_model=MessageResponse)
async def unsubscribe(
    data: PushSubscriptionDelete,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    remove_subscription(db, current_user.id, data.endpoint)
    return {"message": "Subscription removed"}


@functions_router.post("/send-push-notification", response_model=PushNotificationResponse)
async def send_push_notification_function(
    data: PushNotificationRequest,
    caller: Optional[Profile] = Depends(require_service_or_user),
    db: Session = Depends(get_db),
):
    """
    Send a push notification to one or more users.

    Errors use the functions contract: {"error": "..."} with 400 or 500.
    """
    try:
        if caller is not None:
            check_push_targets(db, caller, data.target_user_ids())
        return await send_push_notification(db, data)
    except HTTPException as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.detail})
    except Exception as e:
        logger.error(f"❌ send-push-notification failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
