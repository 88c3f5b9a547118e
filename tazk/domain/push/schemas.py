"""Push domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class PushNotificationRequest(BaseModel):
    """Body of /functions/send-push-notification"""

    user_id: Optional[str] = None
    user_ids: Optional[list[str]] = None
    title: str = Field(..., min_length=1)
    body: Optional[str] = None
    url: Optional[str] = None
    tag: Optional[str] = None
    data: Optional[dict[str, Any]] = None

    def target_user_ids(self) -> list[str]:
        """user_ids wins when non-empty, else the single user_id"""
        if self.user_ids:
            return list(dict.fromkeys(self.user_ids))
        return [self.user_id] if self.user_id else []


class PushDeliveryResult(BaseModel):
    subscription_id: str
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class PushNotificationResponse(BaseModel):
    message: str
    sent: int
    failed: int
    results: list[PushDeliveryResult] = []


class PushSubscriptionKeys(BaseModel):
    p256dh: str = Field(..., min_length=1)
    auth: str = Field(..., min_length=1)


class PushSubscriptionCreate(BaseModel):
    """The browser's PushSubscription.toJSON() output"""

    endpoint: str = Field(..., min_length=1)
    keys: PushSubscriptionKeys
    expirationTime: Optional[int] = None
    user_agent: Optional[str] = Field(None, max_length=500)


class PushSubscriptionDelete(BaseModel):
    endpoint: str = Field(..., min_length=1)


class PushSubscriptionResponse(BaseModel):
    id: str
    endpoint: Optional[str]

    class Config:
        from_attributes = True


class VapidPublicKeyResponse(BaseModel):
    public_key: str
