"""Email domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class SendEmailRequest(BaseModel):
    """Body of /functions/send-email; required fields are checked by the handler"""

    to: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    from_name: Optional[str] = None
    task_id: Optional[str] = None
    template_type: Optional[str] = None
    user_id: Optional[str] = None
    team_id: Optional[str] = None


class SendEmailResponse(BaseModel):
    success: bool
    id: Optional[str] = None


class EmailSettingsUpdate(BaseModel):
    is_enabled: Optional[bool] = None
    from_name: Optional[str] = Field(None, min_length=1, max_length=100)
    notify_on_create: Optional[bool] = None
    notify_on_assign: Optional[bool] = None
    notify_on_due: Optional[bool] = None
    notify_on_complete: Optional[bool] = None


class EmailSettingsResponse(BaseModel):
    id: Optional[str] = None
    team_id: Optional[str] = None
    is_enabled: bool = False
    from_name: str = "Tazk"
    notify_on_create: bool = False
    notify_on_assign: bool = True
    notify_on_due: bool = False
    notify_on_complete: bool = False

    class Config:
        from_attributes = True


class EmailTemplateUpdate(BaseModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    body_html: Optional[str] = Field(None, min_length=1)
    is_active: Optional[bool] = None


class EmailTemplateResponse(BaseModel):
    id: str
    team_id: Optional[str]
    type: str
    subject: str
    body_html: str
    is_active: bool
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class EmailLogResponse(BaseModel):
    id: str
    to_email: str
    subject: str
    status: str
    template_type: Optional[str]
    task_id: Optional[str]
    external_id: Optional[str]
    error_message: Optional[str]
    sent_at: Optional[datetime]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True


class TestEmailRequest(BaseModel):
    to: EmailStr
    team_id: Optional[str] = None
