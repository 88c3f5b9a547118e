"""Email router - settings, templates, logs and the send-email function"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_service_or_user
from ...database import get_db
from ...email_service import send_and_log_email
from ...models import Profile
from ...rate_limiter import create_rate_limiter
from .schemas import (
    EmailLogResponse,
    EmailSettingsResponse,
    EmailSettingsUpdate,
    EmailTemplateResponse,
    EmailTemplateUpdate,
    SendEmailRequest,
    SendEmailResponse,
    TestEmailRequest,
)
from .service import EmailService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["Email"])
functions_router = APIRouter(prefix="/functions", tags=["Functions"])

send_email_rate_limit = create_rate_limiter(limit=60, window_seconds=60, key_prefix="send_email")


def get_email_service(db: Session = Depends(get_db)) -> EmailService:
    """Dependency injection for EmailService"""
    return EmailService(db)


@router.get("/settings", response_model=EmailSettingsResponse)
async def get_email_settings(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    """Settings for the scope; defaults when nothing has been saved yet"""
    settings = service.get_settings(current_user, team_id)
    if not settings:
        return EmailSettingsResponse(team_id=team_id)
    return settings


@router.put("/settings", response_model=EmailSettingsResponse)
async def update_email_settings(
    data: EmailSettingsUpdate,
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    return service.update_settings(data, current_user, team_id)


@router.get("/templates", response_model=list[EmailTemplateResponse])
async def get_email_templates(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    return service.get_templates(current_user, team_id)


@router.post("/templates/defaults", response_model=list[EmailTemplateResponse])
async def create_default_templates(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    return service.create_default_templates(current_user, team_id)


@router.put("/templates/{template_type}", response_model=EmailTemplateResponse)
async def update_email_template(
    template_type: str,
    data: EmailTemplateUpdate,
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    return service.update_template(template_type, data, current_user, team_id)


@router.get("/logs", response_model=list[EmailLogResponse])
async def get_email_logs(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
):
    """Latest 50 delivery attempts of the scope"""
    return service.get_logs(current_user, team_id)


@router.post("/test", response_model=SendEmailResponse)
async def send_test_email(
    data: TestEmailRequest,
    current_user: Profile = Depends(get_current_user),
    service: EmailService = Depends(get_email_service),
    _: None = Depends(send_email_rate_limit),
):
    response = await service.send_test(data.to, current_user, data.team_id)
    return {"success": True, "id": response.get("id") if isinstance(response, dict) else None}


@functions_router.post("/send-email", response_model=SendEmailResponse)
async def send_email_function(
    data: SendEmailRequest,
    caller: Optional[Profile] = Depends(require_service_or_user),
    db: Session = Depends(get_db),
    _: None = Depends(send_email_rate_limit),
):
    """
    Send one e-mail through Resend and record it in email_logs.

    Errors use the functions contract: {"error": "..."} with status 400.
    """
    if not data.to or not data.subject or not data.html:
        return JSONResponse(status_code=400, content={"error": "Missing required fields: to, subject, html"})

    try:
        response = await send_and_log_email(
            db,
            to=data.to,
            subject=data.subject,
            html_content=data.html,
            from_name=data.from_name,
            task_id=data.task_id,
            template_type=data.template_type,
            user_id=data.user_id or (caller.id if caller else None),
            team_id=data.team_id,
        )
    except Exception as e:
        logger.error(f"❌ send-email failed: {e}")
        return JSONResponse(status_code=400, content={"error": str(e)})

    external_id = response.get("id") if isinstance(response, dict) else None
    return {"success": True, "id": external_id}
