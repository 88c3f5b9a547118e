"""
Email Service using Resend
Task notification e-mails honor the sender's e-mail settings and custom
templates; every delivery attempt is recorded in email_logs.
"""

import html
import logging
from dataclasses import dataclass
from typing import Optional

import resend
from mjml import mjml_to_html
from sqlalchemy.orm import Session

from .config import (
    EMAIL_DEFAULT_FROM_NAME,
    EMAIL_FROM_ADDRESS,
    FRONTEND_URL,
    INVITATION_EXPIRY_DAYS,
    RESEND_API_KEY,
)
from .domain.email.repository import EmailRepository
from .email_templates import (
    DEFAULT_SUBJECTS,
    default_template_mjml,
    team_invitation_template,
    test_email_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


@dataclass
class TaskEmailData:
    task_id: str
    task_title: str
    task_description: Optional[str] = None
    status_name: Optional[str] = None
    assigned_to_name: Optional[str] = None
    due_date: Optional[str] = None
    created_by_name: Optional[str] = None
    completed_date: Optional[str] = None

    def variables(self) -> dict[str, str]:
        """Values for the {{...}} placeholders, with the fallbacks shown to recipients"""
        return {
            "task_title": self.task_title,
            "task_description": self.task_description or "No description",
            "status_name": self.status_name or "No status",
            "due_date": self.due_date or "No due date",
            "created_by_name": self.created_by_name or "User",
            "assigned_to_name": self.assigned_to_name or "Unassigned",
            "task_url": f"{FRONTEND_URL.rstrip('/')}/task/{self.task_id}",
            "completed_date": self.completed_date or "",
        }


def replace_template_variables(template: str, data: TaskEmailData, escape: bool = True) -> str:
    """Substitute every {{variable}} occurrence; values are HTML-escaped for bodies"""
    result = template
    for name, value in data.variables().items():
        result = result.replace("{{" + name + "}}", html.escape(value) if escape else value)
    return result


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict with 'html' and 'errors' keys
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return str(result)
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


def format_sender(from_name: Optional[str] = None) -> str:
    return f"{from_name or EMAIL_DEFAULT_FROM_NAME} <{EMAIL_FROM_ADDRESS}>"


async def send_email(to: str, subject: str, html_content: str, from_name: Optional[str] = None) -> dict:
    """Send one HTML e-mail via Resend. Raises on any provider error."""
    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - RESEND_API_KEY missing")
        raise Exception("Email service not configured")

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        response = resend.Emails.send(
            {
                "from": format_sender(from_name),
                "to": [to],
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {to}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


async def send_and_log_email(
    db: Session,
    to: str,
    subject: str,
    html_content: str,
    from_name: Optional[str] = None,
    task_id: Optional[str] = None,
    template_type: Optional[str] = None,
    user_id: Optional[str] = None,
    team_id: Optional[str] = None,
) -> dict:
    """Send an e-mail and record the attempt in email_logs; provider errors are re-raised"""
    log_data = {
        "to_email": to,
        "subject": subject,
        "task_id": task_id,
        "template_type": template_type,
        "user_id": user_id,
        "team_id": team_id,
    }
    try:
        response = await send_email(to, subject, html_content, from_name)
    except Exception as e:
        EmailRepository.create_log(db, status="failed", error_message=str(e), **log_data)
        raise

    external_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
    EmailRepository.create_log(db, status="sent", external_id=external_id, **log_data)
    return response


async def send_task_email(
    db: Session,
    template_type: str,
    setting_flag: str,
    user_id: str,
    team_id: Optional[str],
    emails: list[str],
    data: TaskEmailData,
) -> int:
    """
    Send a task e-mail on behalf of `user_id` if their settings for the scope
    enable it. Uses their active custom template, else the default one.
    Returns the number of e-mails sent; per-recipient failures are logged.
    """
    recipients = [email for email in dict.fromkeys(emails) if email]
    if not recipients:
        return 0

    settings = EmailRepository.get_settings(db, user_id, team_id)
    if not settings or not settings.is_enabled or not getattr(settings, setting_flag):
        logger.debug(f"📭 {template_type} e-mails disabled for user {user_id}")
        return 0

    template = EmailRepository.get_template(db, user_id, team_id, template_type, active_only=True)
    if template and template.body_html:
        subject = replace_template_variables(template.subject or DEFAULT_SUBJECTS[template_type], data, escape=False)
        body = replace_template_variables(template.body_html, data)
    else:
        subject = replace_template_variables(DEFAULT_SUBJECTS[template_type], data, escape=False)
        body = replace_template_variables(compile_mjml_to_html(default_template_mjml(template_type)), data)

    sent = 0
    for email in recipients:
        try:
            await send_and_log_email(
                db,
                to=email,
                subject=subject,
                html_content=body,
                from_name=settings.from_name,
                task_id=data.task_id,
                template_type=template_type,
                user_id=user_id,
                team_id=team_id,
            )
            sent += 1
        except Exception as e:
            logger.error(f"❌ Failed to send {template_type} email to {email}: {e}")
    return sent


async def send_task_assigned_email(
    db: Session, user_id: str, team_id: Optional[str], emails: list[str], data: TaskEmailData
) -> int:
    return await send_task_email(db, "task_assigned", "notify_on_assign", user_id, team_id, emails, data)


async def send_task_completed_email(
    db: Session, user_id: str, team_id: Optional[str], emails: list[str], data: TaskEmailData
) -> int:
    return await send_task_email(db, "task_completed", "notify_on_complete", user_id, team_id, emails, data)


async def send_task_created_email(
    db: Session, user_id: str, team_id: Optional[str], emails: list[str], data: TaskEmailData
) -> int:
    return await send_task_email(db, "task_created", "notify_on_create", user_id, team_id, emails, data)


async def send_team_invitation_email(to: str, team_name: str, inviter_name: str, role: str) -> dict:
    """Invitation e-mail for addresses without an account yet"""
    mjml_content = team_invitation_template(
        html.escape(team_name), html.escape(inviter_name), role, INVITATION_EXPIRY_DAYS
    )
    return await send_email(
        to=to,
        subject=f"{inviter_name} invited you to {team_name} on Tazk",
        html_content=compile_mjml_to_html(mjml_content),
    )


async def send_test_email(
    db: Session, to: str, user_id: str, team_id: Optional[str], from_name: Optional[str] = None
) -> dict:
    return await send_and_log_email(
        db,
        to=to,
        subject="Test e-mail - Tazk",
        html_content=compile_mjml_to_html(test_email_template()),
        from_name=from_name,
        user_id=user_id,
        team_id=team_id,
    )
