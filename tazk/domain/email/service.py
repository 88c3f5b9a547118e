"""Email service - per-scope e-mail settings, templates and logs"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import compile_mjml_to_html, send_test_email
from ...email_templates import DEFAULT_SUBJECTS, default_template_mjml
from ...models import EMAIL_TEMPLATE_TYPES, EmailLog, EmailSettings, EmailTemplate, Profile
from ...permissions import can_manage_scope, require_scope_access
from .repository import EmailRepository
from .schemas import EmailSettingsUpdate, EmailTemplateUpdate

logger = logging.getLogger(__name__)


class EmailService:
    """Service layer for e-mail configuration"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = EmailRepository()

    def get_settings(self, user: Profile, team_id: Optional[str] = None) -> Optional[EmailSettings]:
        require_scope_access(self.db, team_id, user)
        return self.repo.get_settings(self.db, user.id, team_id)

    def update_settings(self, data: EmailSettingsUpdate, user: Profile, team_id: Optional[str] = None) -> EmailSettings:
        require_scope_access(self.db, team_id, user)
        settings = self.repo.upsert_settings(self.db, user.id, team_id, **data.model_dump(exclude_unset=True))
        logger.info(f"✅ Email settings saved for {user.email} (team: {team_id})")
        return settings

    def get_templates(self, user: Profile, team_id: Optional[str] = None) -> list[EmailTemplate]:
        """The caller's templates for a scope, creating the defaults on first access"""
        require_scope_access(self.db, team_id, user)
        templates = self.repo.get_templates(self.db, user.id, team_id)
        if templates:
            return templates
        return self.create_default_templates(user, team_id)

    def create_default_templates(self, user: Profile, team_id: Optional[str] = None) -> list[EmailTemplate]:
        """Add the missing default templates of a scope; existing ones are kept"""
        require_scope_access(self.db, team_id, user)
        created = 0
        for template_type in EMAIL_TEMPLATE_TYPES:
            if self.repo.get_template(self.db, user.id, team_id, template_type):
                continue
            self.repo.add_template(
                self.db,
                user_id=user.id,
                team_id=team_id,
                type=template_type,
                subject=DEFAULT_SUBJECTS[template_type],
                body_html=compile_mjml_to_html(default_template_mjml(template_type)),
                is_active=True,
            )
            created += 1
        self.db.commit()
        if created:
            logger.info(f"🆕 Created {created} default email templates for {user.email}")
        return self.repo.get_templates(self.db, user.id, team_id)

    def update_template(
        self, template_type: str, data: EmailTemplateUpdate, user: Profile, team_id: Optional[str] = None
    ) -> EmailTemplate:
        if template_type not in EMAIL_TEMPLATE_TYPES:
            raise HTTPException(status_code=404, detail="Template not found")
        require_scope_access(self.db, team_id, user)

        template = self.repo.get_template(self.db, user.id, team_id, template_type)
        if not template:
            self.create_default_templates(user, team_id)
            template = self.repo.get_template(self.db, user.id, team_id, template_type)
        return self.repo.update_template(self.db, template, **data.model_dump(exclude_unset=True))

    def get_logs(self, user: Profile, team_id: Optional[str] = None, limit: int = 50) -> list[EmailLog]:
        membership = require_scope_access(self.db, team_id, user)
        if team_id and not can_manage_scope(membership):
            raise HTTPException(status_code=403, detail="Only team owners and admins can view email logs")
        return self.repo.get_logs(self.db, user.id, team_id, limit)

    async def send_test(self, to: str, user: Profile, team_id: Optional[str] = None) -> dict:
        require_scope_access(self.db, team_id, user)
        settings = self.repo.get_settings(self.db, user.id, team_id)
        try:
            return await send_test_email(
                self.db, to, user.id, team_id, from_name=settings.from_name if settings else None
            )
        except Exception as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
