"""Email repository - settings, templates and delivery logs"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import EmailLog, EmailSettings, EmailTemplate
from ...shared.timeutils import utcnow


class EmailRepository:
    """Repository for e-mail configuration and log database operations"""

    @staticmethod
    def get_settings(db: Session, user_id: str, team_id: Optional[str]) -> Optional[EmailSettings]:
        query = db.query(EmailSettings).filter(EmailSettings.user_id == user_id)
        if team_id:
            query = query.filter(EmailSettings.team_id == team_id)
        else:
            query = query.filter(EmailSettings.team_id.is_(None))
        return query.first()

    @staticmethod
    def upsert_settings(db: Session, user_id: str, team_id: Optional[str], **values) -> EmailSettings:
        settings = EmailRepository.get_settings(db, user_id, team_id)
        if not settings:
            settings = EmailSettings(user_id=user_id, team_id=team_id)
            db.add(settings)
        for key, value in values.items():
            if value is not None and hasattr(settings, key):
                setattr(settings, key, value)
        db.commit()
        db.refresh(settings)
        return settings

    @staticmethod
    def get_templates(db: Session, user_id: str, team_id: Optional[str]) -> list[EmailTemplate]:
        query = db.query(EmailTemplate).filter(EmailTemplate.user_id == user_id)
        if team_id:
            query = query.filter(EmailTemplate.team_id == team_id)
        else:
            query = query.filter(EmailTemplate.team_id.is_(None))
        return query.order_by(EmailTemplate.type).all()

    @staticmethod
    def get_template(
        db: Session, user_id: str, team_id: Optional[str], template_type: str, active_only: bool = False
    ) -> Optional[EmailTemplate]:
        query = db.query(EmailTemplate).filter(
            EmailTemplate.user_id == user_id, EmailTemplate.type == template_type
        )
        if team_id:
            query = query.filter(EmailTemplate.team_id == team_id)
        else:
            query = query.filter(EmailTemplate.team_id.is_(None))
        if active_only:
            query = query.filter(EmailTemplate.is_active.is_(True))
        return query.first()

    @staticmethod
    def add_template(db: Session, **template_data) -> EmailTemplate:
        """Stage a template row. Caller commits."""
        template = EmailTemplate(**template_data)
        db.add(template)
        return template

    @staticmethod
    def update_template(db: Session, template: EmailTemplate, **updates) -> EmailTemplate:
        for key, value in updates.items():
            if value is not None and hasattr(template, key):
                setattr(template, key, value)
        db.commit()
        db.refresh(template)
        return template

    @staticmethod
    def create_log(db: Session, **log_data) -> EmailLog:
        log = EmailLog(**log_data)
        if log.status == "sent" and log.sent_at is None:
            log.sent_at = utcnow()
        db.add(log)
        db.commit()
        db.refresh(log)
        return log

    @staticmethod
    def get_logs(db: Session, user_id: str, team_id: Optional[str], limit: int = 50) -> list[EmailLog]:
        query = db.query(EmailLog)
        if team_id:
            query = query.filter(EmailLog.team_id == team_id)
        else:
            query = query.filter(EmailLog.user_id == user_id)
        return query.order_by(EmailLog.created_at.desc()).limit(limit).all()
