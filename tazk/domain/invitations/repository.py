"""Invitation repository - Database operations for team invitations"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import TeamInvitation


class InvitationRepository:
    """Repository for team invitation database operations"""

    @staticmethod
    def get_invitation(db: Session, invitation_id: str) -> Optional[TeamInvitation]:
        return db.query(TeamInvitation).filter(TeamInvitation.id == invitation_id).first()

    @staticmethod
    def get_pending_for_email(db: Session, email: str, now: datetime) -> list[TeamInvitation]:
        return (
            db.query(TeamInvitation)
            .filter(
                TeamInvitation.email == email,
                TeamInvitation.status == "pending",
                TeamInvitation.expires_at > now,
            )
            .order_by(TeamInvitation.created_at.desc())
            .all()
        )

    @staticmethod
    def get_team_invitations(db: Session, team_id: str, status: Optional[str] = None) -> list[TeamInvitation]:
        query = db.query(TeamInvitation).filter(TeamInvitation.team_id == team_id)
        if status:
            query = query.filter(TeamInvitation.status == status)
        return query.order_by(TeamInvitation.created_at.desc()).all()

    @staticmethod
    def find_pending(db: Session, team_id: str, email: str, now: datetime) -> Optional[TeamInvitation]:
        return (
            db.query(TeamInvitation)
            .filter(
                TeamInvitation.team_id == team_id,
                TeamInvitation.email == email,
                TeamInvitation.status == "pending",
                TeamInvitation.expires_at > now,
            )
            .first()
        )

    @staticmethod
    def create_invitation(db: Session, **invitation_data) -> TeamInvitation:
        invitation = TeamInvitation(**invitation_data)
        db.add(invitation)
        db.commit()
        db.refresh(invitation)
        return invitation

    @staticmethod
    def set_status(db: Session, invitation: TeamInvitation, status: str, responded_at: datetime) -> TeamInvitation:
        invitation.status = status
        invitation.responded_at = responded_at
        db.commit()
        db.refresh(invitation)
        return invitation
