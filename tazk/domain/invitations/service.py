"""Invitation service - invite people to teams and answer invitations"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import BackgroundTasks, HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...config import INVITATION_EXPIRY_DAYS
from ...models import Profile, TeamInvitation
from ...permissions import get_membership, get_team_or_404, require_team_member, require_team_role
from ...services.notification_service import dispatch_team_invite
from ...shared.timeutils import utcnow
from ..teams.repository import TeamRepository
from .repository import InvitationRepository
from .schemas import InvitationCreate

logger = logging.getLogger(__name__)


class InvitationService:
    """Service layer for team invitation business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = InvitationRepository()

    def create_invitation(
        self, team_id: str, data: InvitationCreate, user: Profile, background_tasks: Optional[BackgroundTasks] = None
    ) -> TeamInvitation:
        """Invite an e-mail address to a team (owners and admins)"""
        require_team_role(self.db, team_id, user)
        get_team_or_404(self.db, team_id)
        email = data.email.strip().lower()
        now = utcnow()

        invitee = self.db.query(Profile).filter(Profile.email == email).first()
        if invitee and get_membership(self.db, team_id, invitee.id):
            raise HTTPException(status_code=409, detail="This user is already a member of the team")
        if self.repo.find_pending(self.db, team_id, email, now):
            raise HTTPException(status_code=409, detail="A pending invitation already exists for this email")

        invitation = self.repo.create_invitation(
            self.db,
            team_id=team_id,
            email=email,
            role=data.role,
            status="pending",
            invited_by=user.id,
            expires_at=now + timedelta(days=INVITATION_EXPIRY_DAYS),
        )
        logger.info(f"✉️ {user.email} invited {email} to team {team_id} as {data.role}")
        log_activity(
            self.db, "invited", "invitation", invitation.id, team_id, user, {"email": email, "role": data.role}
        )

        if background_tasks is not None:
            background_tasks.add_task(dispatch_team_invite, invitation_id=invitation.id)
        return invitation

    def get_my_invitations(self, user: Profile) -> list[TeamInvitation]:
        """Pending, unexpired invitations addressed to the caller's e-mail"""
        return self.repo.get_pending_for_email(self.db, user.email.lower(), utcnow())

    def get_team_invitations(self, team_id: str, user: Profile, status: Optional[str] = None) -> list[TeamInvitation]:
        require_team_member(self.db, team_id, user)
        return self.repo.get_team_invitations(self.db, team_id, status)

    def _get_my_pending(self, invitation_id: str, user: Profile) -> TeamInvitation:
        invitation = self.repo.get_invitation(self.db, invitation_id)
        if not invitation or invitation.email.lower() != user.email.lower():
            raise HTTPException(status_code=404, detail="Invitation not found")
        if invitation.status != "pending":
            raise HTTPException(status_code=400, detail=f"Invitation is already {invitation.status}")
        if invitation.expires_at <= utcnow():
            self.repo.set_status(self.db, invitation, "expired", utcnow())
            logger.info(f"⌛ Invitation {invitation.id} expired")
            raise HTTPException(status_code=410, detail="Invitation has expired")
        return invitation

    def accept_invitation(self, invitation_id: str, user: Profile) -> TeamInvitation:
        invitation = self._get_my_pending(invitation_id, user)

        if not get_membership(self.db, invitation.team_id, user.id):
            TeamRepository.add_member(self.db, invitation.team_id, user.id, invitation.role)
        invitation = self.repo.set_status(self.db, invitation, "accepted", utcnow())
        logger.info(f"✅ {user.email} joined team {invitation.team_id} as {invitation.role}")

        log_activity(
            self.db,
            "invitation_accepted",
            "invitation",
            invitation.id,
            invitation.team_id,
            user,
            {"email": user.email, "role": invitation.role},
        )
        log_activity(
            self.db, "member_added", "team_member", user.id, invitation.team_id, user,
            {"email": user.email, "role": invitation.role},
        )
        return invitation

    def reject_invitation(self, invitation_id: str, user: Profile) -> TeamInvitation:
        invitation = self._get_my_pending(invitation_id, user)
        invitation = self.repo.set_status(self.db, invitation, "rejected", utcnow())
        log_activity(
            self.db, "invitation_rejected", "invitation", invitation.id, invitation.team_id, user,
            {"email": user.email},
        )
        return invitation

    def cancel_invitation(self, team_id: str, invitation_id: str, user: Profile) -> TeamInvitation:
        require_team_role(self.db, team_id, user)
        invitation = self.repo.get_invitation(self.db, invitation_id)
        if not invitation or invitation.team_id != team_id:
            raise HTTPException(status_code=404, detail="Invitation not found")
        if invitation.status != "pending":
            raise HTTPException(status_code=400, detail=f"Invitation is already {invitation.status}")

        invitation = self.repo.set_status(self.db, invitation, "cancelled", utcnow())
        log_activity(
            self.db, "invitation_cancelled", "invitation", invitation.id, team_id, user,
            {"email": invitation.email},
        )
        return invitation
