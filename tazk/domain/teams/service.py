"""Team service - Business logic for teams and memberships"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...models import Profile, Team, TeamMember
from ...permissions import get_team_or_404, require_team_member, require_team_role
from ..statuses.repository import StatusRepository
from .repository import TeamRepository
from .schemas import MemberResponse, MemberRoleUpdate, TeamCreate, TeamResponse, TeamUpdate

logger = logging.getLogger(__name__)


class TeamService:
    """Service layer for team business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamRepository()

    def _to_response(self, team: Team, role: str) -> TeamResponse:
        return TeamResponse(
            id=team.id,
            name=team.name,
            color=team.color,
            created_by=team.created_by,
            created_at=team.created_at,
            role=role,
            member_count=self.repo.count_members(self.db, team.id),
        )

    def get_teams(self, user: Profile) -> list[TeamResponse]:
        return [self._to_response(team, role) for team, role in self.repo.get_user_teams(self.db, user.id)]

    def get_team(self, team_id: str, user: Profile) -> TeamResponse:
        membership = require_team_member(self.db, team_id, user)
        return self._to_response(get_team_or_404(self.db, team_id), membership.role)

    def create_team(self, data: TeamCreate, user: Profile) -> TeamResponse:
        """Create a team; the creator becomes its owner and it gets the default statuses"""
        team = self.repo.create_team(self.db, name=data.name.strip(), color=data.color, created_by=user.id)
        self.repo.add_member(self.db, team.id, user.id, "owner")
        StatusRepository.seed_default_statuses(self.db, team_id=team.id, created_by=user.id)
        self.db.commit()
        self.db.refresh(team)
        logger.info(f"✅ Team '{team.name}' created by {user.email}")

        log_activity(self.db, "created", "team", team.id, team.id, user, {"name": team.name})
        return self._to_response(team, "owner")

    def update_team(self, team_id: str, data: TeamUpdate, user: Profile) -> TeamResponse:
        membership = require_team_role(self.db, team_id, user)
        team = get_team_or_404(self.db, team_id)

        updates = data.model_dump(exclude_unset=True)
        if updates.get("name"):
            updates["name"] = updates["name"].strip()
        team = self.repo.update_team(self.db, team, **updates)
        log_activity(self.db, "updated", "team", team.id, team.id, user, {"name": team.name, "changes": updates})
        return self._to_response(team, membership.role)

    def delete_team(self, team_id: str, user: Profile) -> None:
        require_team_role(self.db, team_id, user, roles=("owner",))
        team = get_team_or_404(self.db, team_id)
        name = team.name
        self.repo.delete_team(self.db, team)
        logger.info(f"🗑️ Team '{name}' ({team_id}) deleted by {user.email}")
        # The team's own feed is gone with it; keep the record in the owner's personal feed
        log_activity(self.db, "deleted", "team", team_id, None, user, {"name": name})

    def get_members(self, team_id: str, user: Profile) -> list[MemberResponse]:
        require_team_member(self.db, team_id, user)
        return [
            MemberResponse(
                user_id=m.user_id,
                email=m.profile.email,
                full_name=m.profile.full_name,
                avatar_url=m.profile.avatar_url,
                role=m.role,
                joined_at=m.joined_at,
            )
            for m in self.repo.get_members(self.db, team_id)
        ]

    def _get_target(self, team_id: str, member_user_id: str) -> TeamMember:
        member = self.repo.get_member(self.db, team_id, member_user_id)
        if not member:
            raise HTTPException(status_code=404, detail="Member not found")
        return member

    def update_member_role(
        self, team_id: str, member_user_id: str, data: MemberRoleUpdate, user: Profile
    ) -> MemberResponse:
        """Only the owner changes roles; the owner role itself is never granted or taken"""
        require_team_role(self.db, team_id, user, roles=("owner",))
        member = self._get_target(team_id, member_user_id)
        if member.role == "owner":
            raise HTTPException(status_code=400, detail="The owner's role cannot be changed")

        old_role = member.role
        if old_role != data.role:
            member.role = data.role
            self.db.commit()
            self.db.refresh(member)
            logger.info(f"🔄 {member.profile.email} in team {team_id}: {old_role} -> {data.role}")
            log_activity(
                self.db,
                "role_changed",
                "team_member",
                member.id,
                team_id,
                user,
                {"email": member.profile.email, "old_role": old_role, "new_role": data.role},
            )

        return MemberResponse(
            user_id=member.user_id,
            email=member.profile.email,
            full_name=member.profile.full_name,
            avatar_url=member.profile.avatar_url,
            role=member.role,
            joined_at=member.joined_at,
        )

    def remove_member(self, team_id: str, member_user_id: str, user: Profile) -> None:
        """
        Remove a member or leave the team.

        The owner can remove anyone but themselves, admins can remove plain
        members, and every non-owner can leave.
        """
        membership = require_team_member(self.db, team_id, user)
        member = self._get_target(team_id, member_user_id)

        if member.role == "owner":
            raise HTTPException(status_code=400, detail="The team owner cannot be removed or leave the team")

        leaving = member.user_id == user.id
        allowed = (
            leaving
            or membership.role == "owner"
            or (membership.role == "admin" and member.role == "member")
        )
        if not allowed:
            raise HTTPException(status_code=403, detail="You don't have permission to remove this member")

        email, member_id = member.profile.email, member.id
        self.repo.delete_member(self.db, member)
        logger.info(f"👋 {email} {'left' if leaving else 'removed from'} team {team_id}")
        log_activity(
            self.db, "member_removed", "team_member", member_id, team_id, user, {"email": email, "left": leaving}
        )
