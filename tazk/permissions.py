"""
Team membership and role checks.

These replace the row-level security policies of the hosted database: every
service call resolves the caller's membership here before touching team data.
"""

from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .models import Profile, Team, TeamMember

# Roles allowed to manage team configuration (statuses, invitations, settings)
MANAGER_ROLES = ("owner", "admin")


def get_membership(db: Session, team_id: str, user_id: str) -> Optional[TeamMember]:
    """Get the membership row of a user in a team"""
    return (
        db.query(TeamMember)
        .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
        .first()
    )


def require_team_member(db: Session, team_id: str, user: Profile) -> TeamMember:
    """Return the caller's membership, 404 when the team doesn't exist or isn't visible"""
    membership = get_membership(db, team_id, user.id)
    if not membership:
        # Non-members can't tell a foreign team from a missing one
        raise HTTPException(status_code=404, detail="Team not found")
    return membership


def require_team_role(
    db: Session, team_id: str, user: Profile, roles: tuple[str, ...] = MANAGER_ROLES
) -> TeamMember:
    """Return the caller's membership if their role is one of `roles`, 403 otherwise"""
    membership = require_team_member(db, team_id, user)
    if membership.role not in roles:
        raise HTTPException(
            status_code=403,
            detail=f"This action requires one of these roles: {', '.join(roles)}",
        )
    return membership


def require_scope_access(db: Session, team_id: Optional[str], user: Profile) -> Optional[TeamMember]:
    """
    Check access to a scope: a team (membership required) or the caller's
    personal space (team_id is None, always allowed).
    """
    if team_id is None:
        return None
    return require_team_member(db, team_id, user)


def can_manage_scope(membership: Optional[TeamMember]) -> bool:
    """Personal scope is always manageable by its owner; teams need owner/admin"""
    return membership is None or membership.role in MANAGER_ROLES


def get_team_or_404(db: Session, team_id: str) -> Team:
    team = db.query(Team).filter(Team.id == team_id).first()
    if not team:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


def get_team_member_ids(db: Session, team_id: str) -> list[str]:
    return [row.user_id for row in db.query(TeamMember.user_id).filter(TeamMember.team_id == team_id)]


def get_teammate_ids(db: Session, user_id: str) -> set[str]:
    """Users sharing at least one team with user_id, user_id included"""
    team_ids = db.query(TeamMember.team_id).filter(TeamMember.user_id == user_id)
    rows = db.query(TeamMember.user_id).filter(TeamMember.team_id.in_(team_ids.scalar_subquery()))
    return {row.user_id for row in rows} | {user_id}
