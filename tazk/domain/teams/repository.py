"""Team repository - Database operations for teams and memberships"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import (
    ActivityLog,
    EmailSettings,
    EmailTemplate,
    RecurringTask,
    Sprint,
    Task,
    TaskComment,
    TaskStatus,
    Team,
    TeamInvitation,
    TeamMember,
)


class TeamRepository:
    """Repository for team database operations"""

    @staticmethod
    def get_user_teams(db: Session, user_id: str) -> list[tuple[Team, str]]:
        """(team, role) pairs for every team the user belongs to"""
        return (
            db.query(Team, TeamMember.role)
            .join(TeamMember, TeamMember.team_id == Team.id)
            .filter(TeamMember.user_id == user_id)
            .order_by(Team.created_at)
            .all()
        )

    @staticmethod
    def count_members(db: Session, team_id: str) -> int:
        return db.query(func.count(TeamMember.id)).filter(TeamMember.team_id == team_id).scalar() or 0

    @staticmethod
    def get_members(db: Session, team_id: str) -> list[TeamMember]:
        return (
            db.query(TeamMember)
            .options(joinedload(TeamMember.profile))
            .filter(TeamMember.team_id == team_id)
            .order_by(TeamMember.joined_at)
            .all()
        )

    @staticmethod
    def get_member(db: Session, team_id: str, user_id: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .filter(TeamMember.team_id == team_id, TeamMember.user_id == user_id)
            .first()
        )

    @staticmethod
    def add_member(db: Session, team_id: str, user_id: str, role: str) -> TeamMember:
        """Stage a membership row. Caller commits."""
        member = TeamMember(team_id=team_id, user_id=user_id, role=role)
        db.add(member)
        return member

    @staticmethod
    def create_team(db: Session, name: str, color: Optional[str], created_by: str) -> Team:
        """Stage a team. Caller commits."""
        team = Team(name=name, color=color, created_by=created_by)
        db.add(team)
        db.flush()
        return team

    @staticmethod
    def update_team(db: Session, team: Team, **updates) -> Team:
        for key, value in updates.items():
            if value is not None and hasattr(team, key):
                setattr(team, key, value)
        db.commit()
        db.refresh(team)
        return team

    @staticmethod
    def delete_team(db: Session, team: Team) -> None:
        """Delete a team and everything scoped to it in one transaction"""
        team_id = team.id
        team_tasks = db.query(Task.id).filter(Task.team_id == team_id)
        db.query(TaskComment).filter(TaskComment.task_id.in_(team_tasks.scalar_subquery())).delete(
            synchronize_session=False
        )
        db.query(Task).filter(Task.team_id == team_id).delete(synchronize_session=False)
        db.query(Sprint).filter(Sprint.team_id == team_id).delete(synchronize_session=False)
        db.query(RecurringTask).filter(RecurringTask.team_id == team_id).delete(synchronize_session=False)
        db.query(TaskStatus).filter(TaskStatus.team_id == team_id).delete(synchronize_session=False)
        db.query(TeamInvitation).filter(TeamInvitation.team_id == team_id).delete(synchronize_session=False)
        db.query(EmailSettings).filter(EmailSettings.team_id == team_id).delete(synchronize_session=False)
        db.query(EmailTemplate).filter(EmailTemplate.team_id == team_id).delete(synchronize_session=False)
        db.query(ActivityLog).filter(ActivityLog.team_id == team_id).delete(synchronize_session=False)
        db.delete(team)
        db.commit()

    @staticmethod
    def delete_member(db: Session, member: TeamMember) -> None:
        db.delete(member)
        db.commit()
