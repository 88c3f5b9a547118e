"""Team router - FastAPI endpoints for teams and their members"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from .schemas import MemberResponse, MemberRoleUpdate, TeamCreate, TeamResponse, TeamUpdate
from .service import TeamService

router = APIRouter(prefix="/teams", tags=["Teams"])


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Dependency injection for TeamService"""
    return TeamService(db)


@router.get("", response_model=list[TeamResponse])
async def get_teams(
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Teams the caller belongs to, with their role in each"""
    return service.get_teams(current_user)


@router.post("", response_model=TeamResponse, status_code=201)
async def create_team(
    data: TeamCreate,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.create_team(data, current_user)


@router.get("/{team_id}", response_model=TeamResponse)
async def get_team(
    team_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.get_team(team_id, current_user)


@router.patch("/{team_id}", response_model=TeamResponse)
async def update_team(
    team_id: str,
    data: TeamUpdate,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.update_team(team_id, data, current_user)


@router.delete("/{team_id}", response_model=MessageResponse)
async def delete_team(
    team_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    """Delete a team with its tasks, statuses, members, invitations and rules"""
    service.delete_team(team_id, current_user)
    return {"message": "Team deleted successfully"}


@router.get("/{team_id}/members", response_model=list[MemberResponse])
async def get_members(
    team_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.get_members(team_id, current_user)


@router.patch("/{team_id}/members/{user_id}", response_model=MemberResponse)
async def update_member_role(
    team_id: str,
    user_id: str,
    data: MemberRoleUpdate,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    return service.update_member_role(team_id, user_id, data, current_user)


@router.delete("/{team_id}/members/{user_id}", response_model=MessageResponse)
async def remove_member(
    team_id: str,
    user_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TeamService = Depends(get_team_service),
):
    service.remove_member(team_id, user_id, current_user)
    return {"message": "Member removed successfully"}
