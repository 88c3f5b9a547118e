"""Invitation router - team invitations, from both sides"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...rate_limiter import create_rate_limiter
from .schemas import InvitationCreate, InvitationResponse
from .service import InvitationService

router = APIRouter(tags=["Invitations"])

invitation_rate_limit = create_rate_limiter(limit=20, window_seconds=3600, key_prefix="invitations")


def get_invitation_service(db: Session = Depends(get_db)) -> InvitationService:
    """Dependency injection for InvitationService"""
    return InvitationService(db)


@router.post("/teams/{team_id}/invitations", response_model=InvitationResponse, status_code=201)
async def create_invitation(
    team_id: str,
    data: InvitationCreate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
    _: None = Depends(invitation_rate_limit),
):
    invitation = service.create_invitation(team_id, data, current_user, background_tasks)
    return InvitationResponse.from_invitation(invitation)


@router.get("/teams/{team_id}/invitations", response_model=list[InvitationResponse])
async def get_team_invitations(
    team_id: str,
    status: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitations = service.get_team_invitations(team_id, current_user, status)
    return [InvitationResponse.from_invitation(i) for i in invitations]


@router.delete("/teams/{team_id}/invitations/{invitation_id}", response_model=InvitationResponse)
async def cancel_invitation(
    team_id: str,
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitation = service.cancel_invitation(team_id, invitation_id, current_user)
    return InvitationResponse.from_invitation(invitation)


@router.get("/invitations", response_model=list[InvitationResponse])
async def get_my_invitations(
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    """Pending invitations addressed to the caller"""
    return [InvitationResponse.from_invitation(i) for i in service.get_my_invitations(current_user)]


@router.post("/invitations/{invitation_id}/accept", response_model=InvitationResponse)
async def accept_invitation(
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitation = service.accept_invitation(invitation_id, current_user)
    return InvitationResponse.from_invitation(invitation)


@router.post("/invitations/{invitation_id}/reject", response_model=InvitationResponse)
async def reject_invitation(
    invitation_id: str,
    current_user: Profile = Depends(get_current_user),
    service: InvitationService = Depends(get_invitation_service),
):
    invitation = service.reject_invitation(invitation_id, current_user)
    return InvitationResponse.from_invitation(invitation)
