"""Status router - FastAPI endpoints for task status operations"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from .schemas import StatusCreate, StatusReorderRequest, StatusResponse, StatusUpdate
from .service import StatusService

router = APIRouter(prefix="/statuses", tags=["Statuses"])


def get_status_service(db: Session = Depends(get_db)) -> StatusService:
    """Dependency injection for StatusService"""
    return StatusService(db)


@router.get("", response_model=list[StatusResponse])
async def get_statuses(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    """Statuses of a team, or the caller's personal statuses, by position"""
    return service.get_statuses(current_user, team_id)


@router.post("", response_model=StatusResponse, status_code=201)
async def create_status(
    data: StatusCreate,
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    return service.create_status(data, current_user)


@router.put("/reorder", response_model=list[StatusResponse])
async def reorder_statuses(
    data: StatusReorderRequest,
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    return service.reorder_statuses(data, current_user)


@router.patch("/{status_id}", response_model=StatusResponse)
async def update_status(
    status_id: str,
    data: StatusUpdate,
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    return service.update_status(status_id, data, current_user)


@router.post("/{status_id}/toggle", response_model=StatusResponse)
async def toggle_status(
    status_id: str,
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    """Activate or deactivate a status; tasks of a deactivated status are moved"""
    return service.toggle_status(status_id, current_user)


@router.delete("/{status_id}", response_model=MessageResponse)
async def delete_status(
    status_id: str,
    current_user: Profile = Depends(get_current_user),
    service: StatusService = Depends(get_status_service),
):
    service.delete_status(status_id, current_user)
    return {"message": "Status deleted successfully"}
