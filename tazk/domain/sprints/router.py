"""Sprint router - FastAPI endpoints for sprints and the backlog"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from ..tasks.schemas import TaskResponse
from .schemas import SprintCreate, SprintResponse, SprintUpdate
from .service import SprintService

router = APIRouter(prefix="/sprints", tags=["Sprints"])


def get_sprint_service(db: Session = Depends(get_db)) -> SprintService:
    """Dependency injection for SprintService"""
    return SprintService(db)


@router.get("", response_model=list[SprintResponse])
async def get_sprints(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    """Sprints of a team, or the caller's personal sprints, newest first"""
    return service.get_sprints(current_user, team_id)


@router.get("/backlog", response_model=list[TaskResponse])
async def get_backlog(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    """Tasks of the scope that are not in any sprint"""
    return [TaskResponse.from_task(t) for t in service.get_backlog(current_user, team_id)]


@router.post("", response_model=SprintResponse, status_code=201)
async def create_sprint(
    data: SprintCreate,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return service.create_sprint(data, current_user)


@router.get("/{sprint_id}", response_model=SprintResponse)
async def get_sprint(
    sprint_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return service.get_sprint(sprint_id, current_user)


@router.patch("/{sprint_id}", response_model=SprintResponse)
async def update_sprint(
    sprint_id: str,
    data: SprintUpdate,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return service.update_sprint(sprint_id, data, current_user)


@router.post("/{sprint_id}/start", response_model=SprintResponse)
async def start_sprint(
    sprint_id: str,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return service.start_sprint(sprint_id, current_user, background_tasks)


@router.post("/{sprint_id}/complete", response_model=SprintResponse)
async def complete_sprint(
    sprint_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return service.complete_sprint(sprint_id, current_user)


@router.delete("/{sprint_id}", response_model=MessageResponse)
async def delete_sprint(
    sprint_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    service.delete_sprint(sprint_id, current_user)
    return {"message": "Sprint deleted successfully"}


@router.get("/{sprint_id}/tasks", response_model=list[TaskResponse])
async def get_sprint_tasks(
    sprint_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return [TaskResponse.from_task(t) for t in service.get_sprint_tasks(sprint_id, current_user)]


@router.post("/{sprint_id}/tasks/{task_id}", response_model=TaskResponse)
async def add_task_to_sprint(
    sprint_id: str,
    task_id: str,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    return TaskResponse.from_task(service.add_task(sprint_id, task_id, current_user, background_tasks))


@router.delete("/{sprint_id}/tasks/{task_id}", response_model=TaskResponse)
async def remove_task_from_sprint(
    sprint_id: str,
    task_id: str,
    current_user: Profile = Depends(get_current_user),
    service: SprintService = Depends(get_sprint_service),
):
    """Send the task back to the backlog"""
    return TaskResponse.from_task(service.remove_task(sprint_id, task_id, current_user))
