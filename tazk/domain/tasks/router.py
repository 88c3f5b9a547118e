"""Task router - FastAPI endpoints for task operations"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from .schemas import CommentCreate, CommentResponse, TaskCreate, TaskResponse, TaskUpdate
from .service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])


def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    """Dependency injection for TaskService"""
    return TaskService(db)


@router.get("", response_model=list[TaskResponse])
async def get_tasks(
    team_id: Optional[str] = Query(None),
    status_id: Optional[str] = Query(None),
    assigned_to: Optional[str] = Query(None),
    search: Optional[str] = Query(None, max_length=200),
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Tasks of a team, or the caller's personal tasks, newest first"""
    tasks = service.get_tasks(current_user, team_id, status_id, assigned_to, search)
    return [TaskResponse.from_task(t) for t in tasks]


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    data: TaskCreate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    task = service.create_task(data, current_user, background_tasks)
    return TaskResponse.from_task(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    return TaskResponse.from_task(service.get_task(task_id, current_user))


@router.patch("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    data: TaskUpdate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Partial update; assignment and completion trigger notifications"""
    task = service.update_task(task_id, data, current_user, background_tasks)
    return TaskResponse.from_task(task)


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    task_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    service.delete_task(task_id, current_user)
    return {"message": "Task deleted successfully"}


@router.get("/{task_id}/comments", response_model=list[CommentResponse])
async def get_comments(
    task_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    """Comments of a task, oldest first"""
    return [CommentResponse.from_comment(c) for c in service.get_comments(task_id, current_user)]


@router.post("/{task_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    task_id: str,
    data: CommentCreate,
    background_tasks: BackgroundTasks,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    comment = service.add_comment(task_id, data, current_user, background_tasks)
    return CommentResponse.from_comment(comment)


@router.delete("/{task_id}/comments/{comment_id}", response_model=MessageResponse)
async def delete_comment(
    task_id: str,
    comment_id: str,
    current_user: Profile = Depends(get_current_user),
    service: TaskService = Depends(get_task_service),
):
    service.delete_comment(task_id, comment_id, current_user)
    return {"message": "Comment deleted successfully"}
