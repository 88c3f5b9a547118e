"""Recurring task router - rule management and the generator function"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_service_key
from ...database import get_db
from ...models import Profile
from ...schemas import MessageResponse
from .schemas import (
    RecurringRunResponse,
    RecurringTaskCreate,
    RecurringTaskResponse,
    RecurringTaskUpdate,
)
from .service import RecurringTaskService, create_recurring_tasks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recurring-tasks", tags=["Recurring Tasks"])
functions_router = APIRouter(prefix="/functions", tags=["Functions"])


def get_recurring_service(db: Session = Depends(get_db)) -> RecurringTaskService:
    """Dependency injection for RecurringTaskService"""
    return RecurringTaskService(db)


@router.get("", response_model=list[RecurringTaskResponse])
async def get_recurring_tasks(
    team_id: Optional[str] = Query(None),
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    return service.get_rules(current_user, team_id)


@router.post("", response_model=RecurringTaskResponse, status_code=201)
async def create_recurring_task(
    data: RecurringTaskCreate,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    """Create a rule; its first run is computed from the current time"""
    return service.create_rule(data, current_user)


@router.get("/{rule_id}", response_model=RecurringTaskResponse)
async def get_recurring_task(
    rule_id: str,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    return service.get_rule(rule_id, current_user)


@router.patch("/{rule_id}", response_model=RecurringTaskResponse)
async def update_recurring_task(
    rule_id: str,
    data: RecurringTaskUpdate,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    return service.update_rule(rule_id, data, current_user)


@router.post("/{rule_id}/activate", response_model=RecurringTaskResponse)
async def activate_recurring_task(
    rule_id: str,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    return service.set_active(rule_id, True, current_user)


@router.post("/{rule_id}/deactivate", response_model=RecurringTaskResponse)
async def deactivate_recurring_task(
    rule_id: str,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    return service.set_active(rule_id, False, current_user)


@router.delete("/{rule_id}", response_model=MessageResponse)
async def delete_recurring_task(
    rule_id: str,
    current_user: Profile = Depends(get_current_user),
    service: RecurringTaskService = Depends(get_recurring_service),
):
    service.delete_rule(rule_id, current_user)
    return {"message": "Recurring task deleted successfully"}


@functions_router.post(
    "/create-recurring-tasks",
    response_model=RecurringRunResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_service_key)],
)
async def create_recurring_tasks_function(db: Session = Depends(get_db)):
    """
    Generate the tasks of every due recurring rule. Meant for the scheduler;
    the arq worker runs the same job on its own cron.
    """
    try:
        return create_recurring_tasks(db).to_response()
    except Exception as e:
        logger.error(f"❌ create-recurring-tasks failed: {e}")
        return JSONResponse(status_code=500, content={"error": str(e)})
