"""Activity router - team and personal activity feeds"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ...activity_logger import ACTIVITY_ENTITIES
from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...permissions import require_scope_access
from .repository import ActivityRepository
from .schemas import ActivityLogResponse

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("", response_model=list[ActivityLogResponse])
async def get_activity(
    team_id: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    entity_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Newest-first activity of a team (members only) or of the caller's personal space"""
    if entity_type and entity_type not in ACTIVITY_ENTITIES:
        raise HTTPException(status_code=400, detail=f"Unknown entity type: {entity_type}")
    require_scope_access(db, team_id, current_user)
    return ActivityRepository.get_logs(db, team_id, current_user.id, entity_type, entity_id, limit)
