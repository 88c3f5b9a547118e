"""Profile router - the caller's own profile"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...activity_logger import log_activity
from ...auth import get_current_user
from ...database import get_db
from ...models import Profile
from ...schemas import ProfileResponse, ProfileUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(current_user: Profile = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=ProfileResponse)
async def update_my_profile(
    data: ProfileUpdate,
    current_user: Profile = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = data.model_dump(exclude_unset=True)
    if "full_name" in updates and updates["full_name"] is not None:
        updates["full_name"] = updates["full_name"].strip() or None

    for key, value in updates.items():
        setattr(current_user, key, value)
    db.commit()
    db.refresh(current_user)
    logger.info(f"✅ Profile updated for {current_user.email}")

    log_activity(db, "profile_updated", "profile", current_user.id, None, current_user, {"fields": sorted(updates)})
    return current_user
