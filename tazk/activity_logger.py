"""
Activity logging for the audit trail shown in the team activity feed.

log_activity is called after the primary change has been committed and
commits on its own; a failure here is logged and never propagates.
"""

import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from .models import ActivityLog, Profile

logger = logging.getLogger(__name__)

# Allowed values per the activity_logs CHECK constraints
ACTIVITY_ACTIONS = (
    "created",
    "updated",
    "deleted",
    "assigned",
    "unassigned",
    "reassigned",
    "status_changed",
    "role_changed",
    "member_added",
    "member_removed",
    "invited",
    "invitation_accepted",
    "invitation_rejected",
    "invitation_cancelled",
    "profile_updated",
    "activated",
    "deactivated",
    "started",
    "completed",
)

ACTIVITY_ENTITIES = (
    "task",
    "team",
    "team_member",
    "status",
    "invitation",
    "profile",
    "recurring_task",
    "sprint",
)


def log_activity(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: str,
    team_id: Optional[str],
    user: Profile,
    details: Optional[dict[str, Any]] = None,
) -> Optional[ActivityLog]:
    """Insert an activity_logs row. Returns None if the entry could not be stored."""
    if action not in ACTIVITY_ACTIONS or entity_type not in ACTIVITY_ENTITIES:
        logger.error(f"❌ Refusing to log unknown activity: {action} {entity_type}")
        return None

    try:
        entry = ActivityLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            team_id=team_id,
            user_id=user.id,
            user_email=user.email,
            changes=details or {},
            description=f"{action} {entity_type}",
        )
        db.add(entry)
        db.commit()
        return entry
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Error logging activity {action} {entity_type} {entity_id}: {e}")
        return None


def log_task_status_changed(
    db: Session, task, user: Profile, old_status: Optional[str], new_status: Optional[str]
) -> Optional[ActivityLog]:
    return log_activity(
        db,
        "status_changed",
        "task",
        task.id,
        task.team_id,
        user,
        {"title": task.title, "old_status": old_status, "new_status": new_status},
    )


def log_task_assigned(
    db: Session, task, user: Profile, assigned_to_email: str, reassigned: bool = False
) -> Optional[ActivityLog]:
    return log_activity(
        db,
        "reassigned" if reassigned else "assigned",
        "task",
        task.id,
        task.team_id,
        user,
        {"title": task.title, "assigned_to_email": assigned_to_email},
    )
