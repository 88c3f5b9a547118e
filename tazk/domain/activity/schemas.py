"""Activity feed schemas"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class ActivityLogResponse(BaseModel):
    id: str
    user_id: str
    user_email: Optional[str]
    team_id: Optional[str]
    entity_type: str
    entity_id: str
    action: str
    changes: Optional[dict[str, Any]] = None
    description: Optional[str]
    created_at: Optional[datetime]

    class Config:
        from_attributes = True
