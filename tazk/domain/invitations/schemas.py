"""Invitation domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, field_validator

from ...models import INVITABLE_ROLES


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str = "member"

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in INVITABLE_ROLES:
            raise ValueError(f"role must be one of: {', '.join(INVITABLE_ROLES)}")
        return v


class InvitationResponse(BaseModel):
    id: str
    team_id: str
    team_name: Optional[str] = None
    email: str
    role: str
    status: str
    invited_by: str
    invited_by_email: Optional[str] = None
    expires_at: datetime
    responded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_invitation(cls, invitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            team_id=invitation.team_id,
            team_name=invitation.team.name if invitation.team else None,
            email=invitation.email,
            role=invitation.role,
            status=invitation.status,
            invited_by=invitation.invited_by,
            invited_by_email=invitation.inviter.email if invitation.inviter else None,
            expires_at=invitation.expires_at,
            responded_at=invitation.responded_at,
            created_at=invitation.created_at,
        )
