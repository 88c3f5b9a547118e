"""Team domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import INVITABLE_ROLES

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class TeamCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TeamUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)


class TeamResponse(BaseModel):
    id: str
    name: str
    color: Optional[str]
    created_by: str
    created_at: Optional[datetime]
    role: Optional[str] = None  # The caller's role in the team
    member_count: int = 0


class MemberResponse(BaseModel):
    user_id: str
    email: str
    full_name: Optional[str]
    avatar_url: Optional[str] = None
    role: str
    joined_at: Optional[datetime]


class MemberRoleUpdate(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v not in INVITABLE_ROLES:
            raise ValueError(f"role must be one of: {', '.join(INVITABLE_ROLES)}")
        return v
