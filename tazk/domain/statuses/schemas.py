"""Status domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field

HEX_COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class StatusCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field("#4CAF50", pattern=HEX_COLOR_PATTERN)
    team_id: Optional[str] = None  # None = personal status


class StatusUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    is_active: Optional[bool] = None


class StatusReorderRequest(BaseModel):
    """Full ordering of a scope's statuses; positions become index + 1"""

    status_ids: list[str] = Field(..., min_length=1)
    team_id: Optional[str] = None


class StatusResponse(BaseModel):
    id: str
    name: str
    color: str
    order_position: int
    is_active: bool
    team_id: Optional[str]
    created_by: Optional[str]

    class Config:
        from_attributes = True
