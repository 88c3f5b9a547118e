"""Sprint domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def _check_dates(start_date: Optional[datetime], end_date: Optional[datetime]) -> None:
    if start_date and end_date and end_date <= start_date:
        raise ValueError("end_date must be after start_date")


class SprintCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    goal: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    team_id: Optional[str] = None  # None = personal sprint

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Sprint name is required")
        return v.strip()

    @model_validator(mode="after")
    def validate_dates(self):
        _check_dates(self.start_date, self.end_date)
        return self


class SprintUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    goal: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Sprint name is required")
        return v.strip() if v else v


class SprintResponse(BaseModel):
    id: str
    name: str
    goal: Optional[str]
    status: str
    start_date: Optional[datetime]
    end_date: Optional[datetime]
    team_id: Optional[str]
    created_by: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True
