"""
Unit schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, field_serializer

from app.utils.datetime_utils import iso_8601_utc


class UnitCreate(BaseModel):
    """Schema for creating a unit"""
    unit_name: str = Field(..., min_length=1, description="Unit (site) name")
    address: Optional[str] = Field(None, description="Street address")
    required_guard_count: int = Field(default=1, ge=1, description="Guards needed for the unit to be fully staffed")

    @field_validator("unit_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("unit_name cannot be empty")
        return v


class UnitOut(BaseModel):
    id: int
    organization_id: int
    unit_name: str
    address: Optional[str] = None
    required_guard_count: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)
