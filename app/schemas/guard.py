"""
Guard schemas
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_validator, field_serializer

from app.models.guard import EmploymentStatus
from app.utils.datetime_utils import iso_8601_utc


def _normalize_code(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip().upper()
    if not v:
        raise ValueError("guard_code cannot be empty")
    return v


def _normalize_password(v: Optional[str]) -> Optional[str]:
    """Trim; empty means no terminal password. Length rules match app.core.security.validate_password."""
    if v is None:
        return None
    v = v.strip()
    if not v:
        return None
    if len(v) < 6:
        raise ValueError("Password must be at least 6 characters")
    if len(v.encode("utf-8")) > 72:
        raise ValueError("Password cannot be longer than 72 bytes when encoded as UTF-8")
    return v


class GuardCreate(BaseModel):
    """Schema for creating a guard"""
    full_name: str = Field(..., min_length=1, description="Guard full name")
    guard_code: str = Field(..., description="Guard code (unique per organization, stored uppercase)")
    phone_number: Optional[str] = Field(None, description="Mobile number")
    email: Optional[str] = Field(None, description="Email address")
    primary_unit_id: Optional[int] = Field(None, description="Primary (assigned) unit")
    employment_status: EmploymentStatus = Field(default=EmploymentStatus.ACTIVE)
    is_supervisor: bool = Field(default=False)
    supervised_unit_id: Optional[int] = Field(None, description="Unit this supervisor may mark attendance for")
    password: Optional[str] = Field(None, description="Terminal password (optional)")

    @field_validator("guard_code")
    @classmethod
    def normalize_code(cls, v):
        return _normalize_code(v)

    @field_validator("password", mode="before")
    @classmethod
    def normalize_password(cls, v):
        return _normalize_password(v)


class GuardUpdate(BaseModel):
    """Schema for updating a guard; omitted fields are left unchanged"""
    full_name: Optional[str] = None
    guard_code: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    primary_unit_id: Optional[int] = None
    employment_status: Optional[EmploymentStatus] = None
    is_supervisor: Optional[bool] = None
    supervised_unit_id: Optional[int] = None
    password: Optional[str] = None

    @field_validator("guard_code")
    @classmethod
    def normalize_code(cls, v):
        return _normalize_code(v)

    @field_validator("password", mode="before")
    @classmethod
    def normalize_password(cls, v):
        return _normalize_password(v)


class FaceDataRequest(BaseModel):
    """Enrolment of a reference face image (already stored by the client)"""
    face_data_url: str = Field(..., min_length=1)
    face_data_ref: str = Field(..., min_length=1, description="Opaque storage reference")


class GuardOut(BaseModel):
    id: int
    organization_id: int
    full_name: str
    guard_code: str
    phone_number: Optional[str] = None
    email: Optional[str] = None
    primary_unit_id: Optional[int] = None
    employment_status: EmploymentStatus
    is_supervisor: bool
    supervised_unit_id: Optional[int] = None
    face_verification_enabled: bool
    face_data_url: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "deleted_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)


class GuardListResponse(BaseModel):
    items: List[GuardOut]
    total: int
    page: int
    limit: int
    total_pages: int


class QuotaOut(BaseModel):
    allowed: bool
    current: int
    limit: int
    message: Optional[str] = None
