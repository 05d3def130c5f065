"""
Authentication and organization signup schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, field_serializer

from app.core.constants import PLAN_GUARD_LIMITS, DEFAULT_PLAN
from app.core.security import validate_password
from app.models.organization import SubscriptionStatus
from app.utils.datetime_utils import iso_8601_utc


class LoginRequest(BaseModel):
    """Console login request schema"""
    email: str = Field(..., description="Console user email")
    password: str = Field(..., description="Password")


class GuardLoginRequest(BaseModel):
    """Guard terminal login request schema"""
    organization_slug: str = Field(..., description="Organization slug")
    guard_code: str = Field(..., description="Guard code (case-insensitive)")
    password: str = Field(..., description="Terminal password")


class TokenResponse(BaseModel):
    """Token response schema"""
    access_token: str
    token_type: str = "bearer"


class OrganizationSignup(BaseModel):
    """Self-service signup: a new organization on trial plus its first ADMIN"""
    organization_name: str = Field(..., min_length=1, description="Organization display name")
    slug: Optional[str] = Field(None, description="Login slug; derived from the name when omitted")
    admin_email: str = Field(..., min_length=3, description="Email of the first ADMIN")
    admin_password: str = Field(..., description="Password of the first ADMIN")
    admin_name: str = Field(default="Organization Admin", min_length=1)
    plan: str = Field(default=DEFAULT_PLAN, description="starter, professional or enterprise")

    @field_validator("organization_name", "admin_name")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("value cannot be empty")
        return v

    @field_validator("admin_email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        if "@" not in v:
            raise ValueError("admin_email must be an email address")
        return v

    @field_validator("admin_password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validate_password(v)

    @field_validator("plan")
    @classmethod
    def check_plan(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PLAN_GUARD_LIMITS:
            raise ValueError(f"plan must be one of: {', '.join(PLAN_GUARD_LIMITS)}")
        return v


class OrganizationOut(BaseModel):
    id: int
    name: str
    slug: str
    plan: str
    subscription_status: SubscriptionStatus
    trial_ends_at: Optional[datetime] = None
    guard_limit: int
    timezone: str

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("trial_ends_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)


class SignupOut(BaseModel):
    organization: OrganizationOut
    admin_user_id: int
    admin_email: str
