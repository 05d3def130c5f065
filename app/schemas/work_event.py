"""
Work event schemas (check-in / check-out / approval)
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_serializer

from app.models.work_event import DutyType, EventStatus, ApprovalStatus
from app.utils.datetime_utils import iso_8601_utc


class CheckInRequest(BaseModel):
    """Console check-in on behalf of a guard"""
    guard_id: int = Field(..., description="Guard checking in")
    working_unit_id: int = Field(..., description="Unit the guard is actually working at")


class CheckOutRequest(BaseModel):
    guard_id: int = Field(..., description="Guard checking out")


class TerminalCheckInRequest(BaseModel):
    """Terminal check-in; working unit defaults to the guard's primary unit"""
    working_unit_id: Optional[int] = Field(None, description="Override working unit")


class WorkEventOut(BaseModel):
    """Work event as returned by the API. Datetimes are UTC ISO-8601."""
    id: int
    organization_id: int
    guard_id: int
    primary_unit_id: Optional[int] = None
    working_unit_id: int
    check_in_time: datetime
    check_out_time: Optional[datetime] = None
    shift_date: date
    duty_type: DutyType
    event_status: EventStatus
    approval_status: ApprovalStatus
    anomaly_flag: bool
    anomaly_reason: Optional[str] = None
    locked_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_by: Optional[int] = None
    worked_minutes: Optional[int] = None
    guard_name: Optional[str] = None
    guard_code: Optional[str] = None
    working_unit_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", "locked_at", "approved_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)

    @classmethod
    def from_event(cls, event) -> "WorkEventOut":
        out = cls.model_validate(event)
        if event.guard is not None:
            out.guard_name = event.guard.full_name
            out.guard_code = event.guard.guard_code
        if event.working_unit is not None:
            out.working_unit_name = event.working_unit.unit_name
        return out


class WorkEventListResponse(BaseModel):
    items: List[WorkEventOut]
    total: int
