"""
Dashboard metrics and terminal status schemas
"""
from datetime import date
from typing import Optional
from pydantic import BaseModel

from app.schemas.work_event import WorkEventOut


class DashboardMetrics(BaseModel):
    on_duty: int
    pending_approvals: int
    anomalies_today: int
    active_guards: int
    understaffed_units: int
    total_units: int
    as_of_date: date


class GuardTerminalStatus(BaseModel):
    guard_id: int
    full_name: str
    guard_code: str
    employment_status: str
    primary_unit_id: Optional[int] = None
    primary_unit_name: Optional[str] = None
    is_checked_in: bool
    active_shift: Optional[WorkEventOut] = None
