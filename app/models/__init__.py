"""
Database models
"""
from app.models.organization import Organization, SubscriptionStatus
from app.models.org_user import OrgUser, OrgRole
from app.models.unit import Unit
from app.models.guard import Guard, EmploymentStatus
from app.models.work_event import WorkEvent, DutyType, EventStatus, ApprovalStatus
from app.models.attendance_punch import AttendancePunch, PunchType
from app.models.audit_log import AuditLog

__all__ = [
    "Organization",
    "SubscriptionStatus",
    "OrgUser",
    "OrgRole",
    "Unit",
    "Guard",
    "EmploymentStatus",
    "WorkEvent",
    "DutyType",
    "EventStatus",
    "ApprovalStatus",
    "AttendancePunch",
    "PunchType",
    "AuditLog",
]
