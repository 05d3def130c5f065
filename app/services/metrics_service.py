"""
Query/metrics layer: org-scoped aggregates and lists, recomputed from rows on every call.
"""
from datetime import date
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from app.core.constants import DEFAULT_HISTORY_LIMIT
from app.models.guard import Guard, EmploymentStatus
from app.models.unit import Unit
from app.models.work_event import WorkEvent, EventStatus, ApprovalStatus
from app.services.guard_service import get_guard
from app.services.tenant_service import get_organization, count_active_guards
from app.services.work_event_service import find_open_event
from app.utils.datetime_utils import local_date


def _events(db: Session, organization_id: int):
    return db.query(WorkEvent).filter(
        WorkEvent.organization_id == organization_id,
        WorkEvent.deleted_at.is_(None),
    )


def org_today(db: Session, organization_id: int) -> date:
    organization = get_organization(db, organization_id)
    return local_date(organization.timezone if organization else None)


def count_on_duty(db: Session, organization_id: int) -> int:
    return _events(db, organization_id).filter(WorkEvent.event_status == EventStatus.CHECKED_IN).count()


def count_pending_approvals(db: Session, organization_id: int) -> int:
    return _events(db, organization_id).filter(WorkEvent.approval_status == ApprovalStatus.PENDING).count()


def count_anomalies_on(db: Session, organization_id: int, shift_date: date) -> int:
    return (
        _events(db, organization_id)
        .filter(WorkEvent.anomaly_flag.is_(True), WorkEvent.shift_date == shift_date)
        .count()
    )


def count_understaffed_units(db: Session, organization_id: int) -> int:
    """Units whose active, non-deleted primary-assigned guards number fewer than required_guard_count."""
    staffed = (
        db.query(Guard.primary_unit_id.label("unit_id"), func.count(Guard.id).label("guard_count"))
        .filter(
            Guard.organization_id == organization_id,
            Guard.employment_status == EmploymentStatus.ACTIVE,
            Guard.deleted_at.is_(None),
            Guard.primary_unit_id.isnot(None),
        )
        .group_by(Guard.primary_unit_id)
        .subquery()
    )
    return (
        db.query(func.count(Unit.id))
        .outerjoin(staffed, staffed.c.unit_id == Unit.id)
        .filter(
            Unit.organization_id == organization_id,
            Unit.deleted_at.is_(None),
            func.coalesce(staffed.c.guard_count, 0) < Unit.required_guard_count,
        )
        .scalar()
    ) or 0


def dashboard_metrics(db: Session, organization_id: int, today: Optional[date] = None) -> dict:
    today = today or org_today(db, organization_id)
    total_units = (
        db.query(func.count(Unit.id))
        .filter(Unit.organization_id == organization_id, Unit.deleted_at.is_(None))
        .scalar()
    ) or 0
    return {
        "on_duty": count_on_duty(db, organization_id),
        "pending_approvals": count_pending_approvals(db, organization_id),
        "anomalies_today": count_anomalies_on(db, organization_id, today),
        "active_guards": count_active_guards(db, organization_id),
        "understaffed_units": count_understaffed_units(db, organization_id),
        "total_units": total_units,
        "as_of_date": today,
    }


def list_active_shifts(db: Session, organization_id: int) -> List[WorkEvent]:
    return (
        _events(db, organization_id)
        .options(joinedload(WorkEvent.guard), joinedload(WorkEvent.working_unit))
        .filter(WorkEvent.event_status == EventStatus.CHECKED_IN)
        .order_by(WorkEvent.check_in_time.desc())
        .all()
    )


def list_pending_approvals(db: Session, organization_id: int) -> List[WorkEvent]:
    """Pending events, oldest first, so the queue is worked in arrival order."""
    return (
        _events(db, organization_id)
        .options(joinedload(WorkEvent.guard), joinedload(WorkEvent.working_unit))
        .filter(WorkEvent.approval_status == ApprovalStatus.PENDING)
        .order_by(WorkEvent.check_in_time.asc())
        .all()
    )


def guard_shift_history(
    db: Session,
    organization_id: int,
    guard_id: int,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[WorkEvent]:
    guard = get_guard(db, organization_id, guard_id)
    return (
        _events(db, organization_id)
        .options(joinedload(WorkEvent.working_unit))
        .filter(WorkEvent.guard_id == guard.id)
        .order_by(WorkEvent.check_in_time.desc())
        .limit(max(limit, 1))
        .all()
    )


def guard_terminal_status(db: Session, organization_id: int, guard_id: int) -> dict:
    """What the field terminal shows: who the guard is, the primary unit and the open shift if any."""
    guard = get_guard(db, organization_id, guard_id)
    active_shift = find_open_event(db, organization_id, guard.id)
    return {
        "guard": guard,
        "primary_unit": guard.primary_unit if guard.primary_unit_id is not None else None,
        "active_shift": active_shift,
    }
