"""
Work-event state machine: check-in, check-out, approval and rejection of guard shifts.

Shift axis:    CHECKED_IN (open) -> CHECKED_OUT (closed)
Approval axis: AUTO_APPROVED at creation, or PENDING -> APPROVED | REJECTED
Locking is a one-way latch set only together with APPROVED.

Concurrency:
- check-in serialises on the guard row (SELECT ... FOR UPDATE) and is backstopped
  by the partial unique index uq_work_events_open_shift_per_guard.
- check-out, approve and reject are single conditional UPDATEs; a zero rowcount
  means the precondition no longer holds.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.constants import ANOMALY_NON_PRIMARY_UNIT
from app.core.errors import (
    NoPrimaryUnit,
    DuplicateActiveShift,
    NoActiveShift,
    EventLocked,
    NotEligible,
    WorkEventNotFound,
)
from app.models.work_event import WorkEvent, DutyType, EventStatus, ApprovalStatus
from app.services.audit_service import Actor, log_audit
from app.services.guard_service import get_active_guard, get_primary_unit
from app.services.tenant_service import get_organization
from app.services.unit_service import get_unit
from app.utils.datetime_utils import now_utc, local_date

logger = logging.getLogger(__name__)

MESSAGE_AUTO_APPROVED = "Check-in successful (auto-approved)"


@dataclass(frozen=True)
class Classification:
    duty_type: DutyType
    anomaly_flag: bool
    anomaly_reason: Optional[str]
    approval_status: ApprovalStatus


@dataclass
class CheckInOutcome:
    event: WorkEvent
    message: str


# Each rule inspects the duty classification and returns a reason when anomalous
AnomalyRule = Callable[[DutyType], Optional[str]]


def _non_primary_unit(duty_type: DutyType) -> Optional[str]:
    return ANOMALY_NON_PRIMARY_UNIT if duty_type == DutyType.UNSCHEDULED else None


ANOMALY_RULES: Tuple[AnomalyRule, ...] = (_non_primary_unit,)


def classify_duty(primary_unit_id: int, working_unit_id: int) -> DutyType:
    return DutyType.PRIMARY if working_unit_id == primary_unit_id else DutyType.UNSCHEDULED


def detect_anomalies(duty_type: DutyType) -> List[str]:
    return [reason for reason in (rule(duty_type) for rule in ANOMALY_RULES) if reason]


def classify(primary_unit_id: int, working_unit_id: int) -> Classification:
    duty_type = classify_duty(primary_unit_id, working_unit_id)
    reasons = detect_anomalies(duty_type)
    auto_approved = duty_type == DutyType.PRIMARY and not reasons
    return Classification(
        duty_type=duty_type,
        anomaly_flag=bool(reasons),
        anomaly_reason="; ".join(reasons) if reasons else None,
        approval_status=ApprovalStatus.AUTO_APPROVED if auto_approved else ApprovalStatus.PENDING,
    )


def find_open_event(db: Session, organization_id: int, guard_id: int) -> Optional[WorkEvent]:
    return (
        db.query(WorkEvent)
        .filter(
            WorkEvent.organization_id == organization_id,
            WorkEvent.guard_id == guard_id,
            WorkEvent.event_status == EventStatus.CHECKED_IN,
            WorkEvent.deleted_at.is_(None),
        )
        .first()
    )


def get_work_event(db: Session, organization_id: int, event_id: int) -> WorkEvent:
    event = (
        db.query(WorkEvent)
        .filter(
            WorkEvent.id == event_id,
            WorkEvent.organization_id == organization_id,
            WorkEvent.deleted_at.is_(None),
        )
        .first()
    )
    if event is None:
        raise WorkEventNotFound()
    return event


def check_in(
    db: Session,
    organization_id: int,
    guard_id: int,
    working_unit_id: int,
    actor: Actor,
    now: Optional[datetime] = None,
) -> CheckInOutcome:
    """
    Open a shift for the guard at working_unit_id.

    Raises GuardNotFound / GuardNotActive / NoPrimaryUnit / UnitNotFound /
    DuplicateActiveShift. shift_date is the organization-local date of check-in.
    """
    now = now or now_utc()

    guard = get_active_guard(db, organization_id, guard_id, lock=True)
    primary_unit_id = get_primary_unit(guard)
    if primary_unit_id is None:
        raise NoPrimaryUnit()
    get_unit(db, organization_id, working_unit_id)

    if find_open_event(db, organization_id, guard.id) is not None:
        raise DuplicateActiveShift()

    classification = classify(primary_unit_id, working_unit_id)
    organization = get_organization(db, organization_id)

    event = WorkEvent(
        organization_id=organization_id,
        guard_id=guard.id,
        primary_unit_id=primary_unit_id,
        working_unit_id=working_unit_id,
        check_in_time=now,
        check_out_time=None,
        shift_date=local_date(organization.timezone if organization else None, now),
        duty_type=classification.duty_type,
        event_status=EventStatus.CHECKED_IN,
        approval_status=classification.approval_status,
        anomaly_flag=classification.anomaly_flag,
        anomaly_reason=classification.anomaly_reason,
        locked_at=None,
        created_by=actor.user_id,
    )
    db.add(event)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # A concurrent check-in won the partial unique index
        if find_open_event(db, organization_id, guard_id) is not None:
            raise DuplicateActiveShift()
        raise
    db.refresh(event)

    logger.info(
        "Check-in: event_id=%s guard_id=%s org=%s duty_type=%s approval=%s",
        event.id, guard_id, organization_id, event.duty_type.value, event.approval_status.value,
    )
    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="WORK_EVENT_CHECK_IN",
        entity_type="work_events",
        entity_id=event.id,
        meta={
            "guard_id": guard_id,
            "working_unit_id": working_unit_id,
            "duty_type": event.duty_type,
            "approval_status": event.approval_status,
            "anomaly_reason": event.anomaly_reason,
        },
    )

    if classification.approval_status == ApprovalStatus.AUTO_APPROVED:
        message = MESSAGE_AUTO_APPROVED
    else:
        message = f"Check-in pending approval ({classification.anomaly_reason})"
    return CheckInOutcome(event=event, message=message)


def check_out(
    db: Session,
    organization_id: int,
    guard_id: int,
    actor: Actor,
    now: Optional[datetime] = None,
) -> WorkEvent:
    """
    Close the guard's open shift. Approval and anomaly fields are left untouched.

    Raises GuardNotFound / GuardNotActive / NoActiveShift / EventLocked.
    """
    now = now or now_utc()

    get_active_guard(db, organization_id, guard_id, lock=True)
    event = find_open_event(db, organization_id, guard_id)
    if event is None:
        raise NoActiveShift()
    if event.is_locked:
        raise EventLocked()

    result = db.execute(
        update(WorkEvent)
        .where(
            WorkEvent.id == event.id,
            WorkEvent.organization_id == organization_id,
            WorkEvent.event_status == EventStatus.CHECKED_IN,
            WorkEvent.locked_at.is_(None),
            WorkEvent.deleted_at.is_(None),
        )
        .values(check_out_time=now, event_status=EventStatus.CHECKED_OUT, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        # Lost a race with approval (locked) or another check-out
        current = get_work_event(db, organization_id, event.id)
        if current.is_locked:
            raise EventLocked()
        raise NoActiveShift()
    db.commit()
    db.refresh(event)

    logger.info("Check-out: event_id=%s guard_id=%s org=%s", event.id, guard_id, organization_id)
    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="WORK_EVENT_CHECK_OUT",
        entity_type="work_events",
        entity_id=event.id,
        meta={"guard_id": guard_id, "worked_minutes": event.worked_minutes},
    )
    return event


def _decide(
    db: Session,
    organization_id: int,
    event_id: int,
    approver: Actor,
    decision: ApprovalStatus,
    now: Optional[datetime],
) -> WorkEvent:
    now = now or now_utc()
    values = {
        "approval_status": decision,
        "approved_by": approver.user_id,
        "approved_at": now,
        "updated_at": now,
    }
    if decision == ApprovalStatus.APPROVED:
        # Approval and locking happen in the same statement
        values["locked_at"] = now

    result = db.execute(
        update(WorkEvent)
        .where(
            WorkEvent.id == event_id,
            WorkEvent.organization_id == organization_id,
            WorkEvent.approval_status == ApprovalStatus.PENDING,
            WorkEvent.locked_at.is_(None),
            WorkEvent.deleted_at.is_(None),
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.rollback()
        raise NotEligible()
    db.commit()

    event = get_work_event(db, organization_id, event_id)
    db.refresh(event)
    logger.info(
        "Work event %s: event_id=%s org=%s by=%s",
        decision.value.lower(), event_id, organization_id, approver.actor_id,
    )
    log_audit(
        db=db,
        organization_id=organization_id,
        actor=approver,
        action=f"WORK_EVENT_{decision.value}",
        entity_type="work_events",
        entity_id=event_id,
        meta={"guard_id": event.guard_id, "locked": event.locked_at is not None},
    )
    return event


def approve(
    db: Session,
    organization_id: int,
    event_id: int,
    approver: Actor,
    now: Optional[datetime] = None,
) -> WorkEvent:
    """PENDING -> APPROVED and lock, atomically. NotEligible when already decided, locked or in another tenant."""
    return _decide(db, organization_id, event_id, approver, ApprovalStatus.APPROVED, now)


def reject(
    db: Session,
    organization_id: int,
    event_id: int,
    approver: Actor,
    now: Optional[datetime] = None,
) -> WorkEvent:
    """PENDING -> REJECTED. The event is not locked."""
    return _decide(db, organization_id, event_id, approver, ApprovalStatus.REJECTED, now)
