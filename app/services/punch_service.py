"""
Attendance punch log: append-only photo + geolocation IN/OUT ledger.

Within one organization-local calendar day a guard's punches strictly alternate
starting with IN. Face verification is threshold-gated on an externally
computed score and fails closed when the score is missing.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.constants import FACE_MATCH_THRESHOLD, DEFAULT_PUNCH_HISTORY_DAYS
from app.core.errors import AlreadyPunchedIn, MustPunchInFirst, NotAuthorized, NoPrimaryUnit
from app.models.attendance_punch import AttendancePunch, PunchType
from app.models.guard import Guard, EmploymentStatus
from app.services.audit_service import Actor, log_audit
from app.services.guard_service import get_active_guard, get_guard
from app.services.tenant_service import get_organization
from app.services.unit_service import get_unit
from app.utils.datetime_utils import now_utc, local_date

logger = logging.getLogger(__name__)

BOARD_ABSENT = "ABSENT"


@dataclass
class GeoPoint:
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None


def is_face_verified(face_verification_enabled: bool, face_score: Optional[float]) -> bool:
    """Verified only when enabled and a score at or above the threshold was supplied."""
    if not face_verification_enabled or face_score is None:
        return False
    return face_score >= FACE_MATCH_THRESHOLD


def _org_timezone(db: Session, organization_id: int) -> Optional[str]:
    organization = get_organization(db, organization_id)
    return organization.timezone if organization else None


def last_punch_on(db: Session, organization_id: int, guard_id: int, punch_date) -> Optional[AttendancePunch]:
    return (
        db.query(AttendancePunch)
        .filter(
            AttendancePunch.organization_id == organization_id,
            AttendancePunch.guard_id == guard_id,
            AttendancePunch.punch_date == punch_date,
        )
        .order_by(AttendancePunch.punch_time.desc(), AttendancePunch.id.desc())
        .first()
    )


def _check_alternation(last: Optional[AttendancePunch], punch_type: PunchType) -> None:
    last_type = last.punch_type if last is not None else None
    if punch_type == PunchType.IN and last_type == PunchType.IN:
        raise AlreadyPunchedIn()
    if punch_type == PunchType.OUT and last_type != PunchType.IN:
        raise MustPunchInFirst()


def _record_punch(
    db: Session,
    organization_id: int,
    guard: Guard,
    unit_id: int,
    punch_type: PunchType,
    photo_url: str,
    photo_ref: str,
    geo: Optional[GeoPoint],
    face_score: Optional[float],
    marked_by: Optional[int],
    actor: Actor,
    now: datetime,
) -> AttendancePunch:
    punch_date = local_date(_org_timezone(db, organization_id), now)
    _check_alternation(last_punch_on(db, organization_id, guard.id, punch_date), punch_type)

    punch = AttendancePunch(
        organization_id=organization_id,
        guard_id=guard.id,
        unit_id=unit_id,
        punch_type=punch_type,
        punch_time=now,
        punch_date=punch_date,
        photo_url=photo_url,
        photo_ref=photo_ref,
        latitude=geo.latitude if geo else None,
        longitude=geo.longitude if geo else None,
        location_accuracy=geo.accuracy if geo else None,
        location_address=geo.address if geo else None,
        face_match_score=face_score,
        face_verified=is_face_verified(guard.face_verification_enabled, face_score),
        marked_by=marked_by,
    )
    db.add(punch)
    db.commit()
    db.refresh(punch)

    logger.info(
        "Punch %s: punch_id=%s guard_id=%s unit_id=%s org=%s face_verified=%s marked_by=%s",
        punch_type.value, punch.id, guard.id, unit_id, organization_id, punch.face_verified, marked_by,
    )
    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action=f"PUNCH_{punch_type.value}",
        entity_type="attendance_punches",
        entity_id=punch.id,
        meta={"guard_id": guard.id, "unit_id": unit_id, "face_verified": punch.face_verified},
    )
    return punch


def punch(
    db: Session,
    organization_id: int,
    guard_id: int,
    unit_id: Optional[int],
    punch_type: PunchType,
    photo_url: str,
    photo_ref: str,
    actor: Actor,
    geo: Optional[GeoPoint] = None,
    face_score: Optional[float] = None,
    marked_by: Optional[int] = None,
    now: Optional[datetime] = None,
) -> AttendancePunch:
    """
    Append an IN/OUT punch for the guard.

    unit_id defaults to the guard's primary unit (NoPrimaryUnit when it has none).
    Raises GuardNotFound / GuardNotActive / UnitNotFound / AlreadyPunchedIn / MustPunchInFirst.
    """
    now = now or now_utc()
    guard = get_active_guard(db, organization_id, guard_id, lock=True)
    if unit_id is None:
        unit_id = guard.primary_unit_id
        if unit_id is None:
            raise NoPrimaryUnit()
    get_unit(db, organization_id, unit_id)

    return _record_punch(
        db, organization_id, guard, unit_id, punch_type, photo_url, photo_ref,
        geo, face_score, marked_by, actor, now,
    )


def get_supervisor(db: Session, organization_id: int, supervisor_id: int) -> Guard:
    """Active guard flagged as supervisor with a supervised unit, else NotAuthorized."""
    supervisor = get_active_guard(db, organization_id, supervisor_id)
    if not supervisor.is_supervisor or supervisor.supervised_unit_id is None:
        raise NotAuthorized()
    return supervisor


def supervisor_punch(
    db: Session,
    organization_id: int,
    supervisor_id: int,
    guard_id: int,
    punch_type: PunchType,
    photo_url: str,
    photo_ref: str,
    geo: Optional[GeoPoint] = None,
    face_score: Optional[float] = None,
    now: Optional[datetime] = None,
) -> AttendancePunch:
    """
    Punch marked by a supervisor for a guard whose primary unit is the supervised unit.
    The punch is recorded at the guard's primary unit with marked_by = supervisor.
    """
    now = now or now_utc()
    supervisor = get_supervisor(db, organization_id, supervisor_id)
    guard = get_active_guard(db, organization_id, guard_id, lock=True)
    if guard.primary_unit_id is None or guard.primary_unit_id != supervisor.supervised_unit_id:
        raise NotAuthorized()

    return _record_punch(
        db, organization_id, guard, guard.primary_unit_id, punch_type, photo_url, photo_ref,
        geo, face_score, supervisor.id, Actor.guard(supervisor.id), now,
    )


def list_guard_punches(
    db: Session,
    organization_id: int,
    guard_id: int,
    days: int = DEFAULT_PUNCH_HISTORY_DAYS,
) -> List[AttendancePunch]:
    """Punches of the last `days` organization-local days, newest first."""
    guard = get_guard(db, organization_id, guard_id)
    since = local_date(_org_timezone(db, organization_id)) - timedelta(days=max(days, 1) - 1)
    return (
        db.query(AttendancePunch)
        .filter(
            AttendancePunch.organization_id == organization_id,
            AttendancePunch.guard_id == guard.id,
            AttendancePunch.punch_date >= since,
        )
        .order_by(AttendancePunch.punch_time.desc(), AttendancePunch.id.desc())
        .all()
    )


def supervisor_unit_board(db: Session, organization_id: int, supervisor_id: int) -> List[dict]:
    """
    Today's state of every active guard in the supervisor's unit: the type of
    the last punch today, or ABSENT when there is none.
    """
    supervisor = get_supervisor(db, organization_id, supervisor_id)
    today = local_date(_org_timezone(db, organization_id))
    guards = (
        db.query(Guard)
        .filter(
            Guard.organization_id == organization_id,
            Guard.primary_unit_id == supervisor.supervised_unit_id,
            Guard.employment_status == EmploymentStatus.ACTIVE,
            Guard.deleted_at.is_(None),
        )
        .order_by(Guard.full_name)
        .all()
    )

    board = []
    for guard in guards:
        last = last_punch_on(db, organization_id, guard.id, today)
        board.append({
            "guard_id": guard.id,
            "full_name": guard.full_name,
            "guard_code": guard.guard_code,
            "status": last.punch_type.value if last else BOARD_ABSENT,
            "last_punch_time": last.punch_time if last else None,
        })
    return board
