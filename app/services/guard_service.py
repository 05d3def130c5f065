"""
Guard directory service: lookup and validation of guards, plus guard administration.
"""
import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import GuardNotFound, GuardNotActive, DuplicateGuardCode
from app.core.security import hash_password
from app.models.guard import Guard, EmploymentStatus
from app.schemas.guard import GuardCreate, GuardUpdate
from app.services.audit_service import Actor, log_audit
from app.services.tenant_service import ensure_guard_quota
from app.services.unit_service import get_unit
from app.utils.datetime_utils import now_utc
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

logger = logging.getLogger(__name__)


def _guard_query(db: Session, organization_id: int, guard_id: int, lock: bool = False):
    query = db.query(Guard).filter(
        Guard.id == guard_id,
        Guard.organization_id == organization_id,
        Guard.deleted_at.is_(None),
    )
    if lock:
        query = query.with_for_update()
    return query


def get_guard(db: Session, organization_id: int, guard_id: int, lock: bool = False) -> Guard:
    """Non-deleted guard of the organization, regardless of employment status."""
    guard = _guard_query(db, organization_id, guard_id, lock=lock).first()
    if guard is None:
        raise GuardNotFound()
    return guard


def get_active_guard(db: Session, organization_id: int, guard_id: int, lock: bool = False) -> Guard:
    """
    Guard eligible to record attendance.

    Raises GuardNotFound when missing, deleted or in another organization, and
    GuardNotActive (carrying the status) when not employed as active.
    lock=True takes a row lock on the guard for the rest of the transaction.
    """
    guard = get_guard(db, organization_id, guard_id, lock=lock)
    if guard.employment_status != EmploymentStatus.ACTIVE:
        status = guard.employment_status
        raise GuardNotActive(status.value if isinstance(status, EmploymentStatus) else str(status))
    return guard


def get_primary_unit(guard: Guard) -> Optional[int]:
    return guard.primary_unit_id


def _ensure_code_available(db: Session, organization_id: int, guard_code: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(Guard.id).filter(
        Guard.organization_id == organization_id,
        Guard.guard_code == guard_code,
    )
    if exclude_id is not None:
        query = query.filter(Guard.id != exclude_id)
    if query.first() is not None:
        raise DuplicateGuardCode(guard_code)


def create_guard(db: Session, organization_id: int, guard_data: GuardCreate, actor: Actor) -> Guard:
    """
    Create a guard. The quota is checked first and nothing is written when the
    quota or any validation fails.
    """
    if guard_data.employment_status == EmploymentStatus.ACTIVE:
        ensure_guard_quota(db, organization_id)

    _ensure_code_available(db, organization_id, guard_data.guard_code)
    if guard_data.primary_unit_id is not None:
        get_unit(db, organization_id, guard_data.primary_unit_id)
    if guard_data.supervised_unit_id is not None:
        get_unit(db, organization_id, guard_data.supervised_unit_id)

    guard = Guard(
        organization_id=organization_id,
        full_name=guard_data.full_name.strip(),
        guard_code=guard_data.guard_code,
        phone_number=guard_data.phone_number,
        email=guard_data.email,
        primary_unit_id=guard_data.primary_unit_id,
        employment_status=guard_data.employment_status,
        is_supervisor=guard_data.is_supervisor,
        supervised_unit_id=guard_data.supervised_unit_id,
        password_hash=hash_password(guard_data.password) if guard_data.password else None,
    )
    db.add(guard)
    db.commit()
    db.refresh(guard)
    logger.info("Guard created: id=%s code=%s org=%s", guard.id, guard.guard_code, organization_id)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="GUARD_CREATE",
        entity_type="guards",
        entity_id=guard.id,
        meta={"guard_code": guard.guard_code, "primary_unit_id": guard.primary_unit_id},
    )
    return guard


def update_guard(db: Session, organization_id: int, guard_id: int, guard_data: GuardUpdate, actor: Actor) -> Guard:
    """Partial update. Reactivating a guard counts against the quota like a new one."""
    guard = get_guard(db, organization_id, guard_id)
    update_data = guard_data.model_dump(exclude_unset=True)

    if update_data.get("full_name") is not None:
        update_data["full_name"] = update_data["full_name"].strip()
    if update_data.get("guard_code") is not None and update_data["guard_code"] != guard.guard_code:
        _ensure_code_available(db, organization_id, update_data["guard_code"], exclude_id=guard.id)
    for unit_field in ("primary_unit_id", "supervised_unit_id"):
        if update_data.get(unit_field) is not None:
            get_unit(db, organization_id, update_data[unit_field])
    if (
        update_data.get("employment_status") == EmploymentStatus.ACTIVE
        and guard.employment_status != EmploymentStatus.ACTIVE
    ):
        ensure_guard_quota(db, organization_id)

    password = update_data.pop("password", None)
    if password:
        guard.password_hash = hash_password(password)

    for field, value in update_data.items():
        if value is None and field in ("full_name", "guard_code", "employment_status", "is_supervisor"):
            continue
        setattr(guard, field, value)

    db.commit()
    db.refresh(guard)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="GUARD_UPDATE",
        entity_type="guards",
        entity_id=guard.id,
        meta=update_data,
    )
    return guard


def soft_delete_guard(db: Session, organization_id: int, guard_id: int, actor: Actor) -> Guard:
    """Soft delete; the guard also becomes inactive so it no longer counts against the quota."""
    guard = get_guard(db, organization_id, guard_id)
    guard.deleted_at = now_utc()
    guard.employment_status = EmploymentStatus.INACTIVE
    db.commit()
    db.refresh(guard)
    logger.info("Guard soft-deleted: id=%s org=%s", guard.id, organization_id)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="GUARD_DELETE",
        entity_type="guards",
        entity_id=guard.id,
    )
    return guard


def list_guards(
    db: Session,
    organization_id: int,
    search: Optional[str] = None,
    unit_id: Optional[int] = None,
    status: Optional[EmploymentStatus] = None,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> Tuple[List[Guard], int, int]:
    """
    List non-deleted guards, newest first.

    search matches full_name, phone_number or guard_code (case-insensitive).
    Returns (items, total, total_pages).
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    query = db.query(Guard).filter(
        Guard.organization_id == organization_id,
        Guard.deleted_at.is_(None),
    )
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Guard.full_name.ilike(pattern),
                Guard.phone_number.ilike(pattern),
                Guard.guard_code.ilike(pattern),
            )
        )
    if unit_id is not None:
        query = query.filter(Guard.primary_unit_id == unit_id)
    if status is not None:
        query = query.filter(Guard.employment_status == status)

    total = query.count()
    items = (
        query.order_by(Guard.created_at.desc(), Guard.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    total_pages = math.ceil(total / limit) if total else 0
    return items, total, total_pages


def enable_face_verification(
    db: Session,
    organization_id: int,
    guard_id: int,
    face_data_url: str,
    face_data_ref: str,
    actor: Actor,
) -> Guard:
    """Store the reference face image and turn on face verification for punches."""
    guard = get_guard(db, organization_id, guard_id)
    guard.face_data_url = face_data_url
    guard.face_data_ref = face_data_ref
    guard.face_verification_enabled = True
    db.commit()
    db.refresh(guard)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="GUARD_FACE_ENROLL",
        entity_type="guards",
        entity_id=guard.id,
    )
    return guard
