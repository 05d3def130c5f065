"""
Attendance punch endpoints (photo + geolocation ledger)

Console ADMINs punch on behalf of any guard; a terminal guard punches for itself.
Supervisors mark punches for guards of their supervised unit.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.constants import DEFAULT_PUNCH_HISTORY_DAYS
from app.core.deps import get_db, get_principal, get_current_guard, require_active_subscription, require_guard_writer
from app.core.errors import Forbidden
from app.core.security import TOKEN_KIND_GUARD
from app.models.org_user import OrgRole
from app.schemas.punch import PunchRequest, SupervisorPunchRequest, PunchOut, PunchListResponse, BoardEntry, GeoSchema
from app.services import punch_service
from app.services.operation import run_operation
from app.services.tenant_service import Principal

router = APIRouter()


def _geo(geo: Optional[GeoSchema]) -> Optional[punch_service.GeoPoint]:
    if geo is None:
        return None
    return punch_service.GeoPoint(
        latitude=geo.latitude,
        longitude=geo.longitude,
        accuracy=geo.accuracy,
        address=geo.address,
    )


def require_punch_writer(
    principal: Principal = Depends(get_principal),
    _active: Principal = Depends(require_active_subscription),
) -> Principal:
    """Terminal guard, or console ADMIN"""
    if principal.kind != TOKEN_KIND_GUARD and principal.user.role != OrgRole.ADMIN:
        raise Forbidden(f"Access denied. Required roles: {[OrgRole.ADMIN.value]}")
    return principal


@router.post("", status_code=status.HTTP_201_CREATED)
def create_punch(
    body: PunchRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_punch_writer),
):
    if principal.kind == TOKEN_KIND_GUARD:
        guard_id = principal.guard.id
    elif body.guard_id is None:
        raise Forbidden("guard_id is required for console punches")
    else:
        guard_id = body.guard_id

    result = run_operation(
        db, punch_service.punch, principal.organization_id, guard_id, body.unit_id, body.punch_type,
        body.photo_url, body.photo_ref, principal.actor,
        geo=_geo(body.geo), face_score=body.face_match_score,
        success_message=f"Punch {body.punch_type.value} recorded", success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(PunchOut.model_validate)


@router.post("/supervisor", status_code=status.HTTP_201_CREATED)
def create_supervisor_punch(
    body: SupervisorPunchRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_guard_writer),
):
    result = run_operation(
        db, punch_service.supervisor_punch, principal.organization_id, principal.guard.id, body.guard_id,
        body.punch_type, body.photo_url, body.photo_ref,
        geo=_geo(body.geo), face_score=body.face_match_score,
        success_message=f"Punch {body.punch_type.value} marked by supervisor",
        success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(PunchOut.model_validate)


@router.get("/supervisor/board")
def supervisor_board(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_guard),
):
    """Today's punch state (IN / OUT / ABSENT) of every active guard in the supervised unit."""
    entries = punch_service.supervisor_unit_board(db, principal.organization_id, principal.guard.id)
    return [BoardEntry(**entry) for entry in entries]


@router.get("/guards/{guard_id}", response_model=PunchListResponse)
def guard_punches(
    guard_id: int,
    days: int = Query(DEFAULT_PUNCH_HISTORY_DAYS, ge=1, le=366),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_principal),
):
    """Punch history; a terminal guard may only read its own."""
    if principal.kind == TOKEN_KIND_GUARD and principal.guard.id != guard_id:
        raise Forbidden("Guards may only view their own punches")
    punches = punch_service.list_guard_punches(db, principal.organization_id, guard_id, days=days)
    return PunchListResponse(items=[PunchOut.model_validate(p) for p in punches], total=len(punches))
