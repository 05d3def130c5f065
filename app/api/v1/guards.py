"""
Guard directory endpoints
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from app.core.deps import get_db, get_current_user, require_admin_writer
from app.models.guard import EmploymentStatus
from app.schemas.guard import GuardCreate, GuardUpdate, GuardOut, GuardListResponse, FaceDataRequest, QuotaOut
from app.services import guard_service
from app.services.operation import run_operation
from app.services.tenant_service import Principal, check_guard_quota

router = APIRouter()


@router.get("", response_model=GuardListResponse)
def list_guards(
    search: Optional[str] = Query(None, description="Matches name, phone or guard code"),
    unit_id: Optional[int] = Query(None, description="Primary unit filter"),
    status: Optional[EmploymentStatus] = Query(None, description="Employment status filter"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    items, total, total_pages = guard_service.list_guards(
        db, principal.organization_id, search=search, unit_id=unit_id, status=status, page=page, limit=limit,
    )
    return GuardListResponse(
        items=[GuardOut.model_validate(g) for g in items],
        total=total,
        page=page,
        limit=limit,
        total_pages=total_pages,
    )


@router.get("/quota", response_model=QuotaOut)
def get_quota(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    """Active-guard quota of the caller's organization."""
    check = check_guard_quota(db, principal.organization_id)
    message = None if check.allowed else f"Guard limit reached ({check.current}/{check.limit}). Please upgrade your plan."
    return QuotaOut(allowed=check.allowed, current=check.current, limit=check.limit, message=message)


@router.post("", status_code=201)
def create_guard(
    guard_data: GuardCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, guard_service.create_guard, principal.organization_id, guard_data, principal.actor,
        success_message="Guard created", success_status=201,
    )
    return result.to_response(GuardOut.model_validate)


@router.get("/{guard_id}", response_model=GuardOut)
def get_guard(
    guard_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    return guard_service.get_guard(db, principal.organization_id, guard_id)


@router.patch("/{guard_id}")
def update_guard(
    guard_id: int,
    guard_data: GuardUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, guard_service.update_guard, principal.organization_id, guard_id, guard_data, principal.actor,
        success_message="Guard updated",
    )
    return result.to_response(GuardOut.model_validate)


@router.delete("/{guard_id}")
def delete_guard(
    guard_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, guard_service.soft_delete_guard, principal.organization_id, guard_id, principal.actor,
        success_message="Guard deleted",
    )
    return result.to_response(GuardOut.model_validate)


@router.post("/{guard_id}/face-data")
def enroll_face(
    guard_id: int,
    face_data: FaceDataRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    """Store the reference face image and enable face verification for the guard's punches."""
    result = run_operation(
        db, guard_service.enable_face_verification, principal.organization_id, guard_id,
        face_data.face_data_url, face_data.face_data_ref, principal.actor,
        success_message="Face verification enabled",
    )
    return result.to_response(GuardOut.model_validate)

