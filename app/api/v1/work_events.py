"""
Work event endpoints: console check-in/check-out on behalf of guards, approval queue and shift queries.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from app.core.constants import DEFAULT_HISTORY_LIMIT, MAX_PAGE_SIZE
from app.core.deps import get_db, get_current_user, require_admin_writer
from app.schemas.work_event import CheckInRequest, CheckOutRequest, WorkEventOut, WorkEventListResponse
from app.services import metrics_service, work_event_service
from app.services.operation import run_operation
from app.services.tenant_service import Principal

router = APIRouter()


@router.post("/check-in", status_code=status.HTTP_201_CREATED)
def check_in(
    body: CheckInRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    """
    Open a shift for a guard at the given working unit.

    The shift is auto-approved at the guard's primary unit and queued for
    approval (with an anomaly flag) anywhere else.
    """
    result = run_operation(
        db, work_event_service.check_in, principal.organization_id, body.guard_id, body.working_unit_id,
        principal.actor, success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(lambda outcome: WorkEventOut.from_event(outcome.event))


@router.post("/check-out")
def check_out(
    body: CheckOutRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, work_event_service.check_out, principal.organization_id, body.guard_id, principal.actor,
        success_message="Check-out successful",
    )
    return result.to_response(WorkEventOut.from_event)


@router.post("/{event_id}/approve")
def approve(
    event_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    """Approve a pending event. Approval locks the event permanently."""
    result = run_operation(
        db, work_event_service.approve, principal.organization_id, event_id, principal.actor,
        success_message="Work event approved",
    )
    return result.to_response(WorkEventOut.from_event)


@router.post("/{event_id}/reject")
def reject(
    event_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    """Reject a pending event. Rejected events are not locked."""
    result = run_operation(
        db, work_event_service.reject, principal.organization_id, event_id, principal.actor,
        success_message="Work event rejected",
    )
    return result.to_response(WorkEventOut.from_event)


@router.get("/active", response_model=WorkEventListResponse)
def active_shifts(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    events = metrics_service.list_active_shifts(db, principal.organization_id)
    return WorkEventListResponse(items=[WorkEventOut.from_event(e) for e in events], total=len(events))


@router.get("/pending", response_model=WorkEventListResponse)
def pending_approvals(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    events = metrics_service.list_pending_approvals(db, principal.organization_id)
    return WorkEventListResponse(items=[WorkEventOut.from_event(e) for e in events], total=len(events))


@router.get("/guards/{guard_id}/history", response_model=WorkEventListResponse)
def guard_history(
    guard_id: int,
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    """Most recent shifts of one guard, newest first."""
    events = metrics_service.guard_shift_history(db, principal.organization_id, guard_id, limit=limit)
    return WorkEventListResponse(items=[WorkEventOut.from_event(e) for e in events], total=len(events))
