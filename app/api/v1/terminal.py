"""
Guard field terminal: the signed-in guard checks in and out of their own shifts.
Uses the same state machine as the console; the working unit is the guard's primary unit.
"""
from typing import Optional
from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_guard, require_guard_writer
from app.core.errors import NoPrimaryUnit
from app.schemas.metrics import GuardTerminalStatus
from app.schemas.work_event import TerminalCheckInRequest, WorkEventOut
from app.services import work_event_service
from app.services.metrics_service import guard_terminal_status
from app.services.operation import run_operation
from app.services.tenant_service import Principal

router = APIRouter()


@router.get("/status", response_model=GuardTerminalStatus)
def terminal_status(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_guard),
):
    info = guard_terminal_status(db, principal.organization_id, principal.guard.id)
    guard, unit, shift = info["guard"], info["primary_unit"], info["active_shift"]
    return GuardTerminalStatus(
        guard_id=guard.id,
        full_name=guard.full_name,
        guard_code=guard.guard_code,
        employment_status=guard.employment_status.value,
        primary_unit_id=guard.primary_unit_id,
        primary_unit_name=unit.unit_name if unit is not None else None,
        is_checked_in=shift is not None,
        active_shift=WorkEventOut.from_event(shift) if shift is not None else None,
    )


def _terminal_check_in(db: Session, organization_id: int, guard, working_unit_id: Optional[int], actor):
    if working_unit_id is None:
        working_unit_id = guard.primary_unit_id
        if working_unit_id is None:
            raise NoPrimaryUnit()
    return work_event_service.check_in(db, organization_id, guard.id, working_unit_id, actor)


@router.post("/check-in", status_code=status.HTTP_201_CREATED)
def terminal_check_in(
    body: Optional[TerminalCheckInRequest] = Body(None),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_guard_writer),
):
    payload = body or TerminalCheckInRequest()
    result = run_operation(
        db, _terminal_check_in, principal.organization_id, principal.guard, payload.working_unit_id,
        principal.actor, success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(lambda outcome: WorkEventOut.from_event(outcome.event))


@router.post("/check-out")
def terminal_check_out(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_guard_writer),
):
    result = run_operation(
        db, work_event_service.check_out, principal.organization_id, principal.guard.id, principal.actor,
        success_message="Check-out successful",
    )
    return result.to_response(WorkEventOut.from_event)
