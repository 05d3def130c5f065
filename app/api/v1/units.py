"""
Unit (site) endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_admin_writer
from app.schemas.unit import UnitCreate, UnitOut
from app.services.operation import run_operation
from app.services.tenant_service import Principal
from app.services.unit_service import list_units, create_unit, soft_delete_unit

router = APIRouter()


@router.get("", response_model=List[UnitOut])
def get_units(
    db: Session = Depends(get_db),
    principal: Principal = Depends(get_current_user),
):
    """List the organization's units, ordered by name."""
    return list_units(db, principal.organization_id)


@router.post("", status_code=status.HTTP_201_CREATED)
def post_unit(
    unit_data: UnitCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, create_unit, principal.organization_id, unit_data, principal.actor,
        success_message="Unit created", success_status=status.HTTP_201_CREATED,
    )
    return result.to_response(UnitOut.model_validate)


@router.delete("/{unit_id}")
def delete_unit(
    unit_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_writer),
):
    result = run_operation(
        db, soft_delete_unit, principal.organization_id, unit_id, principal.actor,
        success_message="Unit deleted",
    )
    return result.to_response(UnitOut.model_validate)
