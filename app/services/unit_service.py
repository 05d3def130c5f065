"""
Unit (site) management service
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from app.core.errors import UnitNotFound
from app.models.unit import Unit
from app.schemas.unit import UnitCreate
from app.services.audit_service import Actor, log_audit
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)


def get_unit(db: Session, organization_id: int, unit_id: int) -> Unit:
    """Non-deleted unit of the organization, or UnitNotFound."""
    unit = (
        db.query(Unit)
        .filter(
            Unit.id == unit_id,
            Unit.organization_id == organization_id,
            Unit.deleted_at.is_(None),
        )
        .first()
    )
    if unit is None:
        raise UnitNotFound()
    return unit


def list_units(db: Session, organization_id: int) -> List[Unit]:
    return (
        db.query(Unit)
        .filter(Unit.organization_id == organization_id, Unit.deleted_at.is_(None))
        .order_by(Unit.unit_name)
        .all()
    )


def create_unit(db: Session, organization_id: int, unit_data: UnitCreate, actor: Actor) -> Unit:
    unit = Unit(
        organization_id=organization_id,
        unit_name=unit_data.unit_name,
        address=unit_data.address,
        required_guard_count=unit_data.required_guard_count,
    )
    db.add(unit)
    db.commit()
    db.refresh(unit)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="UNIT_CREATE",
        entity_type="units",
        entity_id=unit.id,
        meta={"unit_name": unit.unit_name, "required_guard_count": unit.required_guard_count},
    )
    return unit


def soft_delete_unit(db: Session, organization_id: int, unit_id: int, actor: Actor) -> Unit:
    unit = get_unit(db, organization_id, unit_id)
    unit.deleted_at = now_utc()
    db.commit()
    db.refresh(unit)
    logger.info("Unit soft-deleted: id=%s org=%s", unit.id, organization_id)

    log_audit(
        db=db,
        organization_id=organization_id,
        actor=actor,
        action="UNIT_DELETE",
        entity_type="units",
        entity_id=unit.id,
    )
    return unit
