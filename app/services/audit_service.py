"""
Audit logging service
"""
import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

ACTOR_USER = "USER"
ACTOR_GUARD = "GUARD"


@dataclass(frozen=True)
class Actor:
    """Who triggered an operation: a console user or a guard at a terminal."""
    actor_type: str
    actor_id: Optional[int]

    @classmethod
    def user(cls, user_id: int) -> "Actor":
        return cls(ACTOR_USER, user_id)

    @classmethod
    def guard(cls, guard_id: int) -> "Actor":
        return cls(ACTOR_GUARD, guard_id)

    @property
    def user_id(self) -> Optional[int]:
        """Console user id, for created_by / approved_by columns."""
        return self.actor_id if self.actor_type == ACTOR_USER else None


def log_audit(
    db: Session,
    organization_id: int,
    actor: Actor,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> Optional[AuditLog]:
    """
    Create an audit log entry (best effort)

    Called after the primary change has been committed. A failure here is
    rolled back and logged; the primary operation is never failed by it.

    Args:
        db: Database session
        organization_id: Tenant the action belongs to
        actor: Console user or guard performing the action
        action: Action type (e.g., "WORK_EVENT_CHECK_IN", "GUARD_CREATE")
        entity_type: Type of entity (e.g., "work_events", "guards")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Created AuditLog instance, or None when it could not be written
    """
    safe_meta = sanitize_for_json(meta) if meta is not None else None

    # Explicitly set created_at to avoid SQLite issues with server_default
    audit_log = AuditLog(
        organization_id=organization_id,
        actor_type=actor.actor_type,
        actor_id=actor.actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
        created_at=now_utc(),
    )
    try:
        db.add(audit_log)
        db.commit()
        db.refresh(audit_log)
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning("Failed to write audit log %s for %s %s: %s", action, entity_type, entity_id, e)
        return None
    return audit_log
