"""
Audit log model
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from app.db.base import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    actor_type = Column(String, nullable=False)  # "USER" (console) or "GUARD" (terminal)
    actor_id = Column(Integer, nullable=True)
    action = Column(String, nullable=False)  # e.g. "WORK_EVENT_CHECK_IN", "GUARD_CREATE"
    entity_type = Column(String, nullable=False)  # e.g. "work_events", "guards", "units"
    entity_id = Column(Integer, nullable=True)
    meta_json = Column(JSON, nullable=True)
    # Note: server_default handled by migration (CURRENT_TIMESTAMP for SQLite, now() for PostgreSQL)
    created_at = Column(DateTime(timezone=True), nullable=False)
