"""
Work event model: one guard shift from check-in to check-out, with duty classification and approval state.
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, ForeignKey, Index, Enum as SQLEnum, text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class DutyType(str, enum.Enum):
    PRIMARY = "PRIMARY"
    UNSCHEDULED = "UNSCHEDULED"
    # Reserved; no code path produces these yet
    TEMP_DEPLOYMENT = "TEMP_DEPLOYMENT"
    OVERTIME = "OVERTIME"
    DOUBLE_SHIFT = "DOUBLE_SHIFT"


class EventStatus(str, enum.Enum):
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    NO_SHOW = "NO_SHOW"
    CANCELLED = "CANCELLED"


class ApprovalStatus(str, enum.Enum):
    AUTO_APPROVED = "AUTO_APPROVED"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


_OPEN_SHIFT_PREDICATE = text("event_status = 'CHECKED_IN' AND deleted_at IS NULL")


class WorkEvent(Base):
    __tablename__ = "work_events"
    __table_args__ = (
        # At most one open shift per guard
        Index(
            "uq_work_events_open_shift_per_guard",
            "guard_id",
            unique=True,
            sqlite_where=_OPEN_SHIFT_PREDICATE,
            postgresql_where=_OPEN_SHIFT_PREDICATE,
        ),
        Index("ix_work_events_org_shift_date", "organization_id", "shift_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    guard_id = Column(Integer, ForeignKey("guards.id"), nullable=False, index=True)
    primary_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)  # copied from guard at check-in
    working_unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=False)
    check_out_time = Column(DateTime(timezone=True), nullable=True)
    shift_date = Column(Date, nullable=False)  # organization-local date of check-in
    duty_type = Column(SQLEnum(DutyType, native_enum=False), nullable=False)
    event_status = Column(SQLEnum(EventStatus, native_enum=False), nullable=False, default=EventStatus.CHECKED_IN)
    approval_status = Column(SQLEnum(ApprovalStatus, native_enum=False), nullable=False)
    anomaly_flag = Column(Boolean, default=False, nullable=False)
    anomaly_reason = Column(String, nullable=True)
    locked_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(Integer, ForeignKey("org_users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Integer, ForeignKey("org_users.id"), nullable=True)  # null when the guard checked in from the terminal
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    guard = relationship("Guard", backref="work_events")
    primary_unit = relationship("Unit", foreign_keys=[primary_unit_id])
    working_unit = relationship("Unit", foreign_keys=[working_unit_id])
    approver = relationship("OrgUser", foreign_keys=[approved_by])

    @property
    def is_locked(self) -> bool:
        return self.locked_at is not None

    @property
    def worked_minutes(self):
        """Derived shift length; None while the shift is open."""
        if self.check_out_time is None or self.check_in_time is None:
            return None
        from app.utils.datetime_utils import ensure_utc
        delta = ensure_utc(self.check_out_time) - ensure_utc(self.check_in_time)
        return int(delta.total_seconds() // 60)
