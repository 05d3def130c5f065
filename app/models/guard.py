"""
Guard model
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class EmploymentStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class Guard(Base):
    __tablename__ = "guards"
    __table_args__ = (
        UniqueConstraint("organization_id", "guard_code", name="uq_guards_org_guard_code"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    guard_code = Column(String, nullable=False, index=True)
    phone_number = Column(String, nullable=True)
    email = Column(String, nullable=True)
    primary_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True, index=True)
    employment_status = Column(
        SQLEnum(EmploymentStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=EmploymentStatus.ACTIVE,
    )
    is_supervisor = Column(Boolean, default=False, nullable=False)
    supervised_unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)
    face_verification_enabled = Column(Boolean, default=False, nullable=False)
    face_data_url = Column(String, nullable=True)
    face_data_ref = Column(String, nullable=True)
    password_hash = Column(String, nullable=True)  # terminal login; null = terminal access disabled
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    organization = relationship("Organization", backref="guards")
    primary_unit = relationship("Unit", foreign_keys=[primary_unit_id])
    supervised_unit = relationship("Unit", foreign_keys=[supervised_unit_id])
