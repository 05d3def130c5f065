"""
Attendance punch model: append-only photo + geolocation IN/OUT ledger, independent of work events.
"""
from sqlalchemy import Column, Integer, String, Boolean, Float, Date, DateTime, ForeignKey, Index, Enum as SQLEnum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class PunchType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class AttendancePunch(Base):
    __tablename__ = "attendance_punches"
    __table_args__ = (
        Index("ix_attendance_punches_guard_date", "guard_id", "punch_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    guard_id = Column(Integer, ForeignKey("guards.id"), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=False)
    punch_type = Column(SQLEnum(PunchType, native_enum=False), nullable=False)
    punch_time = Column(DateTime(timezone=True), nullable=False)
    punch_date = Column(Date, nullable=False)  # organization-local date
    photo_url = Column(String, nullable=False)
    photo_ref = Column(String, nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    location_accuracy = Column(Float, nullable=True)
    location_address = Column(String, nullable=True)
    face_match_score = Column(Float, nullable=True)
    face_verified = Column(Boolean, default=False, nullable=False)
    marked_by = Column(Integer, ForeignKey("guards.id"), nullable=True)  # supervisor guard id; null = self punch
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    guard = relationship("Guard", foreign_keys=[guard_id], backref="punches")
    unit = relationship("Unit")
    marked_by_guard = relationship("Guard", foreign_keys=[marked_by])
