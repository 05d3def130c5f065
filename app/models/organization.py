"""
Organization (tenant) model
"""
from sqlalchemy import Column, Integer, String, DateTime, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class SubscriptionStatus(str, enum.Enum):
    TRIAL = "trial"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, nullable=False, index=True)
    subscription_status = Column(
        SQLEnum(SubscriptionStatus, native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=SubscriptionStatus.TRIAL,
    )
    trial_ends_at = Column(DateTime(timezone=True), nullable=True)
    plan = Column(String, nullable=False, default="starter")
    guard_limit = Column(Integer, nullable=False, default=50)
    timezone = Column(String, nullable=False, default="Asia/Kolkata")  # IANA name; drives shift_date/punch_date
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)
