"""
Attendance punch schemas (photo + geolocation ledger)
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, Field, ConfigDict, field_serializer

from app.models.attendance_punch import PunchType
from app.utils.datetime_utils import iso_8601_utc


class GeoSchema(BaseModel):
    """Already-captured device location."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, description="Accuracy radius in metres")
    address: Optional[str] = None


class PunchRequest(BaseModel):
    """
    Punch IN/OUT with a photo already uploaded to storage.

    guard_id is required for console callers and ignored for terminal callers
    (the terminal always punches for the authenticated guard).
    """
    guard_id: Optional[int] = None
    unit_id: Optional[int] = Field(None, description="Defaults to the guard's primary unit")
    punch_type: PunchType
    photo_url: str = Field(..., min_length=1)
    photo_ref: str = Field(..., min_length=1, description="Opaque storage reference")
    geo: Optional[GeoSchema] = None
    face_match_score: Optional[float] = Field(None, ge=0, le=100, description="External face scorer confidence")


class SupervisorPunchRequest(BaseModel):
    """Punch marked by a supervisor for a guard of the supervised unit"""
    guard_id: int
    punch_type: PunchType
    photo_url: str = Field(..., min_length=1)
    photo_ref: str = Field(..., min_length=1)
    geo: Optional[GeoSchema] = None
    face_match_score: Optional[float] = Field(None, ge=0, le=100)


class PunchOut(BaseModel):
    id: int
    organization_id: int
    guard_id: int
    unit_id: int
    punch_type: PunchType
    punch_time: datetime
    punch_date: date
    photo_url: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_accuracy: Optional[float] = None
    location_address: Optional[str] = None
    face_match_score: Optional[float] = None
    face_verified: bool
    marked_by: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("punch_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)


class PunchListResponse(BaseModel):
    items: List[PunchOut]
    total: int


class BoardEntry(BaseModel):
    """One guard on a supervisor's 'today in my unit' board"""
    guard_id: int
    full_name: str
    guard_code: str
    status: str  # "IN", "OUT" or "ABSENT"
    last_punch_time: Optional[datetime] = None

    @field_serializer("last_punch_time", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt):
        return iso_8601_utc(dt)
