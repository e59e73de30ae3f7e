from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, field_serializer
from sqlmodel import Field, Index, SQLModel

from utils.datetime_helpers import ensure_utc, format_utc_datetime
from utils.geofence import GeoPoint


# Enum Limiting Record Type to Just Two Vals
class CheckInType(str, Enum):
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"


# Coarse Bucketing of the Sensor's Self-Reported Error Radius
class AccuracyClass(str, Enum):
    PRECISE = "precise"
    DEGRADED = "degraded"
    UNRELIABLE = "unreliable"


# One Device Fix; accuracy_meters Is the Sensor's 1-sigma Radius, Not a Guarantee
class PositionReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    point: GeoPoint
    accuracy_meters: float
    captured_at: datetime

    @field_serializer("captured_at")
    def serialize_captured_at(self, dt: datetime) -> str:
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()


# Derived Per Check-In; Only Ever Stored Inside a CheckInRecord
class CheckInVerdict(BaseModel):
    model_config = ConfigDict(frozen=True)

    distance_meters: float
    within_geofence: bool
    accuracy_class: AccuracyClass


# Defines the Structure of Data for a Check-In / Check-Out Call
class ReadingPayload(BaseModel):
    latitude: float
    longitude: float
    accuracy: float
    # When the device captured the fix; server time is used if omitted
    timestamp: Optional[datetime] = None


class CheckInRequest(BaseModel):
    site_id: str
    reading: Optional[ReadingPayload] = None
    # Set by the client when the location API failed instead of producing a fix
    reading_error: Optional[Literal["permission_denied", "unavailable", "timeout"]] = None
    device_id: Optional[str] = None


# Append-Only Audit Table; Corrections Are New Rows, Never Edits
class CheckInRecord(SQLModel, table=True):
    __tablename__ = "check_in_records"

    __table_args__ = (
        Index("ix_check_in_records_shift_id", "shift_id"),
        Index("ix_check_in_records_subject_id", "subject_id"),
        Index("ix_check_in_records_site_id", "site_id"),
        # Session derivation reads a shift's history in creation order
        Index("ix_check_in_records_shift_id_created_at", "shift_id", "created_at"),
        Index("ix_check_in_records_within_geofence", "within_geofence"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    shift_id: int
    subject_id: str
    site_id: str
    check_in_type: CheckInType

    # Raw reading
    latitude: float
    longitude: float
    accuracy_meters: float
    captured_at: datetime

    # Verdict
    distance_meters: float
    within_geofence: bool
    accuracy_class: AccuracyClass

    device_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def reading(self) -> PositionReading:
        return PositionReading(
            point=GeoPoint(latitude=self.latitude, longitude=self.longitude),
            accuracy_meters=self.accuracy_meters,
            captured_at=ensure_utc(self.captured_at),
        )

    @property
    def verdict(self) -> CheckInVerdict:
        return CheckInVerdict(
            distance_meters=self.distance_meters,
            within_geofence=self.within_geofence,
            accuracy_class=self.accuracy_class,
        )

    @field_serializer("created_at", "captured_at")
    def serialize_timestamps(self, dt: datetime) -> str:
        """Ensure timestamps are formatted as UTC with Z suffix"""
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()


# Response Shape; Nests the Reading and Verdict Back Together
class CheckInRecordRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    shift_id: int
    subject_id: str
    site_id: str
    check_in_type: CheckInType
    reading: PositionReading
    verdict: CheckInVerdict
    device_id: Optional[str] = None
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str:
        result = format_utc_datetime(dt)
        return result if result is not None else dt.isoformat()

    @classmethod
    def from_record(cls, record: CheckInRecord) -> "CheckInRecordRead":
        read = cls.model_validate(record)
        return read.model_copy(update={"created_at": ensure_utc(read.created_at)})


# At Most One Row Per Shift; The Primary Key Is What Keeps a Shift From
# Holding Two Open Check-Ins, Even Across Processes
class OpenShiftCheckIn(SQLModel, table=True):
    __tablename__ = "open_shift_check_ins"

    shift_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})
    check_in_id: int = Field(foreign_key="check_in_records.id")
    opened_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
