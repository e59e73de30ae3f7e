from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_serializer
from sqlmodel import Field, SQLModel

from utils.datetime_helpers import format_utc_datetime


class ViolationType(str, Enum):
    CHECK_IN_OUTSIDE = "check_in_outside"
    CHECK_OUT_OUTSIDE = "check_out_outside"


class ViolationSeverity(str, Enum):
    WARNING = "warning"
    VIOLATION = "violation"


# Review Queue Entry For a Check-In / Check-Out Recorded Outside the Geofence
class GeofenceViolation(SQLModel, table=True):
    __tablename__ = "geofence_violations"

    id: Optional[int] = Field(default=None, primary_key=True)

    # The audit record that triggered it
    check_in_record_id: int = Field(foreign_key="check_in_records.id", index=True)

    subject_id: str = Field(index=True)
    site_id: str = Field(index=True)

    violation_type: ViolationType
    # How far past the geofence edge the reading was
    distance_outside_meters: float
    severity: ViolationSeverity = Field(default=ViolationSeverity.WARNING, index=True)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), index=True
    )

    # Manager review
    is_resolved: bool = Field(default=False, index=True)
    resolved_by: Optional[str] = Field(default=None)
    resolution_notes: Optional[str] = Field(default=None)
    resolved_at: Optional[datetime] = Field(default=None)

    @field_serializer("created_at", "resolved_at")
    def serialize_timestamps(self, dt: Optional[datetime]) -> Optional[str]:
        return format_utc_datetime(dt)


class ResolveViolationPayload(BaseModel):
    resolved_by: str
    notes: Optional[str] = None
