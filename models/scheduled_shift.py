from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel


class ShiftStatus(str, Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class ScheduledShift(SQLModel, table=True):
    """
    Shift directory row owned by the scheduling workflow.

    The check-in core only reads it: to find who works the shift and when the
    shift is supposed to end.
    """

    __tablename__ = "scheduled_shifts"

    id: Optional[int] = Field(default=None, primary_key=True)

    # Employee and site assignment
    employee_id: str = Field(index=True)
    employee_name: Optional[str] = Field(default=None)
    site_id: Optional[str] = Field(default=None, index=True)

    # Shift timing (UTC)
    scheduled_start: datetime = Field(index=True)
    scheduled_end: datetime

    status: ShiftStatus = Field(default=ShiftStatus.SCHEDULED)

    # Administrative
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_by: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
