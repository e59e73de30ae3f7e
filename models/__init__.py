from .check_in_record import (
    AccuracyClass,
    CheckInRecord,
    CheckInRecordRead,
    CheckInRequest,
    CheckInType,
    CheckInVerdict,
    OpenShiftCheckIn,
    PositionReading,
    ReadingPayload,
)
from .geofence_site import GeofenceSite
from .geofence_violation import GeofenceViolation, ViolationSeverity, ViolationType
from .scheduled_shift import ScheduledShift, ShiftStatus
