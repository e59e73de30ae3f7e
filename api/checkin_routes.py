from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query

from core.deps import get_recorder, get_session_manager, get_shift
from core.errors import ReadingUnavailable
from models.check_in_record import (
    CheckInRecordRead,
    CheckInRequest,
    CheckInType,
    PositionReading,
)
from models.scheduled_shift import ScheduledShift
from services.checkin_recorder import CheckInRecorder
from services.shift_session import ShiftSessionManager, WorkSession
from utils.datetime_helpers import ensure_utc, utc_now
from utils.geofence import GeoPoint

# Defines API Endpoints
router = APIRouter()
history_router = APIRouter()


def _reading_from(data: CheckInRequest) -> PositionReading:
    # The device's location API failed or never answered; not a geofence failure
    if data.reading_error is not None:
        raise ReadingUnavailable(
            f"Location could not be read ({data.reading_error}).", reason=data.reading_error
        )
    if data.reading is None:
        raise ReadingUnavailable("Location (reading) is required to check in or out.")

    return PositionReading(
        point=GeoPoint(latitude=data.reading.latitude, longitude=data.reading.longitude),
        accuracy_meters=data.reading.accuracy,
        captured_at=ensure_utc(data.reading.timestamp) if data.reading.timestamp else utc_now(),
    )


def _record(
    check_in_type: CheckInType,
    data: CheckInRequest,
    shift: ScheduledShift,
    recorder: CheckInRecorder,
) -> dict:
    record = recorder.record(
        subject_id=shift.employee_id,
        shift_id=shift.id,
        site_id=data.site_id,
        reading=_reading_from(data),
        check_in_type=check_in_type,
        device_id=data.device_id,
    )

    # JSON Response back to Call
    response = {"status": "success", "data": CheckInRecordRead.from_record(record)}
    if not record.within_geofence:
        response["warning"] = (
            f"{check_in_type.value.replace('_', '-').capitalize()} recorded but outside the geofence "
            f"({round(record.distance_meters)}m from site center)."
        )
        violation = recorder.violation_for_record(record.id)
        if violation is not None:
            response["violation_id"] = violation.id
    return response


# Check In Endpoint
@router.post("/{shift_id}/check-in")
def check_in(
    data: CheckInRequest,
    shift: Annotated[ScheduledShift, Depends(get_shift)],
    recorder: Annotated[CheckInRecorder, Depends(get_recorder)],
):
    return _record(CheckInType.CHECK_IN, data, shift, recorder)


# Check Out Endpoint
@router.post("/{shift_id}/check-out")
def check_out(
    data: CheckInRequest,
    shift: Annotated[ScheduledShift, Depends(get_shift)],
    recorder: Annotated[CheckInRecorder, Depends(get_recorder)],
):
    return _record(CheckInType.CHECK_OUT, data, shift, recorder)


# Derived Work Session (pairs + anomaly flags)
@router.get("/{shift_id}/session", response_model=WorkSession)
def get_work_session(
    shift_id: int,
    manager: Annotated[ShiftSessionManager, Depends(get_session_manager)],
):
    return manager.build_session(shift_id)


# Full Audit Trail For a Shift, Oldest First
@router.get("/{shift_id}/records", response_model=List[CheckInRecordRead])
def get_shift_records(
    shift_id: int,
    recorder: Annotated[CheckInRecorder, Depends(get_recorder)],
):
    return [CheckInRecordRead.from_record(record) for record in recorder.history(shift_id)]


# Location History For One Employee, Newest First
@history_router.get("/history", response_model=List[CheckInRecordRead])
def get_location_history(
    subject_id: str,
    recorder: Annotated[CheckInRecorder, Depends(get_recorder)],
    limit: Optional[int] = Query(default=50, ge=1, le=100),
):
    return [
        CheckInRecordRead.from_record(record)
        for record in recorder.subject_history(subject_id, limit=limit)
    ]
