from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Set

from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from core.errors import ShiftNotFound
from core.settings import CheckInPolicy
from models.check_in_record import CheckInRecord, CheckInRecordRead, CheckInType
from services.checkin_recorder import load_shift_history, storage_errors
from services.shift_directory import ShiftDirectory
from utils.datetime_helpers import ensure_utc, utc_now
from utils.geofence import distance_meters


class AnomalyFlag(str, Enum):
    MISSING_CHECKOUT = "MissingCheckout"
    IMPOSSIBLE_TRAVEL = "ImpossibleTravel"
    NON_MONOTONIC_TIMESTAMP = "NonMonotonicTimestamp"


class Anomaly(BaseModel):
    model_config = ConfigDict(frozen=True)

    flag: AnomalyFlag
    # Record the anomaly was detected on
    record_id: Optional[int] = None
    detail: str


class SessionSegment(BaseModel):
    model_config = ConfigDict(frozen=True)

    check_in: CheckInRecordRead
    check_out: Optional[CheckInRecordRead] = None


class WorkSession(BaseModel):
    """Derived view of a shift's check-in history; recomputed on every request."""

    model_config = ConfigDict(frozen=True)

    subject_id: Optional[str] = None
    shift_id: int
    # First check-in of the shift / check-out closing the last segment
    check_in: Optional[CheckInRecordRead] = None
    check_out: Optional[CheckInRecordRead] = None
    is_open: bool = False
    segments: List[SessionSegment] = []
    anomalies: Set[AnomalyFlag] = set()
    anomaly_details: List[Anomaly] = []


class ShiftSessionManager:
    def __init__(
        self,
        session: Session,
        policy: Optional[CheckInPolicy] = None,
        directory: Optional[ShiftDirectory] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.policy = policy or CheckInPolicy()
        self.directory = directory or ShiftDirectory(session)
        self.clock = clock

    def build_session(self, shift_id: int, now: Optional[datetime] = None) -> WorkSession:
        now = ensure_utc(now) if now is not None else self.clock()

        records = load_shift_history(self.session, shift_id)
        with storage_errors(self.session):
            shift = self.directory.get(shift_id)

        if not records:
            if shift is None:
                raise ShiftNotFound(f"Shift with ID {shift_id} not found.", shift_id=shift_id)
            # Known shift, nobody has checked in yet
            return WorkSession(subject_id=shift.employee_id, shift_id=shift_id)

        segments = self._pair(records)
        details = self._travel_anomalies(records)

        is_open = bool(segments) and segments[-1].check_out is None
        scheduled_end = ensure_utc(shift.scheduled_end) if shift is not None else None
        if is_open and scheduled_end is not None and now > scheduled_end:
            open_check_in = segments[-1].check_in
            details.append(
                Anomaly(
                    flag=AnomalyFlag.MISSING_CHECKOUT,
                    record_id=open_check_in.id,
                    detail=(
                        f"Checked in at {open_check_in.created_at.isoformat()} with no check-out; "
                        f"shift was scheduled to end at {scheduled_end.isoformat()}."
                    ),
                )
            )

        return WorkSession(
            subject_id=records[0].subject_id,
            shift_id=shift_id,
            check_in=segments[0].check_in if segments else None,
            check_out=segments[-1].check_out if segments else None,
            is_open=is_open,
            segments=segments,
            anomalies={anomaly.flag for anomaly in details},
            anomaly_details=details,
        )

    def _pair(self, records: List[CheckInRecord]) -> List[SessionSegment]:
        segments: List[SessionSegment] = []
        pending: Optional[CheckInRecordRead] = None

        for record in records:
            read = CheckInRecordRead.from_record(record)
            if record.check_in_type == CheckInType.CHECK_IN:
                if pending is not None:
                    segments.append(SessionSegment(check_in=pending))
                pending = read
            elif pending is not None:
                segments.append(SessionSegment(check_in=pending, check_out=read))
                pending = None

        if pending is not None:
            segments.append(SessionSegment(check_in=pending))
        return segments

    def _travel_anomalies(self, records: List[CheckInRecord]) -> List[Anomaly]:
        anomalies: List[Anomaly] = []
        ceiling_mps = self.policy.max_travel_speed_mps

        for prev, nxt in zip(records, records[1:]):
            elapsed = (
                ensure_utc(nxt.captured_at) - ensure_utc(prev.captured_at)
            ).total_seconds()

            if elapsed <= 0:
                anomalies.append(
                    Anomaly(
                        flag=AnomalyFlag.NON_MONOTONIC_TIMESTAMP,
                        record_id=nxt.id,
                        detail=(
                            f"Record {nxt.id} was captured {abs(elapsed):.0f}s "
                            f"{'before' if elapsed < 0 else 'at the same time as'} record {prev.id}."
                        ),
                    )
                )
                continue

            travelled = distance_meters(prev.reading.point, nxt.reading.point)
            speed_mps = travelled / elapsed
            if speed_mps > ceiling_mps:
                anomalies.append(
                    Anomaly(
                        flag=AnomalyFlag.IMPOSSIBLE_TRAVEL,
                        record_id=nxt.id,
                        detail=(
                            f"Moved {travelled:.0f}m in {elapsed:.0f}s "
                            f"({speed_mps * 3.6:.0f} km/h, limit {self.policy.max_travel_speed_kmh:.0f} km/h)."
                        ),
                    )
                )

        return anomalies
