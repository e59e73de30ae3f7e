import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlmodel import Session, select

from core.errors import (
    DuplicateCheckIn,
    OrphanCheckOut,
    ReadingUnavailable,
    StorageUnavailable,
)
from core.settings import CheckInPolicy
from models.check_in_record import (
    CheckInRecord,
    CheckInType,
    CheckInVerdict,
    OpenShiftCheckIn,
    PositionReading,
)
from models.geofence_site import GeofenceSite
from models.geofence_violation import (
    GeofenceViolation,
    ViolationSeverity,
    ViolationType,
)
from services.checkin_validator import CheckInValidator
from services.shift_locks import ShiftLockRegistry
from services.site_registry import SiteRegistry
from utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(session: Session) -> Iterator[None]:
    """Surface lost connections / locked databases as StorageUnavailable."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        session.rollback()
        logger.warning(f"[CHECK_IN] ❌ Storage unavailable: {e}")
        raise StorageUnavailable("Check-in storage is unavailable, try again.") from e


def load_shift_history(session: Session, shift_id: int) -> List[CheckInRecord]:
    """A shift's records in the order they were written."""
    with storage_errors(session):
        return list(
            session.exec(
                select(CheckInRecord)
                .where(CheckInRecord.shift_id == shift_id)
                .order_by(CheckInRecord.created_at, CheckInRecord.id)
            ).all()
        )


class CheckInRecorder:
    """
    Sole writer of check-in audit records.

    A shift holds at most one open check-in. The check-and-write for a shift
    runs under that shift's lock, and the open_shift_check_ins primary key
    backs the same rule at the database for writers in other processes.
    """

    def __init__(
        self,
        session: Session,
        locks: ShiftLockRegistry,
        policy: Optional[CheckInPolicy] = None,
        registry: Optional[SiteRegistry] = None,
        validator: Optional[CheckInValidator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.session = session
        self.locks = locks
        self.policy = policy or CheckInPolicy()
        self.registry = registry or SiteRegistry(session)
        self.validator = validator or CheckInValidator(self.policy)
        self.clock = clock

    def record(
        self,
        subject_id: str,
        shift_id: int,
        site_id: str,
        reading: Optional[PositionReading],
        check_in_type: CheckInType,
        device_id: Optional[str] = None,
    ) -> CheckInRecord:
        if reading is None:
            raise ReadingUnavailable("No position reading was captured for this request.")
        check_in_type = CheckInType(check_in_type)

        with storage_errors(self.session):
            site = self.registry.resolve(site_id)
        verdict = self.validator.validate(reading, site)

        with self.locks.hold(shift_id):
            return self._write(subject_id, shift_id, site, reading, verdict, check_in_type, device_id)

    def _write(
        self,
        subject_id: str,
        shift_id: int,
        site: GeofenceSite,
        reading: PositionReading,
        verdict: CheckInVerdict,
        check_in_type: CheckInType,
        device_id: Optional[str],
    ) -> CheckInRecord:
        with storage_errors(self.session):
            open_marker = self._open_marker(shift_id)

            if check_in_type == CheckInType.CHECK_IN and open_marker is not None:
                raise DuplicateCheckIn(
                    f"Shift {shift_id} already has an open check-in.",
                    existing_record_id=open_marker.check_in_id,
                )
            if check_in_type == CheckInType.CHECK_OUT and open_marker is None:
                raise OrphanCheckOut(
                    f"Shift {shift_id} has no open check-in to check out of.",
                    shift_id=shift_id,
                )

            now = self.clock()
            record = CheckInRecord(
                shift_id=shift_id,
                subject_id=subject_id,
                site_id=site.id,
                check_in_type=check_in_type,
                latitude=reading.point.latitude,
                longitude=reading.point.longitude,
                accuracy_meters=reading.accuracy_meters,
                captured_at=reading.captured_at,
                distance_meters=verdict.distance_meters,
                within_geofence=verdict.within_geofence,
                accuracy_class=verdict.accuracy_class,
                device_id=device_id,
                created_at=now,
            )

            try:
                if check_in_type == CheckInType.CHECK_OUT:
                    # Only the writer that actually removes the marker may close the check-in
                    closed = self.session.connection().execute(
                        delete(OpenShiftCheckIn).where(
                            OpenShiftCheckIn.shift_id == shift_id,
                            OpenShiftCheckIn.check_in_id == open_marker.check_in_id,
                        )
                    )
                    if closed.rowcount != 1:
                        self.session.rollback()
                        raise OrphanCheckOut(
                            f"Shift {shift_id} has no open check-in to check out of.",
                            shift_id=shift_id,
                        )
                    if open_marker in self.session:
                        self.session.expunge(open_marker)

                self.session.add(record)
                # Need the generated id for the open marker / violation
                self.session.flush()

                if check_in_type == CheckInType.CHECK_IN:
                    self.session.add(
                        OpenShiftCheckIn(shift_id=shift_id, check_in_id=record.id, opened_at=now)
                    )

                if not verdict.within_geofence:
                    self.session.add(self._violation_for(record, site, verdict))

                self.session.commit()
            except IntegrityError as e:
                self.session.rollback()
                if check_in_type != CheckInType.CHECK_IN:
                    logger.warning(f"[CHECK_IN] ❌ Check-out write for shift {shift_id} failed: {e}")
                    raise StorageUnavailable("Check-in storage rejected the write, try again.") from e
                # Another writer opened this shift between our read and commit
                existing = self._open_marker(shift_id)
                if existing is None:
                    raise StorageUnavailable("Check-in storage rejected the write, try again.") from e
                raise DuplicateCheckIn(
                    f"Shift {shift_id} already has an open check-in.",
                    existing_record_id=existing.check_in_id,
                ) from e

            self.session.refresh(record)

        logger.info(
            f"[CHECK_IN] ✅ {check_in_type.value} recorded for shift {shift_id} at site {site.id}: "
            f"{verdict.distance_meters:.1f}m from center, within={verdict.within_geofence}, "
            f"accuracy={verdict.accuracy_class.value}"
        )
        return record

    def _violation_for(
        self, record: CheckInRecord, site: GeofenceSite, verdict: CheckInVerdict
    ) -> GeofenceViolation:
        outside_by = max(0.0, verdict.distance_meters - self.validator.radius_for(site))
        severity = (
            ViolationSeverity.VIOLATION
            if outside_by > self.policy.violation_severity_meters
            else ViolationSeverity.WARNING
        )
        violation_type = (
            ViolationType.CHECK_IN_OUTSIDE
            if record.check_in_type == CheckInType.CHECK_IN
            else ViolationType.CHECK_OUT_OUTSIDE
        )

        action = "checked in" if record.check_in_type == CheckInType.CHECK_IN else "checked out"
        logger.warning(
            f"[CHECK_IN] ⚠️ {record.subject_id} {action} at {site.name or site.id} "
            f"but was {round(outside_by)}m outside the geofence ({severity.value})"
        )

        return GeofenceViolation(
            check_in_record_id=record.id,
            subject_id=record.subject_id,
            site_id=site.id,
            violation_type=violation_type,
            distance_outside_meters=outside_by,
            severity=severity,
            created_at=record.created_at,
        )

    def _open_marker(self, shift_id: int) -> Optional[OpenShiftCheckIn]:
        return self.session.exec(
            select(OpenShiftCheckIn)
            .where(OpenShiftCheckIn.shift_id == shift_id)
            .execution_options(populate_existing=True)
        ).first()

    # --- Reads ---

    def open_check_in(self, shift_id: int) -> Optional[CheckInRecord]:
        with storage_errors(self.session):
            marker = self._open_marker(shift_id)
            if marker is None:
                return None
            return self.session.get(CheckInRecord, marker.check_in_id)

    def violation_for_record(self, record_id: int) -> Optional[GeofenceViolation]:
        with storage_errors(self.session):
            return self.session.exec(
                select(GeofenceViolation).where(GeofenceViolation.check_in_record_id == record_id)
            ).first()

    def history(self, shift_id: int) -> List[CheckInRecord]:
        return load_shift_history(self.session, shift_id)

    def subject_history(self, subject_id: str, limit: int = 50) -> List[CheckInRecord]:
        with storage_errors(self.session):
            return list(
                self.session.exec(
                    select(CheckInRecord)
                    .where(CheckInRecord.subject_id == subject_id)
                    .order_by(CheckInRecord.created_at.desc(), CheckInRecord.id.desc())
                    .limit(limit)
                ).all()
            )
