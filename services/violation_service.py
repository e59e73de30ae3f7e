import logging
from typing import List, Optional

from sqlmodel import Session, select

from core.errors import ViolationNotFound
from models.geofence_violation import GeofenceViolation
from services.checkin_recorder import storage_errors
from utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


class ViolationService:
    """Manager review of check-ins recorded outside a geofence."""

    def __init__(self, session: Session):
        self.session = session

    def list_violations(
        self,
        subject_id: Optional[str] = None,
        resolved: Optional[bool] = None,
    ) -> List[GeofenceViolation]:
        statement = select(GeofenceViolation)
        if subject_id is not None:
            statement = statement.where(GeofenceViolation.subject_id == subject_id)
        if resolved is not None:
            statement = statement.where(GeofenceViolation.is_resolved == resolved)

        with storage_errors(self.session):
            return list(
                self.session.exec(
                    statement.order_by(
                        GeofenceViolation.created_at.desc(), GeofenceViolation.id.desc()
                    )
                ).all()
            )

    def resolve_violation(
        self, violation_id: int, resolved_by: str, notes: Optional[str] = None
    ) -> GeofenceViolation:
        with storage_errors(self.session):
            violation = self.session.get(GeofenceViolation, violation_id)
            if violation is None:
                raise ViolationNotFound(
                    f"Violation with ID {violation_id} not found.", violation_id=violation_id
                )

            violation.is_resolved = True
            violation.resolved_by = resolved_by
            violation.resolution_notes = notes
            violation.resolved_at = utc_now()

            self.session.add(violation)
            self.session.commit()
            self.session.refresh(violation)

        logger.info(f"[VIOLATIONS] ✅ Violation {violation_id} resolved by {resolved_by}")
        return violation
