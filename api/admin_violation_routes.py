from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends

from core.deps import PolicyDep, SessionDep, get_violation_service
from models.geofence_violation import GeofenceViolation, ResolveViolationPayload
from services.shift_guard import run_missed_checkout_scan_async
from services.shift_session import WorkSession
from services.violation_service import ViolationService

router = APIRouter()


@router.get("/violations", response_model=List[GeofenceViolation])
def list_violations(
    service: Annotated[ViolationService, Depends(get_violation_service)],
    subject_id: Optional[str] = None,
    resolved: Optional[bool] = None,
):
    """
    Check-ins and check-outs recorded outside their site's geofence, newest first.
    """
    return service.list_violations(subject_id=subject_id, resolved=resolved)


@router.post("/violations/{violation_id}/resolve", response_model=GeofenceViolation)
def resolve_violation(
    violation_id: int,
    payload: ResolveViolationPayload,
    service: Annotated[ViolationService, Depends(get_violation_service)],
):
    return service.resolve_violation(
        violation_id, resolved_by=payload.resolved_by, notes=payload.notes
    )


@router.get("/missed-checkouts", response_model=List[WorkSession])
async def list_missed_checkouts(session: SessionDep, policy: PolicyDep):
    """
    One-shot scan for shifts still checked in past their scheduled end.
    Read-only; nothing is closed automatically.
    """
    return await run_missed_checkout_scan_async(session=session, policy=policy)
