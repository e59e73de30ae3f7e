from typing import Annotated

from fastapi import Depends, Request
from sqlmodel import Session

from core.errors import ShiftNotFound
from core.settings import CheckInPolicy
from db.session import get_session
from models.scheduled_shift import ScheduledShift
from services.checkin_recorder import CheckInRecorder
from services.shift_directory import ShiftDirectory
from services.shift_locks import ShiftLockRegistry
from services.shift_session import ShiftSessionManager
from services.site_registry import SiteRegistry
from services.violation_service import ViolationService

SessionDep = Annotated[Session, Depends(get_session)]


# Built once in main.lifespan and kept on app.state for the app's lifetime
def get_shift_locks(request: Request) -> ShiftLockRegistry:
    return request.app.state.shift_locks


def get_policy(request: Request) -> CheckInPolicy:
    return request.app.state.check_in_policy


PolicyDep = Annotated[CheckInPolicy, Depends(get_policy)]


def get_recorder(
    session: SessionDep,
    policy: PolicyDep,
    locks: Annotated[ShiftLockRegistry, Depends(get_shift_locks)],
) -> CheckInRecorder:
    return CheckInRecorder(session, locks, policy=policy)


def get_session_manager(session: SessionDep, policy: PolicyDep) -> ShiftSessionManager:
    return ShiftSessionManager(session, policy=policy)


def get_site_registry(session: SessionDep) -> SiteRegistry:
    return SiteRegistry(session)


def get_violation_service(session: SessionDep) -> ViolationService:
    return ViolationService(session)


# Resolves the Shift From the Path; Subject Identity Comes From the Shift Directory
def get_shift(shift_id: int, session: SessionDep) -> ScheduledShift:
    shift = ShiftDirectory(session).get(shift_id)
    if shift is None:
        raise ShiftNotFound(f"Shift with ID {shift_id} not found.", shift_id=shift_id)
    return shift
