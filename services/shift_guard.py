import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from core.settings import CheckInPolicy
from db.session import get_session
from models.check_in_record import OpenShiftCheckIn
from services.shift_session import AnomalyFlag, ShiftSessionManager, WorkSession
from utils.datetime_helpers import utc_now

logger = logging.getLogger(__name__)


def find_missed_checkouts(
    session: Session,
    now: Optional[datetime] = None,
    policy: Optional[CheckInPolicy] = None,
) -> List[WorkSession]:
    """
    Sessions still open after their shift's scheduled end.

    Read-only: a missed check-out is reported for review, never closed here.
    """
    now = now or utc_now()
    manager = ShiftSessionManager(session, policy=policy)

    open_shift_ids = session.exec(
        select(OpenShiftCheckIn.shift_id).order_by(OpenShiftCheckIn.shift_id)
    ).all()

    missed: List[WorkSession] = []
    for shift_id in open_shift_ids:
        work_session = manager.build_session(shift_id, now=now)
        if AnomalyFlag.MISSING_CHECKOUT not in work_session.anomalies:
            continue

        logger.warning(
            f"[SHIFT_GUARD] ⚠️ Shift {shift_id} ({work_session.subject_id}) is still "
            f"checked in past its scheduled end."
        )
        missed.append(work_session)

    return missed


def _process_once(now: Optional[datetime]) -> List[WorkSession]:
    """Blocking DB work for a single scan iteration (run off the event loop)."""
    session_gen = get_session()
    session = next(session_gen)
    try:
        return find_missed_checkouts(session, now=now, policy=CheckInPolicy.from_env())
    finally:
        session_gen.close()


async def run_missed_checkout_scan_async(
    session: Optional[Session] = None,
    now: Optional[datetime] = None,
    policy: Optional[CheckInPolicy] = None,
) -> List[WorkSession]:
    """Async wrapper to run a single iteration off the event loop."""
    if session is None:
        return await asyncio.to_thread(_process_once, now)
    return await asyncio.to_thread(find_missed_checkouts, session, now, policy)
