from typing import Optional

from sqlmodel import Session

from models.scheduled_shift import ScheduledShift


class ShiftDirectory:
    """Read-only view over the scheduling workflow's shifts."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, shift_id: int) -> Optional[ScheduledShift]:
        return self.session.get(ScheduledShift, shift_id)
