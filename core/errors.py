from typing import Any, Optional

from fastapi import status


# Base For Every Failure The Check-In Core Surfaces To Its Caller
class CheckInError(Exception):
    code = "check_in_error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        body = {"detail": self.message, "error": self.code}
        body.update(self.context)
        return body


# --- Input Validation (caller-correctable) ---


class InvalidCoordinate(CheckInError):
    code = "invalid_coordinate"


class InvalidReading(CheckInError):
    code = "invalid_reading"


# --- Resolution (terminal for the request) ---


class SiteNotFound(CheckInError):
    code = "site_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class SiteInactive(CheckInError):
    code = "site_inactive"
    status_code = status.HTTP_409_CONFLICT


class ShiftNotFound(CheckInError):
    code = "shift_not_found"
    status_code = status.HTTP_404_NOT_FOUND


class ViolationNotFound(CheckInError):
    code = "violation_not_found"
    status_code = status.HTTP_404_NOT_FOUND


# --- Invariant Violations ---


class DuplicateCheckIn(CheckInError):
    code = "duplicate_check_in"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, existing_record_id: Optional[int] = None):
        super().__init__(message, existing_record_id=existing_record_id)
        self.existing_record_id = existing_record_id


class OrphanCheckOut(CheckInError):
    code = "orphan_check_out"
    status_code = status.HTTP_409_CONFLICT


# --- Transient Infrastructure (caller owns retry/backoff) ---


class StorageUnavailable(CheckInError):
    code = "storage_unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ReadingUnavailable(CheckInError):
    code = "reading_unavailable"
