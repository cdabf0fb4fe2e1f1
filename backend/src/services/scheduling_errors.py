"""
Typed failures raised by the scheduling core.

Every rejection carries a stable ``code`` so callers can tell the reasons
apart, and conflicts carry the offending range so the caller can re-query
availability instead of guessing. Only ``TransientStoreError`` is retryable.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import status


def conflict_range(start: datetime, end: datetime, **extra: Any) -> Dict[str, Any]:
    """Build the ``conflict`` payload for an offending [start, end) range."""
    payload: Dict[str, Any] = {"start": start.isoformat(), "end": end.isoformat()}
    payload.update(extra)
    return payload


class SchedulingError(Exception):
    """Base class for scheduling failures."""

    code = "scheduling_error"
    http_status = status.HTTP_400_BAD_REQUEST
    retryable = False

    def __init__(self, message: str, conflict: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.conflict = conflict

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detail": self.message,
            "type": self.code,
            "conflict": self.conflict,
            "retryable": self.retryable,
        }


class InvalidInterval(SchedulingError):
    """End not after start, start in the past, or an unusable query range."""

    code = "invalid_interval"


class OutsideWorkingHours(SchedulingError):
    code = "outside_working_hours"
    http_status = status.HTTP_409_CONFLICT


class ExceptionConflict(SchedulingError):
    code = "exception_conflict"
    http_status = status.HTTP_409_CONFLICT


class AppointmentConflict(SchedulingError):
    code = "appointment_conflict"
    http_status = status.HTTP_409_CONFLICT


class NotFound(SchedulingError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class TransientStoreError(SchedulingError):
    """Lock timeout or serialization failure. Safe to retry."""

    code = "transient_store_error"
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class InvalidStatusTransition(SchedulingError):
    code = "invalid_status_transition"
    http_status = status.HTTP_409_CONFLICT


class ScheduleEditConflict(SchedulingError):
    """A schedule edit would strand an upcoming appointment."""

    code = "schedule_edit_conflict"
    http_status = status.HTTP_409_CONFLICT


class InvalidScheduleInput(SchedulingError):
    code = "invalid_schedule_input"


class InvalidBookingRequest(SchedulingError):
    """A booking field outside its allowed values."""

    code = "invalid_booking_request"
