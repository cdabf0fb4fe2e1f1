"""
Shared response models for API endpoints.

This module contains Pydantic response models that are shared across
multiple API endpoints to ensure consistency and reduce duplication.
"""

from datetime import datetime, date as date_type, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from utils.time_ranges import TimeRange


class TimeRangeResponse(BaseModel):
    """Half-open [start, end) interval."""
    start: datetime
    end: datetime

    @classmethod
    def from_range(cls, time_range: TimeRange) -> "TimeRangeResponse":
        return cls(start=time_range.start, end=time_range.end)


class ScheduleEntryResponse(BaseModel):
    """Response model for a weekly schedule template."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    day_of_week: int  # 0=Sunday ... 6=Saturday
    start_time: time
    end_time: time
    is_available: bool
    effective_from: Optional[date_type] = None
    effective_to: Optional[date_type] = None


class ScheduleExceptionResponse(BaseModel):
    """Response model for a schedule exception."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    date: date_type
    is_full_day: bool
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = None


class AppointmentResponse(BaseModel):
    """Response model for an appointment."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    practice_id: int
    doctor_id: int
    patient_id: int
    service_id: int
    start_time: datetime
    end_time: datetime
    status: str
    booking_source: str
    reason: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


class ErrorResponse(BaseModel):
    """Body returned for every scheduling failure."""
    detail: str
    type: str
    conflict: Optional[Dict[str, Any]] = None
    retryable: bool = False


class SuccessResponse(BaseModel):
    success: bool
    message: str


class ScheduleListResponse(BaseModel):
    doctor_id: int
    entries: List[ScheduleEntryResponse]
