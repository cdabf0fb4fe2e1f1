"""
Doctor availability and calendar API endpoints.

Read-only views used by the booking surface:
- Free ranges and bookable slots over a date range
- The doctor's weekly schedule templates
- Month calendar (templates, exceptions and appointments per day)
"""

import logging
from datetime import date as date_type, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from api.responses import (
    AppointmentResponse, ScheduleEntryResponse, ScheduleExceptionResponse, ScheduleListResponse,
    TimeRangeResponse,
)
from core.constants import MAX_SLOT_DURATION_MINUTES, MIN_SLOT_DURATION_MINUTES
from core.database import get_db
from services import AvailabilityResolver, ScheduleService
from utils.datetime_utils import local_now

logger = logging.getLogger(__name__)

router = APIRouter()


class DayAvailabilityResponse(BaseModel):
    date: date_type
    status: str  # not_working_day | day_off | fully_booked | available
    is_working_day: bool
    free_ranges: List[TimeRangeResponse]
    slots: Optional[List[TimeRangeResponse]] = None


class DoctorAvailabilityResponse(BaseModel):
    doctor_id: int
    start_date: date_type
    end_date: date_type
    days: List[DayAvailabilityResponse]


class CalendarDayResponse(BaseModel):
    date: date_type
    day_of_week: int
    is_working_day: bool
    schedules: List[ScheduleEntryResponse]
    exceptions: List[ScheduleExceptionResponse]
    appointments: List[AppointmentResponse]


class DoctorCalendarResponse(BaseModel):
    doctor_id: int
    year: int
    month: int
    days: List[CalendarDayResponse]


@router.get("/doctors/{doctor_id}/availability",
            summary="Get free ranges and bookable slots for a doctor")
async def get_availability(
    doctor_id: int,
    start_date: date_type = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: Optional[date_type] = Query(None, description="Last day, inclusive. Defaults to start_date"),
    slot_duration_minutes: Optional[int] = Query(
        None, ge=MIN_SLOT_DURATION_MINUTES, le=MAX_SLOT_DURATION_MINUTES,
        description="Slice free ranges into slots of this length"
    ),
    step_minutes: Optional[int] = Query(
        None, ge=MIN_SLOT_DURATION_MINUTES, le=MAX_SLOT_DURATION_MINUTES,
        description="Slot start increment. Defaults to the slot duration"
    ),
    include_past: bool = Query(False, description="Include time that has already passed"),
    db: Session = Depends(get_db)
) -> DoctorAvailabilityResponse:
    """
    Get availability for a doctor.

    The result is advisory: a slot shown here may be taken before it is booked,
    and the booking endpoint is authoritative.
    """
    end_date = end_date or start_date
    resolver = AvailabilityResolver.for_session(db)
    days = resolver.resolve(
        doctor_id,
        start_date,
        end_date,
        slot_duration=timedelta(minutes=slot_duration_minutes) if slot_duration_minutes else None,
        step=timedelta(minutes=step_minutes) if step_minutes else None,
        not_before=None if include_past else local_now(),
    )
    return DoctorAvailabilityResponse(
        doctor_id=doctor_id,
        start_date=start_date,
        end_date=end_date,
        days=[
            DayAvailabilityResponse(
                date=day.date,
                status=day.status,
                is_working_day=day.is_working_day,
                free_ranges=[TimeRangeResponse.from_range(r) for r in day.free_ranges],
                slots=[TimeRangeResponse.from_range(s) for s in day.slots] if day.slots is not None else None,
            )
            for day in days
        ],
    )


@router.get("/doctors/{doctor_id}/schedule",
            summary="Get a doctor's weekly schedule")
async def get_schedule(
    doctor_id: int,
    db: Session = Depends(get_db)
) -> ScheduleListResponse:
    entries = ScheduleService(db).list_schedule(doctor_id)
    return ScheduleListResponse(
        doctor_id=doctor_id,
        entries=[ScheduleEntryResponse.model_validate(e) for e in entries],
    )


@router.get("/doctors/{doctor_id}/calendar",
            summary="Get a doctor's month calendar")
async def get_calendar(
    doctor_id: int,
    year: int = Query(..., ge=1970, le=9999),
    month: int = Query(..., ge=1, le=12),
    db: Session = Depends(get_db)
) -> DoctorCalendarResponse:
    calendar = ScheduleService(db).get_doctor_calendar(doctor_id, year, month)
    return DoctorCalendarResponse(
        doctor_id=calendar.doctor_id,
        year=calendar.year,
        month=calendar.month,
        days=[
            CalendarDayResponse(
                date=day.date,
                day_of_week=day.day_of_week,
                is_working_day=day.is_working_day,
                schedules=[ScheduleEntryResponse.model_validate(e) for e in day.schedules],
                exceptions=[ScheduleExceptionResponse.model_validate(e) for e in day.exceptions],
                appointments=[AppointmentResponse.model_validate(a) for a in day.appointments],
            )
            for day in calendar.days
        ],
    )
