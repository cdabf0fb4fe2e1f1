"""
Practice schedule management API endpoints.

Practice staff maintain each doctor's weekly templates and exceptions here.
Edits that would strand an upcoming appointment are rejected with 409.
"""

import logging
from datetime import date as date_type, time
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import ScheduleEntryResponse, ScheduleExceptionResponse, ScheduleListResponse, SuccessResponse
from core.constants import MAX_STRING_LENGTH
from core.database import get_db
from services import ScheduleService, ScheduleEntryData

logger = logging.getLogger(__name__)

router = APIRouter()


class ScheduleEntryRequest(BaseModel):
    """One weekly template. day_of_week uses 0=Sunday ... 6=Saturday."""
    day_of_week: int = Field(..., ge=0, le=6)
    start_time: time
    end_time: time
    is_available: bool = True
    effective_from: Optional[date_type] = None
    effective_to: Optional[date_type] = None

    def to_data(self) -> ScheduleEntryData:
        return ScheduleEntryData(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_available=self.is_available,
            effective_from=self.effective_from,
            effective_to=self.effective_to,
        )


class ScheduleRequest(BaseModel):
    entries: List[ScheduleEntryRequest]


class ScheduleExceptionRequest(BaseModel):
    date: date_type
    is_full_day: bool = False
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    reason: Optional[str] = Field(None, max_length=MAX_STRING_LENGTH)


def _schedule_response(doctor_id: int, entries) -> ScheduleListResponse:
    return ScheduleListResponse(
        doctor_id=doctor_id,
        entries=[ScheduleEntryResponse.model_validate(e) for e in entries],
    )


@router.post("/{practice_id}/doctors/{doctor_id}/schedule",
             summary="Add weekly schedule entries",
             status_code=status.HTTP_201_CREATED)
async def add_schedule_entries(
    practice_id: int,
    doctor_id: int,
    request: ScheduleRequest,
    db: Session = Depends(get_db)
) -> ScheduleListResponse:
    entries = ScheduleService(db).add_schedule_entries(
        practice_id, doctor_id, [item.to_data() for item in request.entries]
    )
    return _schedule_response(doctor_id, entries)


@router.put("/{practice_id}/doctors/{doctor_id}/schedule",
            summary="Replace a doctor's weekly schedule")
async def replace_schedule(
    practice_id: int,
    doctor_id: int,
    request: ScheduleRequest,
    db: Session = Depends(get_db)
) -> ScheduleListResponse:
    """
    Replace the entire weekly schedule.

    Rejected if an upcoming appointment would fall outside the new hours.
    """
    entries = ScheduleService(db).replace_doctor_schedule(
        practice_id, doctor_id, [item.to_data() for item in request.entries]
    )
    return _schedule_response(doctor_id, entries)


@router.delete("/{practice_id}/schedule/{entry_id}",
               summary="Delete a weekly schedule entry")
async def delete_schedule_entry(
    practice_id: int,
    entry_id: int,
    db: Session = Depends(get_db)
) -> SuccessResponse:
    ScheduleService(db).delete_schedule_entry(practice_id, entry_id)
    return SuccessResponse(success=True, message=f"Schedule entry {entry_id} deleted")


@router.post("/{practice_id}/doctors/{doctor_id}/exceptions",
             summary="Add a schedule exception",
             status_code=status.HTTP_201_CREATED)
async def add_exception(
    practice_id: int,
    doctor_id: int,
    request: ScheduleExceptionRequest,
    db: Session = Depends(get_db)
) -> ScheduleExceptionResponse:
    exception = ScheduleService(db).add_exception(
        practice_id,
        doctor_id,
        date=request.date,
        is_full_day=request.is_full_day,
        start_time=request.start_time,
        end_time=request.end_time,
        reason=request.reason,
    )
    return ScheduleExceptionResponse.model_validate(exception)


@router.delete("/{practice_id}/exceptions/{exception_id}",
               summary="Remove a schedule exception")
async def remove_exception(
    practice_id: int,
    exception_id: int,
    db: Session = Depends(get_db)
) -> SuccessResponse:
    ScheduleService(db).remove_exception(practice_id, exception_id)
    return SuccessResponse(success=True, message=f"Schedule exception {exception_id} removed")
