"""
Appointment API endpoints.

Booking is authoritative: a slot returned by the availability endpoint may
already be taken, in which case booking answers 409 with the conflicting range.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from api.responses import AppointmentResponse
from core.constants import MAX_NOTES_LENGTH, MAX_REASON_LENGTH
from core.database import get_db
from models import AppointmentStatus, BookingSource
from services import BookingService

logger = logging.getLogger(__name__)

router = APIRouter()


class BookAppointmentRequest(BaseModel):
    doctor_id: int
    patient_id: int
    service_id: int
    start_time: datetime
    end_time: Optional[datetime] = None  # Defaults to start_time + service duration
    status: AppointmentStatus = AppointmentStatus.PENDING
    booking_source: BookingSource = BookingSource.ONLINE
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)
    notes: Optional[str] = Field(None, max_length=MAX_NOTES_LENGTH)


class RescheduleRequest(BaseModel):
    start_time: datetime
    end_time: Optional[datetime] = None  # Defaults to keeping the current duration
    doctor_id: Optional[int] = None


class StatusChangeRequest(BaseModel):
    status: AppointmentStatus
    reason: Optional[str] = Field(None, max_length=MAX_REASON_LENGTH)


@router.post("",
             summary="Book an appointment",
             status_code=status.HTTP_201_CREATED)
async def book_appointment(
    request: BookAppointmentRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    appointment = BookingService(db).book(
        doctor_id=request.doctor_id,
        patient_id=request.patient_id,
        service_id=request.service_id,
        start_time=request.start_time,
        end_time=request.end_time,
        status=request.status,
        reason=request.reason,
        notes=request.notes,
        booking_source=request.booking_source,
    )
    return AppointmentResponse.model_validate(appointment)


@router.get("/{appointment_id}",
            summary="Get an appointment")
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    return AppointmentResponse.model_validate(BookingService(db).get_appointment(appointment_id))


@router.post("/{appointment_id}/reschedule",
             summary="Move an appointment")
async def reschedule_appointment(
    appointment_id: int,
    request: RescheduleRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    appointment = BookingService(db).reschedule(
        appointment_id,
        start_time=request.start_time,
        end_time=request.end_time,
        doctor_id=request.doctor_id,
    )
    return AppointmentResponse.model_validate(appointment)


@router.post("/{appointment_id}/status",
             summary="Change an appointment's status")
async def change_status(
    appointment_id: int,
    request: StatusChangeRequest,
    db: Session = Depends(get_db)
) -> AppointmentResponse:
    """
    Apply a status transition.

    Allowed: PENDING -> CONFIRMED | CANCELLED, CONFIRMED -> CANCELLED |
    COMPLETED | NO_SHOW. Cancelling an already cancelled appointment succeeds
    without side effects.
    """
    appointment = BookingService(db).transition(appointment_id, request.status, reason=request.reason)
    return AppointmentResponse.model_validate(appointment)
