"""
Appointment model representing a booked interval on a doctor's calendar.

Appointments are created only by the booking transaction. Afterwards their
start/end/status change only through the reschedule and status-transition
operations of the booking service, which validate against the closed
``AppointmentStatus`` enumeration and ``ALLOWED_TRANSITIONS`` below.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional

from sqlalchemy import String, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_REASON_LENGTH, MAX_NOTES_LENGTH


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class BookingSource(str, Enum):
    ONLINE = "ONLINE"
    PHONE = "PHONE"
    IN_PERSON = "IN_PERSON"


# Statuses that free the appointment's interval for other bookings
NON_BLOCKING_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.CANCELLED,
    AppointmentStatus.NO_SHOW,
})

# Statuses a booking may be created in
INITIAL_STATUSES: FrozenSet[AppointmentStatus] = frozenset({
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
})

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.PENDING: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset({
        AppointmentStatus.CANCELLED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.NO_SHOW,
    }),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    """Check whether ``current`` may move to ``target``."""
    return target in ALLOWED_TRANSITIONS[current]


def is_terminal(status: AppointmentStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]


class Appointment(Base):
    """
    Booked interval for a doctor, patient and service.

    Only appointments whose status is not CANCELLED or NO_SHOW occupy time
    and block new bookings.
    """

    __tablename__ = "appointments"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id"))
    """Practice of the booked doctor at creation time."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id"))

    patient_id: Mapped[int] = mapped_column(ForeignKey("patients.id"))

    service_id: Mapped[int] = mapped_column(ForeignKey("services.id"))

    start_time: Mapped[datetime] = mapped_column(DateTime)
    """Practice-local start (naive)."""

    end_time: Mapped[datetime] = mapped_column(DateTime)
    """Practice-local end (naive, exclusive)."""

    status: Mapped[str] = mapped_column(String(20), default=AppointmentStatus.PENDING.value)
    """One of AppointmentStatus."""

    booking_source: Mapped[str] = mapped_column(String(20), default=BookingSource.ONLINE.value)
    """One of BookingSource."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_REASON_LENGTH), nullable=True)
    """Reason for visit given at booking time."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(MAX_REASON_LENGTH), nullable=True)

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    doctor = relationship("Doctor", back_populates="appointments")
    patient = relationship("Patient", back_populates="appointments")
    service = relationship("Service", back_populates="appointments")
    practice = relationship("Practice")

    __table_args__ = (
        CheckConstraint('start_time < end_time', name='check_appointment_time_range'),
        Index('idx_appointments_doctor_time', 'doctor_id', 'start_time', 'end_time'),
        Index('idx_appointments_patient', 'patient_id'),
        Index('idx_appointments_practice_start', 'practice_id', 'start_time'),
    )

    @property
    def status_enum(self) -> AppointmentStatus:
        return AppointmentStatus(self.status)

    @property
    def is_blocking(self) -> bool:
        """True if this appointment still occupies its interval."""
        return self.status_enum not in NON_BLOCKING_STATUSES

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)

    def __repr__(self) -> str:
        return (
            f"<Appointment(id={self.id}, doctor_id={self.doctor_id}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )
