"""
Booking transaction, rescheduling and appointment status transitions.

Every write here runs as one unit of work on the injected session:

1. validate the requested interval (no store access)
2. take the per-doctor lock (``DirectoryStore.lock_doctor``)
3. re-run the availability checks against live data
4. write and commit

Because step 2 serializes all writers for one doctor, no other transaction
can commit a conflicting appointment between the checks in step 3 and the
commit in step 4. A lock that cannot be acquired in time surfaces as
``TransientStoreError``.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional, Union

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from models import (
    Appointment, AppointmentStatus, BookingSource, Doctor,
    INITIAL_STATUSES, can_transition, is_terminal,
)
from services.availability_service import AvailabilityResolver
from services.notification_service import NotificationService
from services.scheduling_errors import (
    SchedulingError, InvalidBookingRequest, InvalidInterval, NotFound, TransientStoreError,
    InvalidStatusTransition, conflict_range,
)
from utils.datetime_utils import local_now, to_local_naive

logger = logging.getLogger(__name__)


def _parse_status(value: Union[str, AppointmentStatus]) -> AppointmentStatus:
    try:
        return AppointmentStatus(value)
    except ValueError:
        raise InvalidStatusTransition(f"Unknown appointment status: {value}")


def _parse_source(value: Union[str, BookingSource]) -> BookingSource:
    try:
        return BookingSource(value)
    except ValueError:
        raise InvalidBookingRequest(f"Unknown booking source: {value}")


class BookingService:
    """
    Creates and mutates appointments.

    This is the only writer of appointment start/end/status.
    """

    def __init__(
        self,
        db: Session,
        resolver: Optional[AvailabilityResolver] = None,
        notifier: Optional[NotificationService] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.db = db
        self.resolver = resolver or AvailabilityResolver.for_session(db)
        self.directory = self.resolver.doctors
        self.appointments = self.resolver.appointments
        self.notifier = notifier or NotificationService()
        self.clock = clock or local_now

    def _validate_interval(self, start: datetime, end: Optional[datetime]) -> None:
        if end is not None and not start < end:
            raise InvalidInterval("Start time must be before end time", conflict_range(start, end))
        if start < self.clock():
            raise InvalidInterval("Cannot book a time in the past", conflict_range(start, end or start))

    def _lock_bookable_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.directory.lock_doctor(doctor_id)
        if doctor is None or not doctor.is_active:
            raise NotFound(f"Doctor {doctor_id} not found")
        return doctor

    def _load_context(self, appointment: Appointment) -> None:
        # Load notification context while the transaction is still open
        _ = (appointment.doctor, appointment.patient, appointment.service, appointment.practice)

    def _fail(self, action: str, error: Exception) -> None:
        """Roll back and translate a failed unit of work."""
        self.db.rollback()
        if isinstance(error, SchedulingError):
            logger.info(f"{action} rejected ({error.code}): {error.message}")
            raise error
        if isinstance(error, OperationalError):
            logger.warning(f"{action} failed on a store lock or serialization error: {error}")
            raise TransientStoreError(
                "The schedule is busy, please retry"
            ) from error
        logger.exception(f"{action} failed unexpectedly: {error}")
        raise error

    def book(
        self,
        doctor_id: int,
        patient_id: int,
        service_id: int,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        status: Union[str, AppointmentStatus] = AppointmentStatus.PENDING,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        booking_source: Union[str, BookingSource] = BookingSource.ONLINE,
    ) -> Appointment:
        """
        Book an appointment atomically.

        Preconditions are checked in order and the first failure wins:
        interval validity, not in the past, existence (doctor, patient,
        service), working hours, schedule exceptions, appointment overlap.

        Args:
            doctor_id: Doctor to book
            patient_id: Patient the appointment is for
            service_id: Service offered by the doctor's practice
            start_time: Requested start (aware datetimes are converted to practice-local)
            end_time: Requested end; defaults to start + service duration
            status: Initial status, PENDING or CONFIRMED
            reason: Reason for visit
            notes: Free-form notes
            booking_source: ONLINE, PHONE or IN_PERSON

        Returns:
            The committed appointment

        Raises:
            InvalidInterval, NotFound, OutsideWorkingHours, ExceptionConflict,
            AppointmentConflict, InvalidStatusTransition, TransientStoreError
        """
        try:
            initial_status = _parse_status(status)
            if initial_status not in INITIAL_STATUSES:
                raise InvalidStatusTransition(
                    f"Appointments can only be created as PENDING or CONFIRMED, not {initial_status.value}"
                )
            source = _parse_source(booking_source)

            start = to_local_naive(start_time)
            end: Optional[datetime] = None
            if end_time is not None:
                end = to_local_naive(end_time)
            else:
                # An unknown service leaves end unset; NotFound follows the interval checks
                default_service = self.directory.get_service(service_id)
                if default_service is not None:
                    end = start + timedelta(minutes=default_service.duration_minutes)

            self._validate_interval(start, end)

            doctor = self._lock_bookable_doctor(doctor_id)
            patient = self.directory.get_patient(patient_id)
            if patient is None:
                raise NotFound(f"Patient {patient_id} not found")
            service = self.directory.get_service(service_id, practice_id=doctor.practice_id)
            if service is None:
                raise NotFound(f"Service {service_id} not found for practice {doctor.practice_id}")

            self.resolver.check_interval(doctor_id, start, end)

            appointment = self.appointments.add(Appointment(
                practice=doctor.practice,
                doctor=doctor,
                patient=patient,
                service=service,
                start_time=start,
                end_time=end,
                status=initial_status.value,
                booking_source=source.value,
                reason=reason,
                notes=notes,
            ))
            self._load_context(appointment)
            self.db.commit()
        except Exception as e:
            self._fail(f"Booking for doctor {doctor_id}", e)
            raise

        logger.info(
            f"Booked appointment {appointment.id} for doctor {doctor_id}, patient {patient_id}: "
            f"{start} - {end} ({appointment.status})"
        )
        self.notifier.appointment_booked(appointment)
        return appointment

    def reschedule(
        self,
        appointment_id: int,
        start_time: datetime,
        end_time: Optional[datetime] = None,
        doctor_id: Optional[int] = None,
    ) -> Appointment:
        """
        Move an appointment to a new interval and optionally a new doctor.

        The full booking precondition set is re-run for the new interval with
        the appointment itself excluded from the overlap check. On any failure
        the appointment is left untouched.

        Args:
            end_time: New end; defaults to keeping the current duration
            doctor_id: New doctor in the same practice; defaults to the current one
        """
        try:
            appointment = self._get_locked(appointment_id)
            current = appointment.status_enum
            if is_terminal(current):
                raise InvalidStatusTransition(f"Cannot reschedule a {current.value} appointment")

            start = to_local_naive(start_time)
            end = to_local_naive(end_time) if end_time is not None else start + (
                appointment.end_time - appointment.start_time
            )
            self._validate_interval(start, end)

            target_doctor_id = doctor_id if doctor_id is not None else appointment.doctor_id
            doctor = self._lock_bookable_doctor(target_doctor_id)
            if doctor.practice_id != appointment.practice_id:
                raise NotFound(f"Doctor {target_doctor_id} not found for practice {appointment.practice_id}")

            self.resolver.check_interval(target_doctor_id, start, end, exclude_appointment_id=appointment.id)

            previous = (appointment.start_time, appointment.end_time, appointment.doctor_id)
            appointment.start_time = start
            appointment.end_time = end
            appointment.doctor = doctor
            self._load_context(appointment)
            self.db.commit()
        except Exception as e:
            self._fail(f"Reschedule of appointment {appointment_id}", e)
            raise

        logger.info(
            f"Rescheduled appointment {appointment_id} from {previous[0]} - {previous[1]} "
            f"(doctor {previous[2]}) to {start} - {end} (doctor {target_doctor_id})"
        )
        self.notifier.appointment_rescheduled(appointment, *previous)
        return appointment

    def transition(
        self,
        appointment_id: int,
        new_status: Union[str, AppointmentStatus],
        reason: Optional[str] = None,
    ) -> Appointment:
        """
        Apply a status change validated against ALLOWED_TRANSITIONS.

        Cancelling an already cancelled appointment is a no-op: nothing is
        written and no notification is sent.

        Args:
            reason: Stored as the cancellation reason when cancelling

        Raises:
            NotFound, InvalidStatusTransition, TransientStoreError
        """
        try:
            target = _parse_status(new_status)
            appointment = self._get_locked(appointment_id)
            current = appointment.status_enum

            if current == AppointmentStatus.CANCELLED and target == AppointmentStatus.CANCELLED:
                # Nothing was written; end the transaction to release the lock
                self.db.commit()
                logger.info(f"Appointment {appointment_id} already cancelled, nothing to do")
                return appointment

            if not can_transition(current, target):
                raise InvalidStatusTransition(
                    f"Cannot change appointment {appointment_id} from {current.value} to {target.value}"
                )
            if target == AppointmentStatus.CANCELLED and appointment.start_time < self.clock():
                raise InvalidStatusTransition(f"Cannot cancel past appointment {appointment_id}")

            appointment.status = target.value
            if target == AppointmentStatus.CANCELLED:
                appointment.cancelled_at = self.clock()
                appointment.cancellation_reason = reason
            self._load_context(appointment)
            self.db.commit()
        except Exception as e:
            self._fail(f"Status change of appointment {appointment_id}", e)
            raise

        logger.info(f"Appointment {appointment_id} changed from {current.value} to {target.value}")
        if target == AppointmentStatus.CANCELLED:
            self.notifier.appointment_cancelled(appointment)
        else:
            self.notifier.status_changed(appointment, current.value)
        return appointment

    def confirm(self, appointment_id: int) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CONFIRMED)

    def cancel(self, appointment_id: int, reason: Optional[str] = None) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.CANCELLED, reason=reason)

    def complete(self, appointment_id: int) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.COMPLETED)

    def mark_no_show(self, appointment_id: int) -> Appointment:
        return self.transition(appointment_id, AppointmentStatus.NO_SHOW)

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFound(f"Appointment {appointment_id} not found")
        return appointment

    def _get_locked(self, appointment_id: int) -> Appointment:
        # NOWAIT: a concurrent writer on the same row fails fast as TransientStoreError
        appointment = self.appointments.get(appointment_id, lock=True)
        if appointment is None:
            raise NotFound(f"Appointment {appointment_id} not found")
        return appointment
