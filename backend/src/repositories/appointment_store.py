"""
Appointment store.

Overlap queries use half-open semantics: an appointment [s, e) conflicts
with [start, end) iff s < end and start < e. Only appointments whose status
is not CANCELLED or NO_SHOW are considered blocking.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, Query

from models import Appointment, NON_BLOCKING_STATUSES


def _non_blocking_values() -> List[str]:
    return [status.value for status in NON_BLOCKING_STATUSES]


class AppointmentStore:
    def __init__(self, db: Session):
        self._db = db

    def _blocking_query(self, doctor_id: int) -> Query[Appointment]:
        return self._db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.status.notin_(_non_blocking_values())
        )

    def blocking_in_window(self, doctor_id: int, window_start: datetime, window_end: datetime) -> List[Appointment]:
        """Blocking appointments intersecting [window_start, window_end), ordered by start."""
        return self._blocking_query(doctor_id).filter(
            Appointment.start_time < window_end,
            Appointment.end_time > window_start
        ).order_by(Appointment.start_time).all()

    def overlapping(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> List[Appointment]:
        """
        Blocking appointments overlapping [start, end).

        Args:
            exclude_appointment_id: Appointment to ignore (the one being rescheduled)
        """
        query = self._blocking_query(doctor_id).filter(
            Appointment.start_time < end,
            Appointment.end_time > start
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        return query.order_by(Appointment.start_time).all()

    def upcoming_blocking(self, doctor_id: int, now: datetime) -> List[Appointment]:
        """Blocking appointments for a doctor that have not ended yet."""
        return self._blocking_query(doctor_id).filter(
            Appointment.end_time > now
        ).order_by(Appointment.start_time).all()

    def list_in_window(self, doctor_id: int, window_start: datetime, window_end: datetime) -> List[Appointment]:
        """All appointments (any status) intersecting the window, for calendar views."""
        return self._db.query(Appointment).filter(
            Appointment.doctor_id == doctor_id,
            Appointment.start_time < window_end,
            Appointment.end_time > window_start
        ).order_by(Appointment.start_time).all()

    def get(self, appointment_id: int, lock: bool = False) -> Optional[Appointment]:
        """
        Get an appointment by ID.

        Args:
            lock: Take a row lock with NOWAIT so concurrent status changes fail
                fast instead of queueing

        Raises:
            OperationalError: If ``lock`` is set and the row is already locked
        """
        query = self._db.query(Appointment).filter(Appointment.id == appointment_id)
        if lock:
            query = query.with_for_update(nowait=True)
        return query.first()

    def add(self, appointment: Appointment) -> Appointment:
        self._db.add(appointment)
        self._db.flush()
        return appointment
