"""
Schedule management: weekly templates, exceptions and the month calendar.

Edits are owned by the doctor's practice and hold the per-doctor lock, so an
edit can never interleave with a booking for the same doctor. Edits that
would strand an upcoming non-cancelled appointment (no longer covered by
working hours, or overlapped by a new exception) are rejected.
"""

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, time
from typing import Callable, Iterable, List, Optional

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from models import Appointment, Doctor, ScheduleException, WeeklyScheduleEntry
from repositories import DirectoryStore, ScheduleStore, ExceptionStore, AppointmentStore
from services.availability_service import exception_range, template_range
from services.scheduling_errors import (
    SchedulingError, InvalidInterval, InvalidScheduleInput, NotFound, ScheduleEditConflict,
    TransientStoreError, conflict_range,
)
from utils.datetime_utils import day_bounds, day_of_week, iterate_dates, local_now
from utils.time_ranges import TimeRange, covers

logger = logging.getLogger(__name__)


@dataclass
class ScheduleEntryData:
    """Input for one weekly template."""

    day_of_week: int
    start_time: time
    end_time: time
    is_available: bool = True
    effective_from: Optional[date_type] = None
    effective_to: Optional[date_type] = None


@dataclass
class CalendarDay:
    date: date_type
    day_of_week: int
    is_working_day: bool
    schedules: List[WeeklyScheduleEntry] = field(default_factory=list)
    exceptions: List[ScheduleException] = field(default_factory=list)
    appointments: List[Appointment] = field(default_factory=list)


@dataclass
class DoctorCalendar:
    doctor_id: int
    year: int
    month: int
    days: List[CalendarDay] = field(default_factory=list)


def validate_entry(item: ScheduleEntryData) -> None:
    """
    Validate a template before it is stored.

    Raises:
        InvalidScheduleInput: If any field is out of range
    """
    if not 0 <= item.day_of_week <= 6:
        raise InvalidScheduleInput(f"day_of_week must be between 0 (Sunday) and 6 (Saturday), got {item.day_of_week}")
    if not item.start_time < item.end_time:
        raise InvalidScheduleInput(f"Schedule start {item.start_time} must be before end {item.end_time}")
    if item.effective_from and item.effective_to and item.effective_from > item.effective_to:
        raise InvalidScheduleInput(
            f"effective_from {item.effective_from} must not be after effective_to {item.effective_to}"
        )


def _covered_by(entries: Iterable[WeeklyScheduleEntry], appointment: Appointment) -> bool:
    day = appointment.start_time.date()
    weekday = day_of_week(day)
    working = [
        template_range(entry, day) for entry in entries
        if entry.is_available and entry.day_of_week == weekday and entry.applies_on(day)
    ]
    return covers(working, TimeRange(appointment.start_time, appointment.end_time))


def _appointment_conflict(appointment: Appointment, message: str) -> ScheduleEditConflict:
    return ScheduleEditConflict(
        message,
        conflict_range(appointment.start_time, appointment.end_time, appointment_id=appointment.id),
    )


class ScheduleService:
    """Practice-staff edits of a doctor's weekly templates and exceptions."""

    def __init__(self, db: Session, clock: Optional[Callable[[], datetime]] = None):
        self.db = db
        self.directory = DirectoryStore(db)
        self.schedules = ScheduleStore(db)
        self.exceptions = ExceptionStore(db)
        self.appointments = AppointmentStore(db)
        self.clock = clock or local_now

    def _get_owned_doctor(self, practice_id: int, doctor_id: int) -> Doctor:
        doctor = self.directory.get_doctor(doctor_id)
        if doctor is None or doctor.practice_id != practice_id:
            raise NotFound(f"Doctor {doctor_id} not found for practice {practice_id}")
        return doctor

    def _lock(self, doctor_id: int) -> None:
        self.directory.lock_doctor(doctor_id)

    def _fail(self, action: str, error: Exception) -> None:
        self.db.rollback()
        if isinstance(error, SchedulingError):
            logger.info(f"{action} rejected ({error.code}): {error.message}")
            raise error
        if isinstance(error, OperationalError):
            logger.warning(f"{action} failed on a store lock: {error}")
            raise TransientStoreError("The schedule is busy, please retry") from error
        logger.exception(f"{action} failed unexpectedly: {error}")
        raise error

    def _build_entries(self, doctor_id: int, items: Iterable[ScheduleEntryData]) -> List[WeeklyScheduleEntry]:
        entries = []
        for item in items:
            validate_entry(item)
            entries.append(WeeklyScheduleEntry(
                doctor_id=doctor_id,
                day_of_week=item.day_of_week,
                start_time=item.start_time,
                end_time=item.end_time,
                is_available=item.is_available,
                effective_from=item.effective_from,
                effective_to=item.effective_to,
            ))
        return entries

    def list_schedule(self, doctor_id: int) -> List[WeeklyScheduleEntry]:
        if self.directory.get_doctor(doctor_id) is None:
            raise NotFound(f"Doctor {doctor_id} not found")
        return self.schedules.list_for_doctor(doctor_id)

    def add_schedule_entries(
        self,
        practice_id: int,
        doctor_id: int,
        items: Iterable[ScheduleEntryData],
    ) -> List[WeeklyScheduleEntry]:
        """Append templates to a doctor's schedule. Adding hours never strands an appointment."""
        try:
            self._get_owned_doctor(practice_id, doctor_id)
            entries = self._build_entries(doctor_id, items)
            self._lock(doctor_id)
            self.schedules.add_all(entries)
            self.db.commit()
        except Exception as e:
            self._fail(f"Adding schedule for doctor {doctor_id}", e)
            raise

        logger.info(f"Added {len(entries)} schedule entries for doctor {doctor_id}")
        return entries

    def replace_doctor_schedule(
        self,
        practice_id: int,
        doctor_id: int,
        items: Iterable[ScheduleEntryData],
    ) -> List[WeeklyScheduleEntry]:
        """
        Replace every template of a doctor.

        Raises:
            ScheduleEditConflict: An upcoming appointment would fall outside
                the new working hours
        """
        try:
            self._get_owned_doctor(practice_id, doctor_id)
            entries = self._build_entries(doctor_id, items)
            self._lock(doctor_id)

            for appointment in self.appointments.upcoming_blocking(doctor_id, self.clock()):
                if not _covered_by(entries, appointment):
                    raise _appointment_conflict(
                        appointment,
                        f"New schedule would leave appointment {appointment.id} "
                        f"({appointment.start_time} - {appointment.end_time}) outside working hours",
                    )

            removed = self.schedules.delete_for_doctor(doctor_id)
            self.schedules.add_all(entries)
            self.db.commit()
        except Exception as e:
            self._fail(f"Replacing schedule for doctor {doctor_id}", e)
            raise

        logger.info(f"Replaced schedule for doctor {doctor_id}: {removed} removed, {len(entries)} added")
        return entries

    def delete_schedule_entry(self, practice_id: int, entry_id: int) -> None:
        """
        Delete one template.

        Raises:
            NotFound: Entry missing or owned by another practice
            ScheduleEditConflict: An upcoming appointment depends on it
        """
        try:
            entry = self.schedules.get(entry_id)
            if entry is None:
                raise NotFound(f"Schedule entry {entry_id} not found")
            doctor_id = entry.doctor_id
            try:
                self._get_owned_doctor(practice_id, doctor_id)
            except NotFound:
                raise NotFound(f"Schedule entry {entry_id} not found")
            self._lock(doctor_id)

            remaining = [e for e in self.schedules.list_for_doctor(doctor_id) if e.id != entry_id]
            for appointment in self.appointments.upcoming_blocking(doctor_id, self.clock()):
                if not _covered_by(remaining, appointment):
                    raise _appointment_conflict(
                        appointment,
                        f"Cannot delete schedule entry {entry_id}: appointment {appointment.id} "
                        f"({appointment.start_time} - {appointment.end_time}) depends on it",
                    )

            self.schedules.delete(entry)
            self.db.commit()
        except Exception as e:
            self._fail(f"Deleting schedule entry {entry_id}", e)
            raise

        logger.info(f"Deleted schedule entry {entry_id} of doctor {doctor_id}")

    def add_exception(
        self,
        practice_id: int,
        doctor_id: int,
        date: date_type,
        is_full_day: bool,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
        reason: Optional[str] = None,
    ) -> ScheduleException:
        """
        Add a full-day or partial exception.

        Raises:
            InvalidScheduleInput: Partial exception without a valid time range
            ScheduleEditConflict: The exception overlaps an upcoming appointment
        """
        try:
            self._get_owned_doctor(practice_id, doctor_id)
            if is_full_day:
                start_time = end_time = None
            elif start_time is None or end_time is None:
                raise InvalidScheduleInput("A partial exception needs both start_time and end_time")
            elif not start_time < end_time:
                raise InvalidScheduleInput(f"Exception start {start_time} must be before end {end_time}")

            exception = ScheduleException(
                doctor_id=doctor_id,
                date=date,
                is_full_day=is_full_day,
                start_time=start_time,
                end_time=end_time,
                reason=reason,
            )
            blocked = exception_range(exception)

            self._lock(doctor_id)
            for appointment in self.appointments.upcoming_blocking(doctor_id, self.clock()):
                if blocked.overlaps(TimeRange(appointment.start_time, appointment.end_time)):
                    raise _appointment_conflict(
                        appointment,
                        f"Exception on {date} overlaps appointment {appointment.id} "
                        f"({appointment.start_time} - {appointment.end_time})",
                    )

            self.exceptions.add(exception)
            self.db.commit()
        except Exception as e:
            self._fail(f"Adding exception for doctor {doctor_id}", e)
            raise

        logger.info(f"Added {'full-day' if is_full_day else 'partial'} exception {exception.id} for doctor {doctor_id} on {date}")
        return exception

    def remove_exception(self, practice_id: int, exception_id: int) -> None:
        try:
            exception = self.exceptions.get(exception_id)
            if exception is None:
                raise NotFound(f"Schedule exception {exception_id} not found")
            doctor_id = exception.doctor_id
            try:
                self._get_owned_doctor(practice_id, doctor_id)
            except NotFound:
                raise NotFound(f"Schedule exception {exception_id} not found")
            self._lock(doctor_id)
            self.exceptions.delete(exception)
            self.db.commit()
        except Exception as e:
            self._fail(f"Removing exception {exception_id}", e)
            raise

        logger.info(f"Removed exception {exception_id} of doctor {doctor_id}")

    def get_doctor_calendar(self, doctor_id: int, year: int, month: int) -> DoctorCalendar:
        """
        Month view of a doctor's calendar.

        A day is a working day when at least one available template applies
        and no full-day exception is set. Appointments of every status are
        listed and assigned to the day they start on.
        """
        if not 1 <= month <= 12:
            raise InvalidInterval(f"Month must be between 1 and 12, got {month}")
        if self.directory.get_doctor(doctor_id) is None:
            raise NotFound(f"Doctor {doctor_id} not found")

        first_day = date_type(year, month, 1)
        last_day = date_type(year, month, calendar.monthrange(year, month)[1])

        entries = self.schedules.entries_for_window(doctor_id, first_day, last_day)
        exceptions = self.exceptions.exceptions_for_window(doctor_id, first_day, last_day)
        window_start, _ = day_bounds(first_day)
        _, window_end = day_bounds(last_day)
        appointments = self.appointments.list_in_window(doctor_id, window_start, window_end)

        result = DoctorCalendar(doctor_id=doctor_id, year=year, month=month)
        for day in iterate_dates(first_day, last_day):
            weekday = day_of_week(day)
            day_entries = [e for e in entries if e.day_of_week == weekday and e.applies_on(day)]
            day_exceptions = [e for e in exceptions if e.date == day]
            result.days.append(CalendarDay(
                date=day,
                day_of_week=weekday,
                is_working_day=(
                    any(e.is_available for e in day_entries)
                    and not any(e.is_full_day for e in day_exceptions)
                ),
                schedules=day_entries,
                exceptions=day_exceptions,
                appointments=[a for a in appointments if a.start_time.date() == day],
            ))
        return result
