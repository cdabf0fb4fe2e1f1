"""
Availability resolver.

Combines a doctor's weekly templates, date-scoped exceptions and blocking
appointments into free ranges per calendar day, optionally sliced into
fixed-duration slots. The same checks back the booking transaction through
``check_interval``.
"""

import logging
from dataclasses import dataclass, field
from datetime import date as date_type, datetime, timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from core.config import MAX_AVAILABILITY_RANGE_DAYS
from models import WeeklyScheduleEntry, ScheduleException, Appointment
from repositories import DirectoryStore, ScheduleStore, ExceptionStore, AppointmentStore
from services.scheduling_errors import (
    InvalidInterval, InvalidScheduleInput, OutsideWorkingHours, ExceptionConflict, AppointmentConflict,
    NotFound, conflict_range,
)
from utils.datetime_utils import day_bounds, day_of_week, iterate_dates, to_local_naive
from utils.time_ranges import TimeRange, covers, generate_slots, subtract_ranges

logger = logging.getLogger(__name__)

# Rejections that mean "this interval is not bookable right now"
AVAILABILITY_CONFLICTS = (InvalidInterval, OutsideWorkingHours, ExceptionConflict, AppointmentConflict)


class DayStatus:
    NOT_WORKING_DAY = "not_working_day"
    DAY_OFF = "day_off"
    FULLY_BOOKED = "fully_booked"
    AVAILABLE = "available"


@dataclass
class DayAvailability:
    """
    Free time for one calendar day.

    ``free_ranges`` is empty both on non-working days and on working days with
    everything excepted or booked; ``status`` tells the two apart for messaging.
    """

    date: date_type
    is_working_day: bool
    is_day_off: bool = False
    free_ranges: List[TimeRange] = field(default_factory=list)
    slots: Optional[List[TimeRange]] = None

    @property
    def status(self) -> str:
        if self.is_day_off:
            return DayStatus.DAY_OFF
        if not self.is_working_day:
            return DayStatus.NOT_WORKING_DAY
        bookable = self.slots if self.slots is not None else self.free_ranges
        if not bookable:
            return DayStatus.FULLY_BOOKED
        return DayStatus.AVAILABLE


def template_range(entry: WeeklyScheduleEntry, day: date_type) -> TimeRange:
    """Anchor a weekly template's clock times to a concrete date."""
    return TimeRange(
        datetime.combine(day, entry.start_time),
        datetime.combine(day, entry.end_time)
    )


def exception_range(exception: ScheduleException) -> TimeRange:
    """Blocked range of an exception; a full-day exception blocks the whole date."""
    if exception.is_full_day:
        return TimeRange(*day_bounds(exception.date))
    if exception.start_time is None or exception.end_time is None:
        raise InvalidScheduleInput(f"Partial-day exception {exception.id} has no start or end time")
    return TimeRange(
        datetime.combine(exception.date, exception.start_time),
        datetime.combine(exception.date, exception.end_time)
    )


def appointment_range(appointment: Appointment) -> TimeRange:
    return TimeRange(appointment.start_time, appointment.end_time)


def _working_entries(entries: List[WeeklyScheduleEntry], day: date_type) -> List[WeeklyScheduleEntry]:
    weekday = day_of_week(day)
    return [
        entry for entry in entries
        if entry.day_of_week == weekday and entry.is_available and entry.applies_on(day)
    ]


class AvailabilityResolver:
    """
    Resolves free time for a doctor from the injected stores.

    The resolver is read-only; it never writes to any store.
    """

    def __init__(
        self,
        doctors: DirectoryStore,
        schedules: ScheduleStore,
        exceptions: ExceptionStore,
        appointments: AppointmentStore,
    ):
        self.doctors = doctors
        self.schedules = schedules
        self.exceptions = exceptions
        self.appointments = appointments

    @classmethod
    def for_session(cls, db: Session) -> "AvailabilityResolver":
        """Build a resolver whose stores all share one session."""
        return cls(
            DirectoryStore(db),
            ScheduleStore(db),
            ExceptionStore(db),
            AppointmentStore(db),
        )

    def resolve(
        self,
        doctor_id: int,
        start_date: date_type,
        end_date: date_type,
        slot_duration: Optional[timedelta] = None,
        step: Optional[timedelta] = None,
        not_before: Optional[datetime] = None,
    ) -> List[DayAvailability]:
        """
        Compute free ranges for every day in [start_date, end_date].

        Per day: a full-day exception empties the day; otherwise each matching
        available template becomes a starting range, partial exceptions and
        then blocking appointments are subtracted, and the resulting ranges of
        all templates are concatenated. Overlapping templates are not merged,
        so their ranges may repeat.

        Args:
            doctor_id: Doctor to resolve
            start_date: First day (inclusive)
            end_date: Last day (inclusive)
            slot_duration: If given, also slice free ranges into slots
            step: Slot start increment (defaults to slot_duration)
            not_before: Hide time before this practice-local cut-off

        Returns:
            One DayAvailability per calendar day, in date order

        Raises:
            InvalidInterval: Bad date range or slot parameters
            NotFound: Unknown doctor
        """
        if end_date < start_date:
            raise InvalidInterval(f"End date {end_date} is before start date {start_date}")
        span_days = (end_date - start_date).days + 1
        if span_days > MAX_AVAILABILITY_RANGE_DAYS:
            raise InvalidInterval(
                f"Date range of {span_days} days exceeds the maximum of {MAX_AVAILABILITY_RANGE_DAYS}"
            )
        if slot_duration is not None and slot_duration <= timedelta(0):
            raise InvalidInterval("Slot duration must be positive")
        if step is not None and step <= timedelta(0):
            raise InvalidInterval("Slot step must be positive")

        if self.doctors.get_doctor(doctor_id) is None:
            raise NotFound(f"Doctor {doctor_id} not found")

        not_before = to_local_naive(not_before)

        # Batch-load the whole window, then bucket per day in memory
        entries = self.schedules.entries_for_window(doctor_id, start_date, end_date)
        exceptions_by_date: Dict[date_type, List[ScheduleException]] = {}
        for exception in self.exceptions.exceptions_for_window(doctor_id, start_date, end_date):
            exceptions_by_date.setdefault(exception.date, []).append(exception)
        window_start, _ = day_bounds(start_date)
        _, window_end = day_bounds(end_date)
        appointments = self.appointments.blocking_in_window(doctor_id, window_start, window_end)

        days: List[DayAvailability] = []
        for day in iterate_dates(start_date, end_date):
            day_start, day_end = day_bounds(day)
            day_appointments = [
                appointment_range(a) for a in appointments
                if a.start_time < day_end and a.end_time > day_start
            ]
            days.append(self._resolve_day(
                day,
                entries,
                exceptions_by_date.get(day, []),
                day_appointments,
                slot_duration,
                step,
                not_before,
            ))

        logger.debug(
            f"Resolved availability for doctor {doctor_id} from {start_date} to {end_date}: "
            f"{sum(1 for d in days if d.free_ranges)} day(s) with free time"
        )
        return days

    def _resolve_day(
        self,
        day: date_type,
        entries: List[WeeklyScheduleEntry],
        exceptions: List[ScheduleException],
        appointment_ranges: List[TimeRange],
        slot_duration: Optional[timedelta],
        step: Optional[timedelta],
        not_before: Optional[datetime],
    ) -> DayAvailability:
        working = _working_entries(entries, day)

        if any(e.is_full_day for e in exceptions):
            return DayAvailability(
                date=day,
                is_working_day=bool(working),
                is_day_off=True,
                slots=[] if slot_duration else None,
            )

        if not working:
            return DayAvailability(date=day, is_working_day=False, slots=[] if slot_duration else None)

        exception_ranges = [exception_range(e) for e in exceptions]
        free: List[TimeRange] = []
        for entry in working:
            ranges = subtract_ranges([template_range(entry, day)], exception_ranges)
            free.extend(subtract_ranges(ranges, appointment_ranges))

        # Slots keep the grid of their free range; the cut-off only drops whole slots
        slots: Optional[List[TimeRange]] = None
        if slot_duration:
            slots = []
            for free_range in free:
                slots.extend(generate_slots(free_range, slot_duration, step))

        day_start, _ = day_bounds(day)
        if not_before is not None and not_before > day_start:
            elapsed = TimeRange(day_start, not_before)
            free = [r for free_range in free for r in subtract_ranges([free_range], [elapsed])]
            if slots is not None:
                slots = [slot for slot in slots if slot.start >= not_before]

        return DayAvailability(date=day, is_working_day=True, free_ranges=free, slots=slots)

    def check_interval(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> None:
        """
        Verify that [start, end) is bookable for a doctor.

        Checks run in order and the first failure wins: working hours, then
        exceptions, then blocking appointments. A single template must cover
        the whole interval; merely overlapping working hours is not enough.

        Args:
            exclude_appointment_id: Appointment to ignore in the overlap check

        Raises:
            InvalidInterval: start is not before end
            NotFound: Unknown doctor
            OutsideWorkingHours / ExceptionConflict / AppointmentConflict:
                with the offending range in ``conflict``
        """
        start = to_local_naive(start)
        end = to_local_naive(end)
        if not start < end:
            raise InvalidInterval("Start time must be before end time", conflict_range(start, end))
        if self.doctors.get_doctor(doctor_id) is None:
            raise NotFound(f"Doctor {doctor_id} not found")

        requested = TimeRange(start, end)
        day = start.date()

        working_ranges = [
            template_range(entry, day)
            for entry in _working_entries(self.schedules.entries_for_date(doctor_id, day), day)
        ]
        if not covers(working_ranges, requested):
            raise OutsideWorkingHours(
                f"Doctor {doctor_id} is not scheduled to work the whole of {start} - {end}",
                conflict_range(start, end),
            )

        for exception in self.exceptions.exceptions_for_window(doctor_id, start.date(), end.date()):
            blocked = exception_range(exception)
            if blocked.overlaps(requested):
                label = "full-day exception" if exception.is_full_day else "schedule exception"
                raise ExceptionConflict(
                    f"Requested time overlaps a {label} on {exception.date}",
                    conflict_range(blocked.start, blocked.end, exception_id=exception.id, reason=exception.reason),
                )

        overlapping = self.appointments.overlapping(doctor_id, start, end, exclude_appointment_id)
        if overlapping:
            existing = overlapping[0]
            raise AppointmentConflict(
                f"Requested time overlaps appointment {existing.id}",
                conflict_range(existing.start_time, existing.end_time, appointment_id=existing.id),
            )

    def is_time_slot_available(
        self,
        doctor_id: int,
        start: datetime,
        end: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        """Boolean form of check_interval."""
        try:
            self.check_interval(doctor_id, start, end, exclude_appointment_id)
        except AVAILABILITY_CONFLICTS:
            return False
        return True
