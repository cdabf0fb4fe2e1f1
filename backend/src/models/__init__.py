# Package initialization
# Import all models to ensure relationships are properly established
from .practice import Practice
from .doctor import Doctor
from .patient import Patient
from .service import Service
from .weekly_schedule_entry import WeeklyScheduleEntry
from .schedule_exception import ScheduleException
from .appointment import (
    Appointment,
    AppointmentStatus,
    BookingSource,
    ALLOWED_TRANSITIONS,
    NON_BLOCKING_STATUSES,
    INITIAL_STATUSES,
    can_transition,
    is_terminal,
)

__all__ = [
    "Practice",
    "Doctor",
    "Patient",
    "Service",
    "WeeklyScheduleEntry",
    "ScheduleException",
    "Appointment",
    "AppointmentStatus",
    "BookingSource",
    "ALLOWED_TRANSITIONS",
    "NON_BLOCKING_STATUSES",
    "INITIAL_STATUSES",
    "can_transition",
    "is_terminal",
]
