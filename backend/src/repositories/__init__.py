"""
Store interfaces used by the scheduling services.

Each store wraps a SQLAlchemy session and is injected into the services, so
the same session (and therefore the same transaction) is shared by every
store participating in one unit of work.
"""

from .directory_store import DirectoryStore
from .schedule_store import ScheduleStore
from .exception_store import ExceptionStore
from .appointment_store import AppointmentStore

__all__ = [
    "DirectoryStore",
    "ScheduleStore",
    "ExceptionStore",
    "AppointmentStore",
]
