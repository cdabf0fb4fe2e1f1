"""
Services package for the scheduling core.

This package contains service classes that encapsulate the availability,
booking and schedule-management logic shared across API endpoints.
"""

from .availability_service import AvailabilityResolver, DayAvailability, DayStatus
from .booking_service import BookingService
from .schedule_service import ScheduleService, ScheduleEntryData
from .notification_service import NotificationService

__all__ = [
    "AvailabilityResolver",
    "DayAvailability",
    "DayStatus",
    "BookingService",
    "ScheduleService",
    "ScheduleEntryData",
    "NotificationService",
]
