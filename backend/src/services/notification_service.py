# pyright: reportUnknownMemberType=false, reportMissingTypeStubs=false
"""
Notification collaborator for appointment lifecycle events.

Notifications are fire-and-forget: they are sent after the transaction has
committed and any failure is logged and swallowed, never surfaced to the
caller of the booking operation.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Protocol

import httpx

from core.config import NOTIFICATION_WEBHOOK_URL, NOTIFICATION_TIMEOUT_SECONDS
from models import Appointment, Doctor, Patient, Practice, Service

logger = logging.getLogger(__name__)


class NotificationEvent(str, Enum):
    BOOKED = "appointment.booked"
    CANCELLED = "appointment.cancelled"
    RESCHEDULED = "appointment.rescheduled"
    STATUS_CHANGED = "appointment.status_changed"


class NotificationSender(Protocol):
    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        ...


class LoggingNotificationSender:
    """Default sender used when no webhook is configured."""

    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        appointment = payload.get("appointment", {})
        logger.info(
            f"Notification {event.value} for appointment {appointment.get('id')} "
            f"(doctor {appointment.get('doctor_id')}, patient {appointment.get('patient_id')})"
        )


class WebhookNotificationSender:
    """POSTs each event as JSON to an external delivery service."""

    def __init__(self, url: str, timeout: float = NOTIFICATION_TIMEOUT_SECONDS):
        self.url = url
        self.timeout = timeout

    def send(self, event: NotificationEvent, payload: Dict[str, Any]) -> None:
        response = httpx.post(
            self.url,
            headers={"Content-Type": "application/json"},
            json={"event": event.value, "data": payload},
            timeout=self.timeout
        )
        response.raise_for_status()
        logger.debug(f"Delivered {event.value} to webhook ({response.status_code})")


def default_sender() -> NotificationSender:
    if NOTIFICATION_WEBHOOK_URL:
        return WebhookNotificationSender(NOTIFICATION_WEBHOOK_URL)
    return LoggingNotificationSender()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def build_context(
    appointment: Appointment,
    doctor: Optional[Doctor],
    patient: Optional[Patient],
    practice: Optional[Practice],
    service: Optional[Service] = None,
) -> Dict[str, Any]:
    """Serialize the full appointment + doctor + patient + practice context."""
    return {
        "appointment": {
            "id": appointment.id,
            "doctor_id": appointment.doctor_id,
            "patient_id": appointment.patient_id,
            "service_id": appointment.service_id,
            "start_time": _iso(appointment.start_time),
            "end_time": _iso(appointment.end_time),
            "status": appointment.status,
            "booking_source": appointment.booking_source,
            "reason": appointment.reason,
            "cancellation_reason": appointment.cancellation_reason,
        },
        "doctor": {
            "id": doctor.id,
            "full_name": doctor.full_name,
            "email": doctor.email,
        } if doctor else None,
        "patient": {
            "id": patient.id,
            "full_name": patient.full_name,
            "email": patient.email,
            "phone_number": patient.phone_number,
        } if patient else None,
        "practice": {
            "id": practice.id,
            "name": practice.name,
            "email": practice.email,
        } if practice else None,
        "service": {
            "id": service.id,
            "name": service.name,
            "duration_minutes": service.duration_minutes,
        } if service else None,
    }


class NotificationService:
    """Builds event payloads and hands them to a sender."""

    def __init__(self, sender: Optional[NotificationSender] = None):
        self.sender = sender or default_sender()

    def notify(
        self,
        event: NotificationEvent,
        appointment: Appointment,
        extra: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Send one appointment event.

        Returns:
            True if the sender accepted the event, False otherwise
        """
        try:
            payload = build_context(
                appointment,
                appointment.doctor,
                appointment.patient,
                appointment.practice,
                appointment.service,
            )
            if extra:
                payload.update(extra)
            self.sender.send(event, payload)
            return True
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"Notification webhook rejected {event.value} for appointment {appointment.id}: "
                f"{e.response.status_code}"
            )
            return False
        except Exception as e:
            logger.exception(f"Failed to send {event.value} notification for appointment {appointment.id}: {e}")
            return False

    def appointment_booked(self, appointment: Appointment) -> bool:
        return self.notify(NotificationEvent.BOOKED, appointment)

    def appointment_cancelled(self, appointment: Appointment) -> bool:
        return self.notify(NotificationEvent.CANCELLED, appointment)

    def appointment_rescheduled(
        self,
        appointment: Appointment,
        previous_start: datetime,
        previous_end: datetime,
        previous_doctor_id: int,
    ) -> bool:
        return self.notify(
            NotificationEvent.RESCHEDULED,
            appointment,
            {"previous": {
                "start_time": _iso(previous_start),
                "end_time": _iso(previous_end),
                "doctor_id": previous_doctor_id,
            }},
        )

    def status_changed(self, appointment: Appointment, previous_status: str) -> bool:
        return self.notify(
            NotificationEvent.STATUS_CHANGED,
            appointment,
            {"previous_status": previous_status},
        )
