"""
Directory store for the practice, doctor, patient and service rows the
scheduling core reads for existence checks and notification context.

Also owns the per-doctor lock: every write that can change a doctor's
calendar (booking, rescheduling, schedule edits) selects the doctor row
FOR UPDATE first, so such writes are serialized per doctor.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from core.database import apply_lock_timeout
from models import Doctor, Patient, Service

logger = logging.getLogger(__name__)


class DirectoryStore:
    """Read access to directory rows plus the per-doctor row lock."""

    def __init__(self, db: Session):
        self._db = db

    def get_doctor(self, doctor_id: int, active_only: bool = False) -> Optional[Doctor]:
        query = self._db.query(Doctor).filter(Doctor.id == doctor_id)
        if active_only:
            query = query.filter(Doctor.is_active == True)  # noqa: E712
        return query.first()

    def get_patient(self, patient_id: int) -> Optional[Patient]:
        return self._db.query(Patient).filter(Patient.id == patient_id).first()

    def get_service(self, service_id: int, practice_id: Optional[int] = None) -> Optional[Service]:
        """
        Get an active service, optionally restricted to one practice.

        Args:
            service_id: Service ID
            practice_id: If given, the service must belong to this practice

        Returns:
            Service or None if missing, inactive or owned by another practice
        """
        query = self._db.query(Service).filter(
            Service.id == service_id,
            Service.is_active == True  # noqa: E712
        )
        if practice_id is not None:
            query = query.filter(Service.practice_id == practice_id)
        return query.first()

    def lock_doctor(self, doctor_id: int) -> Optional[Doctor]:
        """
        Acquire the per-doctor write lock for the current transaction.

        On PostgreSQL this is a row lock bounded by the configured lock
        timeout; on SQLite the transaction already holds the database write
        lock (BEGIN IMMEDIATE) and FOR UPDATE is a no-op.

        Returns:
            The locked doctor, or None if the doctor does not exist

        Raises:
            OperationalError: If the lock cannot be acquired in time
        """
        apply_lock_timeout(self._db)
        doctor = self._db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().first()
        if doctor is not None:
            logger.debug(f"Acquired booking lock for doctor {doctor_id}")
        return doctor
