"""
Patient model.

Patient profiles and documents are managed elsewhere; the scheduling core only
needs enough to validate a booking and address notifications.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Patient(Base):
    """Individual who books appointments."""

    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    practice_id: Mapped[Optional[int]] = mapped_column(ForeignKey("practices.id"), nullable=True)
    """Practice that registered the patient, if any."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Used by the notification collaborator for confirmations."""

    phone_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    appointments = relationship("Appointment", back_populates="patient")

    def __repr__(self) -> str:
        return f"<Patient(id={self.id}, name='{self.full_name}')>"
