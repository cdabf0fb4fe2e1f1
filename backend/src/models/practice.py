"""
Practice model representing a medical practice (the tenant).

A practice owns its doctors, their weekly schedules and schedule exceptions,
and the services it offers. Appointments are owned jointly by the practice and
the referenced doctor and patient.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Practice(Base):
    """Medical practice that owns doctors, services and schedules."""

    __tablename__ = "practices"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the practice."""

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))
    """Display name of the practice."""

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)
    """Contact address used for practice-side booking notifications."""

    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    doctors = relationship("Doctor", back_populates="practice")
    services = relationship("Service", back_populates="practice")

    def __repr__(self) -> str:
        return f"<Practice(id={self.id}, name='{self.name}')>"
