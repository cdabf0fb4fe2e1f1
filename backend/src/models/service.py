"""
Service model representing a bookable service offered by a practice.

The service duration is used to derive an appointment's end time when the
caller supplies only a start time.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Integer, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Service(Base):
    """Service (visit type) offered by a practice."""

    __tablename__ = "services"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    duration_minutes: Mapped[int] = mapped_column(Integer)
    """Default appointment length for this service."""

    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    """Calendar colour shown in the doctor calendar view."""

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    practice = relationship("Practice", back_populates="services")
    appointments = relationship("Appointment", back_populates="service")

    __table_args__ = (
        CheckConstraint('duration_minutes > 0', name='check_service_duration_positive'),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, name='{self.name}', duration={self.duration_minutes})>"
