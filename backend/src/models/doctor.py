"""
Doctor model.

Doctors belong to exactly one practice. The doctor row doubles as the per-doctor
lock: the booking transaction and schedule edits select it FOR UPDATE so that
all writes affecting one doctor's calendar are serialized.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class Doctor(Base):
    """A bookable doctor within a practice."""

    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the doctor."""

    practice_id: Mapped[int] = mapped_column(ForeignKey("practices.id", ondelete="CASCADE"))
    """Practice that owns this doctor and their schedule rows."""

    full_name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH))

    email: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    specialty: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """Inactive doctors cannot be booked."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    practice = relationship("Practice", back_populates="doctors")
    schedule_entries = relationship("WeeklyScheduleEntry", back_populates="doctor", cascade="all, delete-orphan")
    schedule_exceptions = relationship("ScheduleException", back_populates="doctor", cascade="all, delete-orphan")
    appointments = relationship("Appointment", back_populates="doctor")

    __table_args__ = (
        Index('idx_doctors_practice', 'practice_id'),
    )

    def __repr__(self) -> str:
        return f"<Doctor(id={self.id}, practice_id={self.practice_id}, name='{self.full_name}')>"
