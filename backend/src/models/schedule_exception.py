"""
Schedule exception model for date-scoped overrides of the weekly template.

A full-day exception (holiday, leave) removes all availability for its date.
A partial exception (e.g., a lunch block) removes [start_time, end_time) from
that day's template output.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, Time, Date, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import MAX_STRING_LENGTH


class ScheduleException(Base):
    """One-off block on a doctor's calendar for a single date."""

    __tablename__ = "schedule_exceptions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id", ondelete="CASCADE"))

    date: Mapped[date_type] = mapped_column(Date)
    """Date the exception applies to."""

    is_full_day: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """Start of the blocked period. Required unless is_full_day."""

    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    """End of the blocked period (exclusive). Required unless is_full_day."""

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    doctor = relationship("Doctor", back_populates="schedule_exceptions")

    __table_args__ = (
        CheckConstraint(
            "is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name='check_exception_time_range'
        ),
        Index('idx_schedule_exceptions_doctor_date', 'doctor_id', 'date'),
    )

    def __repr__(self) -> str:
        span = "full day" if self.is_full_day else f"{self.start_time}-{self.end_time}"
        return f"<ScheduleException(id={self.id}, doctor_id={self.doctor_id}, date={self.date}, {span})>"
