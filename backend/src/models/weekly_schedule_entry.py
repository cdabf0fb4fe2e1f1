"""
Weekly schedule model for a doctor's recurring working hours.

Each record represents one working period for a specific day of the week,
bounded by an optional effective/expiry date window. Multiple records per day
are allowed (e.g., a morning and an afternoon session). Records with
``is_available=False`` are explicit non-working placeholders and contribute no
free time.

Overlapping entries for the same day are neither merged nor rejected; the
availability resolver reports each entry's free ranges separately, so
overlapping templates can yield redundant (never incorrect) ranges.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import Time, Date, DateTime, Boolean, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.database import Base
from core.constants import DAY_NAMES


class WeeklyScheduleEntry(Base):
    """
    Recurring day-of-week availability rule for a doctor.

    The model supports:
    - Multiple working periods per day
    - Date-bounded templates (effective_from / effective_to, either side open)
    - Explicit non-working templates (is_available=False)
    """

    __tablename__ = "doctor_schedules"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the schedule entry."""

    doctor_id: Mapped[int] = mapped_column(ForeignKey("doctors.id", ondelete="CASCADE"))
    """Reference to the doctor this template belongs to."""

    day_of_week: Mapped[int] = mapped_column()
    """Day of the week (0=Sunday, 1=Monday, ..., 6=Saturday)."""

    start_time: Mapped[time] = mapped_column(Time)
    """Local clock time the working period starts."""

    end_time: Mapped[time] = mapped_column(Time)
    """Local clock time the working period ends (exclusive)."""

    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    """False marks a non-working placeholder template."""

    effective_from: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    """First date the template applies to. Null means no lower bound."""

    effective_to: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    """Last date the template applies to (inclusive). Null means no upper bound."""

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Relationships
    doctor = relationship("Doctor", back_populates="schedule_entries")

    __table_args__ = (
        CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_schedule_day_of_week'),
        CheckConstraint('start_time < end_time', name='check_schedule_time_range'),
        Index('idx_doctor_schedules_doctor_day_effective', 'doctor_id', 'day_of_week', 'effective_from'),
    )

    def applies_on(self, day: date_type) -> bool:
        """True if the effective window (open-ended sides allowed) contains ``day``."""
        if self.effective_from is not None and day < self.effective_from:
            return False
        if self.effective_to is not None and day > self.effective_to:
            return False
        return True

    @property
    def day_name(self) -> str:
        """Get the day name for display."""
        return DAY_NAMES[self.day_of_week]

    @property
    def duration_minutes(self) -> int:
        """Get the duration of this working period in minutes."""
        start_minutes = self.start_time.hour * 60 + self.start_time.minute
        end_minutes = self.end_time.hour * 60 + self.end_time.minute
        return end_minutes - start_minutes

    def __repr__(self) -> str:
        return f"<WeeklyScheduleEntry(doctor_id={self.doctor_id}, day={self.day_name}, {self.start_time}-{self.end_time})>"
