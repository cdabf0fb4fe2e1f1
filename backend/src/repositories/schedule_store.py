"""
Weekly schedule store.

Queries are bounded to a date window so the resolver can load a whole range
in one round-trip and filter per day in memory.
"""

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from models import WeeklyScheduleEntry
from utils.datetime_utils import day_of_week


class ScheduleStore:
    def __init__(self, db: Session):
        self._db = db

    def entries_for_window(self, doctor_id: int, start_date: date, end_date: date) -> List[WeeklyScheduleEntry]:
        """
        All templates for a doctor whose effective window intersects
        [start_date, end_date], ordered by day and start time.
        """
        return self._db.query(WeeklyScheduleEntry).filter(
            WeeklyScheduleEntry.doctor_id == doctor_id,
            or_(WeeklyScheduleEntry.effective_from.is_(None), WeeklyScheduleEntry.effective_from <= end_date),
            or_(WeeklyScheduleEntry.effective_to.is_(None), WeeklyScheduleEntry.effective_to >= start_date),
        ).order_by(
            WeeklyScheduleEntry.day_of_week,
            WeeklyScheduleEntry.start_time
        ).all()

    def entries_for_date(self, doctor_id: int, day: date) -> List[WeeklyScheduleEntry]:
        """Templates matching ``day``'s weekday whose effective window contains it."""
        return [
            entry for entry in self.entries_for_window(doctor_id, day, day)
            if entry.day_of_week == day_of_week(day) and entry.applies_on(day)
        ]

    def list_for_doctor(self, doctor_id: int) -> List[WeeklyScheduleEntry]:
        return self._db.query(WeeklyScheduleEntry).filter(
            WeeklyScheduleEntry.doctor_id == doctor_id
        ).order_by(
            WeeklyScheduleEntry.day_of_week,
            WeeklyScheduleEntry.start_time,
            WeeklyScheduleEntry.id
        ).all()

    def get(self, entry_id: int) -> Optional[WeeklyScheduleEntry]:
        return self._db.query(WeeklyScheduleEntry).filter(WeeklyScheduleEntry.id == entry_id).first()

    def add_all(self, entries: Iterable[WeeklyScheduleEntry]) -> List[WeeklyScheduleEntry]:
        entries = list(entries)
        self._db.add_all(entries)
        self._db.flush()
        return entries

    def delete(self, entry: WeeklyScheduleEntry) -> None:
        self._db.delete(entry)
        self._db.flush()

    def delete_for_doctor(self, doctor_id: int) -> int:
        """Delete every template of a doctor. Returns the number removed."""
        entries = self.list_for_doctor(doctor_id)
        for entry in entries:
            self._db.delete(entry)
        self._db.flush()
        return len(entries)
