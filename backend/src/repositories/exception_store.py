"""
Schedule exception store.
"""

from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session

from models import ScheduleException


class ExceptionStore:
    def __init__(self, db: Session):
        self._db = db

    def exceptions_for_window(self, doctor_id: int, start_date: date, end_date: date) -> List[ScheduleException]:
        return self._db.query(ScheduleException).filter(
            ScheduleException.doctor_id == doctor_id,
            ScheduleException.date >= start_date,
            ScheduleException.date <= end_date
        ).order_by(
            ScheduleException.date,
            ScheduleException.start_time
        ).all()

    def get(self, exception_id: int) -> Optional[ScheduleException]:
        return self._db.query(ScheduleException).filter(ScheduleException.id == exception_id).first()

    def add(self, exception: ScheduleException) -> ScheduleException:
        self._db.add(exception)
        self._db.flush()
        return exception

    def delete(self, exception: ScheduleException) -> None:
        self._db.delete(exception)
        self._db.flush()
