"""
Test configuration and shared fixtures for the scheduling test suite.

Each test gets its own temporary SQLite file with the full schema created
from the models. The engine is built with the same locking setup as
production (BEGIN IMMEDIATE transactions), so concurrency tests exercise the
real serialization path.
"""

from datetime import date, datetime, time, timedelta
from typing import Callable, Generator, Iterable, Optional
from unittest.mock import Mock

import pytest
from sqlalchemy.orm import Session, sessionmaker

from core.database import Base, build_engine
import models  # noqa: F401
from models import (
    Appointment, AppointmentStatus, Doctor, Patient, Practice, ScheduleException, Service,
    WeeklyScheduleEntry,
)
from services.notification_service import NotificationService


# Fixed "now" for every service under test. 2030-01-01 is a Tuesday.
FIXED_NOW = datetime(2030, 1, 1, 8, 0)

# Reference dates used across tests
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
WEDNESDAY = date(2030, 1, 9)
SATURDAY = date(2030, 1, 12)

# Day-of-week indexes (0=Sunday)
WEEKDAYS = [1, 2, 3, 4, 5]


@pytest.fixture
def db_engine(tmp_path):
    """Engine on a fresh SQLite file with all tables created."""
    engine = build_engine(f"sqlite:///{tmp_path / 'scheduling_test.db'}")
    Base.metadata.create_all(bind=engine)

    yield engine

    engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker:
    """Session factory configured like core.database.SessionLocal."""
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory) -> Generator[Session, None, None]:
    session = session_factory()

    yield session

    session.close()


@pytest.fixture
def clock() -> Callable[[], datetime]:
    return lambda: FIXED_NOW


@pytest.fixture
def notifier() -> Mock:
    """NotificationService double that records calls."""
    return Mock(spec=NotificationService)


def create_practice(db_session: Session, name: str = "Test Practice") -> Practice:
    practice = Practice(name=name, email="front-desk@example.com", is_active=True)
    db_session.add(practice)
    db_session.flush()
    return practice


def create_doctor(
    db_session: Session,
    practice: Practice,
    full_name: str = "Dr. Test",
    is_active: bool = True,
) -> Doctor:
    doctor = Doctor(
        practice_id=practice.id,
        full_name=full_name,
        email=f"{full_name.lower().replace(' ', '.').replace('..', '.')}@example.com",
        is_active=is_active,
    )
    db_session.add(doctor)
    db_session.flush()
    return doctor


def create_patient(db_session: Session, practice: Optional[Practice] = None, full_name: str = "Pat Patient") -> Patient:
    patient = Patient(
        practice_id=practice.id if practice else None,
        full_name=full_name,
        email="patient@example.com",
        phone_number="0912345678",
    )
    db_session.add(patient)
    db_session.flush()
    return patient


def create_service(
    db_session: Session,
    practice: Practice,
    name: str = "Consultation",
    duration_minutes: int = 30,
    is_active: bool = True,
) -> Service:
    service = Service(
        practice_id=practice.id,
        name=name,
        duration_minutes=duration_minutes,
        color="#3366ff",
        is_active=is_active,
    )
    db_session.add(service)
    db_session.flush()
    return service


def create_weekly_hours(
    db_session: Session,
    doctor: Doctor,
    days: Iterable[int] = WEEKDAYS,
    start: time = time(9, 0),
    end: time = time(17, 0),
    is_available: bool = True,
    effective_from: Optional[date] = None,
    effective_to: Optional[date] = None,
) -> list[WeeklyScheduleEntry]:
    """Create one template per day-of-week in ``days``."""
    entries = [
        WeeklyScheduleEntry(
            doctor_id=doctor.id,
            day_of_week=day,
            start_time=start,
            end_time=end,
            is_available=is_available,
            effective_from=effective_from,
            effective_to=effective_to,
        )
        for day in days
    ]
    db_session.add_all(entries)
    db_session.flush()
    return entries


def create_exception(
    db_session: Session,
    doctor: Doctor,
    day: date,
    start: Optional[time] = None,
    end: Optional[time] = None,
    reason: str = "Blocked",
) -> ScheduleException:
    """Create a partial exception, or a full-day one when no times are given."""
    exception = ScheduleException(
        doctor_id=doctor.id,
        date=day,
        is_full_day=start is None,
        start_time=start,
        end_time=end,
        reason=reason,
    )
    db_session.add(exception)
    db_session.flush()
    return exception


def create_appointment(
    db_session: Session,
    doctor: Doctor,
    patient: Patient,
    service: Service,
    start: datetime,
    minutes: int = 30,
    status: AppointmentStatus = AppointmentStatus.CONFIRMED,
) -> Appointment:
    """Insert an appointment directly, bypassing the booking checks."""
    appointment = Appointment(
        practice_id=doctor.practice_id,
        doctor_id=doctor.id,
        patient_id=patient.id,
        service_id=service.id,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        status=status.value,
    )
    db_session.add(appointment)
    db_session.flush()
    return appointment


@pytest.fixture
def practice_setup(db_session):
    """
    One practice with a doctor working Monday to Friday 09:00-17:00, a
    patient and a 30-minute service, committed so other sessions can see it.
    """
    practice = create_practice(db_session)
    doctor = create_doctor(db_session, practice)
    patient = create_patient(db_session, practice)
    service = create_service(db_session, practice)
    create_weekly_hours(db_session, doctor)
    db_session.commit()
    return {
        "practice": practice,
        "doctor": doctor,
        "patient": patient,
        "service": service,
    }
