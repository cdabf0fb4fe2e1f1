"""scheduling_baseline

Revision ID: 0001_scheduling_baseline
Revises:
Create Date: 2026-10-19 09:00:00.000000

Creates the directory tables (practices, doctors, patients, services), the
doctor schedule tables (doctor_schedules, schedule_exceptions) and
appointments, with the check constraints and overlap-query indexes.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_scheduling_baseline'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'practices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_practices_id', 'practices', ['id'])

    op.create_table(
        'doctors',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('practice_id', sa.Integer(), sa.ForeignKey('practices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('specialty', sa.String(100), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_doctors_id', 'doctors', ['id'])
    op.create_index('idx_doctors_practice', 'doctors', ['practice_id'])

    op.create_table(
        'patients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('practice_id', sa.Integer(), sa.ForeignKey('practices.id'), nullable=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone_number', sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_patients_id', 'patients', ['id'])

    op.create_table(
        'services',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('practice_id', sa.Integer(), sa.ForeignKey('practices.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('duration_minutes > 0', name='check_service_duration_positive'),
    )
    op.create_index('ix_services_id', 'services', ['id'])

    op.create_table(
        'doctor_schedules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        sa.Column('effective_from', sa.Date(), nullable=True),
        sa.Column('effective_to', sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('day_of_week >= 0 AND day_of_week <= 6', name='check_schedule_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='check_schedule_time_range'),
    )
    op.create_index('ix_doctor_schedules_id', 'doctor_schedules', ['id'])
    op.create_index(
        'idx_doctor_schedules_doctor_day_effective',
        'doctor_schedules',
        ['doctor_id', 'day_of_week', 'effective_from']
    )

    op.create_table(
        'schedule_exceptions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('is_full_day', sa.Boolean(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('reason', sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'is_full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)',
            name='check_exception_time_range'
        ),
    )
    op.create_index('ix_schedule_exceptions_id', 'schedule_exceptions', ['id'])
    op.create_index('idx_schedule_exceptions_doctor_date', 'schedule_exceptions', ['doctor_id', 'date'])

    op.create_table(
        'appointments',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('practice_id', sa.Integer(), sa.ForeignKey('practices.id'), nullable=False),
        sa.Column('doctor_id', sa.Integer(), sa.ForeignKey('doctors.id'), nullable=False),
        sa.Column('patient_id', sa.Integer(), sa.ForeignKey('patients.id'), nullable=False),
        sa.Column('service_id', sa.Integer(), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('booking_source', sa.String(20), nullable=False),
        sa.Column('reason', sa.String(500), nullable=True),
        sa.Column('notes', sa.String(1000), nullable=True),
        sa.Column('cancellation_reason', sa.String(500), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('start_time < end_time', name='check_appointment_time_range'),
    )
    op.create_index('ix_appointments_id', 'appointments', ['id'])
    op.create_index('idx_appointments_doctor_time', 'appointments', ['doctor_id', 'start_time', 'end_time'])
    op.create_index('idx_appointments_patient', 'appointments', ['patient_id'])
    op.create_index('idx_appointments_practice_start', 'appointments', ['practice_id', 'start_time'])


def downgrade() -> None:
    op.drop_table('appointments')
    op.drop_table('schedule_exceptions')
    op.drop_table('doctor_schedules')
    op.drop_table('services')
    op.drop_table('patients')
    op.drop_table('doctors')
    op.drop_table('practices')
