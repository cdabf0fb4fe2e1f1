"""
Integration tests for rescheduling and appointment status transitions.
"""

from datetime import datetime, time

import pytest

from models import Appointment, AppointmentStatus
from services.booking_service import BookingService
from services.scheduling_errors import (
    AppointmentConflict, InvalidInterval, InvalidStatusTransition, NotFound, OutsideWorkingHours,
)

from tests.conftest import (
    FIXED_NOW, MONDAY, TUESDAY, create_appointment, create_doctor, create_practice, create_weekly_hours,
)


def at(day, hour, minute=0):
    return datetime.combine(day, time(hour, minute))


@pytest.fixture
def booking(db_session, clock, notifier):
    return BookingService(db_session, notifier=notifier, clock=clock)


@pytest.fixture
def appointment(db_session, practice_setup):
    appt = create_appointment(
        db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
        at(MONDAY, 10),
    )
    db_session.commit()
    return appt


def reload(db_session, appointment_id) -> Appointment:
    db_session.expire_all()
    return db_session.get(Appointment, appointment_id)


class TestReschedule:
    def test_moves_and_keeps_duration(self, db_session, booking, notifier, appointment):
        moved = booking.reschedule(appointment.id, at(TUESDAY, 14))

        assert moved.start_time == at(TUESDAY, 14)
        assert moved.end_time == at(TUESDAY, 14, 30)
        notifier.appointment_rescheduled.assert_called_once_with(
            moved, at(MONDAY, 10), at(MONDAY, 10, 30), appointment.doctor_id
        )

    def test_overlap_with_itself_is_allowed(self, booking, appointment):
        moved = booking.reschedule(appointment.id, at(MONDAY, 10, 15), at(MONDAY, 10, 45))
        assert moved.start_time == at(MONDAY, 10, 15)

    def test_conflict_leaves_original_untouched(self, db_session, booking, notifier, practice_setup, appointment):
        create_appointment(
            db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
            at(MONDAY, 11),
        )
        db_session.commit()

        with pytest.raises(AppointmentConflict):
            booking.reschedule(appointment.id, at(MONDAY, 11, 15))

        original = reload(db_session, appointment.id)
        assert original.start_time == at(MONDAY, 10)
        assert original.end_time == at(MONDAY, 10, 30)
        notifier.appointment_rescheduled.assert_not_called()

    def test_outside_working_hours(self, db_session, booking, appointment):
        with pytest.raises(OutsideWorkingHours):
            booking.reschedule(appointment.id, at(MONDAY, 18))
        assert reload(db_session, appointment.id).start_time == at(MONDAY, 10)

    def test_into_the_past(self, booking, appointment):
        with pytest.raises(InvalidInterval):
            booking.reschedule(appointment.id, FIXED_NOW.replace(hour=7))

    def test_to_another_doctor_in_same_practice(self, db_session, booking, practice_setup, appointment):
        other = create_doctor(db_session, practice_setup["practice"], full_name="Dr. Second")
        create_weekly_hours(db_session, other)
        db_session.commit()

        moved = booking.reschedule(appointment.id, at(MONDAY, 10), doctor_id=other.id)

        assert moved.doctor_id == other.id
        assert moved.start_time == at(MONDAY, 10)

    def test_to_doctor_of_another_practice(self, db_session, booking, appointment):
        elsewhere = create_practice(db_session, name="Elsewhere")
        foreign = create_doctor(db_session, elsewhere, full_name="Dr. Foreign")
        create_weekly_hours(db_session, foreign)
        db_session.commit()

        with pytest.raises(NotFound):
            booking.reschedule(appointment.id, at(MONDAY, 11), doctor_id=foreign.id)

    def test_unknown_appointment(self, booking, practice_setup):
        with pytest.raises(NotFound):
            booking.reschedule(9999, at(MONDAY, 11))

    @pytest.mark.parametrize("status", [
        AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED, AppointmentStatus.NO_SHOW,
    ])
    def test_terminal_appointment_cannot_move(self, db_session, booking, practice_setup, status):
        appt = create_appointment(
            db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
            at(MONDAY, 10), status=status,
        )
        db_session.commit()

        with pytest.raises(InvalidStatusTransition):
            booking.reschedule(appt.id, at(MONDAY, 11))


class TestStatusTransitions:
    def test_confirm_pending(self, db_session, booking, notifier, practice_setup):
        appt = create_appointment(
            db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
            at(MONDAY, 10), status=AppointmentStatus.PENDING,
        )
        db_session.commit()

        confirmed = booking.confirm(appt.id)

        assert confirmed.status == "CONFIRMED"
        notifier.status_changed.assert_called_once_with(confirmed, "PENDING")

    def test_complete_and_no_show_from_confirmed(self, db_session, booking, practice_setup, appointment):
        other = create_appointment(
            db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
            at(MONDAY, 11),
        )
        db_session.commit()

        assert booking.complete(appointment.id).status == "COMPLETED"
        assert booking.mark_no_show(other.id).status == "NO_SHOW"

    def test_cancel_records_reason_and_time(self, db_session, booking, notifier, appointment):
        cancelled = booking.cancel(appointment.id, reason="Feeling better")

        stored = reload(db_session, appointment.id)
        assert stored.status == "CANCELLED"
        assert stored.cancellation_reason == "Feeling better"
        assert stored.cancelled_at == FIXED_NOW
        notifier.appointment_cancelled.assert_called_once_with(cancelled)

    def test_cancel_twice_is_a_no_op(self, db_session, booking, notifier, appointment):
        booking.cancel(appointment.id, reason="First")
        again = booking.cancel(appointment.id, reason="Second")

        assert again.status == "CANCELLED"
        assert reload(db_session, appointment.id).cancellation_reason == "First"
        notifier.appointment_cancelled.assert_called_once()

    def test_cannot_cancel_a_past_appointment(self, db_session, notifier, appointment):
        late = BookingService(db_session, notifier=notifier, clock=lambda: at(MONDAY, 12))

        with pytest.raises(InvalidStatusTransition):
            late.cancel(appointment.id)

        stored = reload(db_session, appointment.id)
        assert stored.status == "CONFIRMED"
        assert stored.cancelled_at is None
        notifier.appointment_cancelled.assert_not_called()

    def test_past_appointment_already_cancelled_is_still_a_no_op(self, db_session, booking, notifier, appointment):
        booking.cancel(appointment.id)
        late = BookingService(db_session, notifier=notifier, clock=lambda: at(MONDAY, 12))

        assert late.cancel(appointment.id).status == "CANCELLED"
        notifier.appointment_cancelled.assert_called_once()

    def test_past_appointment_can_still_be_completed(self, db_session, notifier, appointment):
        late = BookingService(db_session, notifier=notifier, clock=lambda: at(MONDAY, 12))
        assert late.complete(appointment.id).status == "COMPLETED"

    @pytest.mark.parametrize("start_status,target", [
        (AppointmentStatus.PENDING, AppointmentStatus.COMPLETED),
        (AppointmentStatus.PENDING, AppointmentStatus.NO_SHOW),
        (AppointmentStatus.CONFIRMED, AppointmentStatus.PENDING),
        (AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED),
        (AppointmentStatus.NO_SHOW, AppointmentStatus.CONFIRMED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CONFIRMED),
    ])
    def test_invalid_transition(self, db_session, booking, notifier, practice_setup, start_status, target):
        appt = create_appointment(
            db_session, practice_setup["doctor"], practice_setup["patient"], practice_setup["service"],
            at(MONDAY, 10), status=start_status,
        )
        db_session.commit()

        with pytest.raises(InvalidStatusTransition):
            booking.transition(appt.id, target)

        assert reload(db_session, appt.id).status == start_status.value
        notifier.status_changed.assert_not_called()

    def test_unknown_status_value(self, booking, appointment):
        with pytest.raises(InvalidStatusTransition):
            booking.transition(appointment.id, "ARCHIVED")

    def test_unknown_appointment(self, booking, practice_setup):
        with pytest.raises(NotFound):
            booking.cancel(9999)


class TestReleasedSlots:
    def test_cancel_frees_the_slot(self, booking, practice_setup, appointment):
        booking.cancel(appointment.id)

        rebooked = booking.book(
            doctor_id=practice_setup["doctor"].id,
            patient_id=practice_setup["patient"].id,
            service_id=practice_setup["service"].id,
            start_time=at(MONDAY, 10),
            end_time=at(MONDAY, 10, 30),
        )
        assert rebooked.id != appointment.id

    def test_no_show_frees_the_slot(self, booking, practice_setup, appointment):
        booking.mark_no_show(appointment.id)

        rebooked = booking.book(
            doctor_id=practice_setup["doctor"].id,
            patient_id=practice_setup["patient"].id,
            service_id=practice_setup["service"].id,
            start_time=at(MONDAY, 10, 15),
            end_time=at(MONDAY, 10, 45),
        )
        assert rebooked.start_time == at(MONDAY, 10, 15)

    def test_completed_still_blocks(self, booking, practice_setup, appointment):
        booking.complete(appointment.id)

        with pytest.raises(AppointmentConflict):
            booking.book(
                doctor_id=practice_setup["doctor"].id,
                patient_id=practice_setup["patient"].id,
                service_id=practice_setup["service"].id,
                start_time=at(MONDAY, 10),
                end_time=at(MONDAY, 10, 30),
            )
