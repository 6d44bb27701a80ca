from datetime import date, datetime, timedelta, timezone

import pytest

from salon_scheduler.schemas.appointment import AppointmentStatus
from salon_scheduler.schemas.schedule import (
    ClosedDay,
    ClosureReason,
    OpenDay,
    ScheduleSource,
)
from salon_scheduler.schemas.scheduling import SlotUnavailabilityReason
from salon_scheduler.services.conflicts import ConflictDetector
from salon_scheduler.services.slots import SlotGenerator
from salon_scheduler.utils.time_arithmetic import parse_local_time

WARSAW = "Europe/Warsaw"
TUESDAY = date(2024, 1, 16)


def open_day(start="09:00", end="18:00"):
    return OpenDay(start_local=start, end_local=end, source=ScheduleSource.SALON_TEMPLATE)


def by_start(slots):
    return {slot.start_local: slot for slot in slots}


@pytest.fixture
def generator():
    return SlotGenerator(WARSAW)


class TestSlotGrid:
    """Test the candidate grid."""

    def test_working_interval(self, generator):
        """Slots step through the working interval and never run past its end."""
        slots = generator.generate(open_day(), TUESDAY, 30)

        assert slots[0].start_local == "09:00"
        assert slots[-1].start_local == "17:30"
        assert slots[-1].end_local == "18:00"
        assert len(slots) == 35
        assert all(slot.available for slot in slots)

    def test_local_and_utc_times(self, generator):
        """Each slot carries both wall-clock and UTC times."""
        first = generator.generate(open_day(), TUESDAY, 45)[0]

        assert (first.start_local, first.end_local) == ("09:00", "09:45")
        assert first.start_utc == datetime(2024, 1, 16, 8, 0, tzinfo=timezone.utc)
        assert first.end_utc == datetime(2024, 1, 16, 8, 45, tzinfo=timezone.utc)

    def test_closed_day_has_no_slots(self, generator):
        """A closed day yields no slots."""
        closed = ClosedDay(
            reason=ClosureReason.STAFF_OFF, source=ScheduleSource.STAFF_EXCEPTION
        )
        assert generator.generate(closed, TUESDAY, 30) == []

    def test_duration_longer_than_interval(self, generator):
        """A service longer than the working interval has no slots."""
        assert generator.generate(open_day("09:00", "10:00"), TUESDAY, 90) == []

    def test_custom_step(self):
        """The step between candidate starts is configurable."""
        slots = SlotGenerator(WARSAW, step_minutes=30).generate(
            open_day("09:00", "11:00"), TUESDAY, 30
        )
        assert [slot.start_local for slot in slots] == ["09:00", "09:30", "10:00", "10:30"]

    @pytest.mark.parametrize("duration", [15, 30, 45, 60, 90, 120, 480, 540])
    def test_slots_stay_inside_working_hours(self, generator, duration):
        """Every slot starts and ends inside the working interval."""
        for slot in generator.generate(open_day(), TUESDAY, duration):
            assert parse_local_time(slot.start_local) >= parse_local_time("09:00")
            assert parse_local_time(slot.end_local) <= parse_local_time("18:00")
            assert slot.end_utc - slot.start_utc == timedelta(minutes=duration)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"service_duration_minutes": 0},
            {"service_duration_minutes": -15},
            {"service_duration_minutes": 30, "buffer_minutes": -5},
        ],
    )
    def test_invalid_arguments(self, generator, kwargs):
        """Non-positive durations and negative buffers are rejected."""
        with pytest.raises(ValueError):
            generator.generate(open_day(), TUESDAY, **kwargs)

    def test_invalid_step(self):
        """The step must be positive."""
        with pytest.raises(ValueError):
            SlotGenerator(WARSAW, step_minutes=0)


class TestSlotConflicts:
    """Test verdicts against existing appointments."""

    def test_existing_appointment(self, generator, make_appointment):
        """Slots overlapping an appointment are unavailable, back-to-back slots are not."""
        appointments = [make_appointment(TUESDAY, "10:00", "11:00")]
        slots = by_start(
            generator.generate(open_day(), TUESDAY, 30, appointments=appointments)
        )

        assert slots["09:00"].available is True
        assert slots["09:15"].available is True
        assert slots["09:30"].available is True
        assert slots["09:45"].available is False
        assert slots["09:45"].reason == SlotUnavailabilityReason.APPOINTMENT_CONFLICT
        assert slots["10:30"].available is False
        assert slots["11:00"].available is True
        assert slots["11:00"].reason is None

    def test_buffer_applies_on_both_sides(self, generator, make_appointment):
        """The buffer keeps idle time after the slot and after the appointment."""
        appointments = [make_appointment(TUESDAY, "10:00", "11:00")]
        slots = by_start(
            generator.generate(
                open_day(), TUESDAY, 30, buffer_minutes=15, appointments=appointments
            )
        )

        assert slots["09:15"].available is True
        assert slots["09:30"].available is False
        assert slots["11:00"].available is False
        assert slots["11:15"].available is True

    @pytest.mark.parametrize(
        "status",
        [AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW],
    )
    def test_void_appointments_do_not_block(self, generator, make_appointment, status):
        """Cancelled and no-show appointments never block a slot."""
        appointments = [make_appointment(TUESDAY, "10:00", "11:00", status=status)]
        slots = generator.generate(open_day(), TUESDAY, 30, appointments=appointments)

        assert all(slot.available for slot in slots)

    @pytest.mark.parametrize("buffer_minutes", [0, 10, 15, 30])
    def test_available_slots_never_conflict(
        self, generator, make_appointment, buffer_minutes
    ):
        """No available slot overlaps an appointment once buffers are applied."""
        appointments = [
            make_appointment(TUESDAY, "09:30", "10:15"),
            make_appointment(TUESDAY, "12:00", "13:00"),
            make_appointment(TUESDAY, "16:45", "17:00"),
        ]
        detector = ConflictDetector(buffer_minutes)

        slots = generator.generate(
            open_day(),
            TUESDAY,
            45,
            buffer_minutes=buffer_minutes,
            appointments=appointments,
        )
        for slot in slots:
            conflicts = detector.has_conflict(slot.start_utc, slot.end_utc, appointments)
            assert slot.available is not conflicts


class TestFullDayGrid:
    """Test the whole-day grid with a verdict per slot."""

    def test_closed_day(self, generator):
        """On a closed day every slot carries the closure reason."""
        closed = ClosedDay(
            reason=ClosureReason.SALON_CLOSED, source=ScheduleSource.SALON_EXCEPTION
        )
        slots = generator.generate(closed, TUESDAY, 30, full_day=True)

        assert len(slots) == 95
        assert {slot.reason for slot in slots} == {SlotUnavailabilityReason.SALON_CLOSED}

    def test_staff_off_day(self, generator):
        """A staff closure is reported as staff off."""
        closed = ClosedDay(
            reason=ClosureReason.STAFF_OFF, source=ScheduleSource.STAFF_EXCEPTION
        )
        slots = generator.generate(closed, TUESDAY, 60, full_day=True)

        assert {slot.reason for slot in slots} == {SlotUnavailabilityReason.STAFF_OFF}

    def test_open_day(self, generator, make_appointment):
        """Slots outside working hours are unavailable with their reason."""
        appointments = [make_appointment(TUESDAY, "10:00", "11:00")]
        slots = by_start(
            generator.generate(
                open_day(), TUESDAY, 30, appointments=appointments, full_day=True
            )
        )

        assert slots["00:00"].reason == SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS
        assert slots["08:45"].reason == SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS
        assert slots["09:00"].available is True
        assert slots["10:00"].reason == SlotUnavailabilityReason.APPOINTMENT_CONFLICT
        assert slots["17:30"].available is True
        assert slots["17:45"].reason == SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS

    def test_last_slot_ends_at_midnight(self, generator):
        """The last slot of the day ends at the next local midnight."""
        slots = generator.generate(open_day(), TUESDAY, 30, full_day=True)
        last = slots[-1]

        assert last.start_local == "23:30"
        assert last.end_local == "00:00"
        assert last.end_utc == datetime(2024, 1, 16, 23, 0, tzinfo=timezone.utc)


class TestDaylightSavingTime:
    """Test slot generation on DST transition days in Europe/Warsaw."""

    def test_spring_gap_is_skipped(self, generator):
        """Candidates inside the skipped hour are not generated."""
        spring_forward = date(2024, 3, 31)
        slots = generator.generate(open_day("01:00", "04:00"), spring_forward, 30)

        assert [slot.start_local for slot in slots] == [
            "01:00",
            "01:15",
            "01:30",
            "01:45",
            "03:00",
            "03:15",
            "03:30",
        ]
        starts = [slot.start_utc for slot in slots]
        assert starts == sorted(starts)
        assert len(set(starts)) == len(starts)

    def test_fall_fold_uses_first_occurrence(self, generator):
        """Repeated wall-clock times resolve to their first occurrence."""
        fall_back = date(2024, 10, 27)
        generated = generator.generate(open_day("01:00", "04:00"), fall_back, 30)
        slots = by_start(generated)

        assert slots["02:30"].start_utc == datetime(2024, 10, 27, 0, 30, tzinfo=timezone.utc)
        assert slots["03:00"].start_utc == datetime(2024, 10, 27, 2, 0, tzinfo=timezone.utc)
        # Ends in the repeated hour, after the clocks went back
        assert slots["02:30"].end_utc - slots["02:30"].start_utc == timedelta(minutes=30)
        assert slots["02:30"].end_local == "02:00"

        starts = [slot.start_utc for slot in generated]
        assert starts == sorted(starts)

    def test_spring_gap_slot_lasts_full_duration(self, generator, make_appointment):
        """A slot across the skipped hour lasts the whole service in real time."""
        spring_forward = date(2024, 3, 31)
        appointments = [make_appointment(spring_forward, "03:30", "03:45")]

        slots = by_start(
            generator.generate(
                open_day("01:00", "06:00"),
                spring_forward,
                120,
                appointments=appointments,
            )
        )
        first = slots["01:00"]

        assert first.start_utc == datetime(2024, 3, 31, 0, 0, tzinfo=timezone.utc)
        assert first.end_utc == datetime(2024, 3, 31, 2, 0, tzinfo=timezone.utc)
        assert first.end_local == "04:00"
        assert first.reason == SlotUnavailabilityReason.APPOINTMENT_CONFLICT

    def test_spring_gap_slots_stay_inside_working_hours(self, generator):
        """No slot on the spring transition day ends after closing time."""
        spring_forward = date(2024, 3, 31)
        slots = generator.generate(open_day("01:00", "06:00"), spring_forward, 120)

        assert slots[-1].start_local == "04:00"
        assert slots[-1].end_local == "06:00"
        assert all(
            slot.end_utc <= datetime(2024, 3, 31, 4, 0, tzinfo=timezone.utc)
            for slot in slots
        )
