import pytest
import structlog

from salon_scheduler.core.config import Settings
from salon_scheduler.schemas.appointment import AppointmentStatus, AppointmentView
from salon_scheduler.schemas.schedule import (
    ScheduleException,
    ScheduleExceptionType,
    WeekDay,
    WeeklyWorkingHour,
)
from salon_scheduler.schemas.scheduling import ScheduleSnapshot
from salon_scheduler.services.scheduling import SchedulingEngineService
from salon_scheduler.utils.time_arithmetic import to_utc_instant

SALON_TZ = "Europe/Warsaw"
STAFF_ID = "staff-1"


@pytest.fixture
def salon_hours():
    """Salon open 09:00-18:00 Monday to Friday, closed Saturday, no Sunday record."""
    hours = [
        WeeklyWorkingHour(
            day_of_week=weekday,
            start_local="09:00",
            end_local="18:00",
            is_working_day=True,
        )
        for weekday in (
            WeekDay.MONDAY,
            WeekDay.TUESDAY,
            WeekDay.WEDNESDAY,
            WeekDay.THURSDAY,
            WeekDay.FRIDAY,
        )
    ]
    hours.append(
        WeeklyWorkingHour(
            day_of_week=WeekDay.SATURDAY,
            start_local="10:00",
            end_local="14:00",
            is_working_day=False,
        )
    )
    return hours


@pytest.fixture
def test_settings():
    """Settings with the documented defaults, isolated from the environment."""
    return Settings(
        _env_file=None,
        SLOT_STEP_MINUTES=15,
        DEFAULT_BUFFER_MINUTES=0,
        HOLIDAY_COUNTRY=None,
        DEFAULT_TIMEZONE=SALON_TZ,
    )


@pytest.fixture
def make_appointment():
    """Build an appointment from salon-local wall-clock times."""

    def _make(
        on_date,
        start_local,
        end_local,
        staff_id=STAFF_ID,
        status=AppointmentStatus.CONFIRMED,
        appointment_id=None,
        timezone=SALON_TZ,
    ):
        return AppointmentView(
            id=appointment_id,
            staff_id=staff_id,
            start_utc=to_utc_instant(on_date, start_local, timezone),
            end_utc=to_utc_instant(on_date, end_local, timezone),
            status=status,
        )

    return _make


@pytest.fixture
def make_exception():
    def _make(
        start_date,
        end_date=None,
        type=ScheduleExceptionType.DAY_OFF,
        staff_id=STAFF_ID,
        custom_start_local=None,
        custom_end_local=None,
        is_working_day=None,
        exception_id=None,
    ):
        return ScheduleException(
            id=exception_id,
            staff_id=staff_id,
            start_date=start_date,
            end_date=end_date or start_date,
            type=type,
            custom_start_local=custom_start_local,
            custom_end_local=custom_end_local,
            is_working_day=is_working_day,
        )

    return _make


@pytest.fixture
def make_service(salon_hours, test_settings):
    """Build a scheduling service over a snapshot with the default salon hours."""

    def _make(
        staff_hours=(),
        exceptions=(),
        appointments=(),
        timezone=SALON_TZ,
        salon=None,
        config=None,
        holiday_calendar=None,
    ):
        snapshot = ScheduleSnapshot(
            timezone=timezone,
            salon_hours=tuple(salon if salon is not None else salon_hours),
            staff_hours=tuple(staff_hours),
            exceptions=tuple(exceptions),
            appointments=tuple(appointments),
        )
        return SchedulingEngineService(
            snapshot,
            config=config or test_settings,
            holiday_calendar=holiday_calendar,
        )

    return _make


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()
