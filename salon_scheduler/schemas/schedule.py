from datetime import date
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

from salon_scheduler.utils.time_arithmetic import day_of_week, parse_local_time


class WeekDay(int, Enum):
    """Day of week as stored by the platform (0 = Sunday)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_date(cls, on_date: date) -> "WeekDay":
        return cls(day_of_week(on_date))


class ScheduleExceptionType(str, Enum):
    DAY_OFF = "DAY_OFF"
    SICK_LEAVE = "SICK_LEAVE"
    CUSTOM_HOURS = "CUSTOM_HOURS"


class ScheduleSource(str, Enum):
    """Which rule decided the effective schedule of a day."""

    SALON_TEMPLATE = "SALON_TEMPLATE"
    STAFF_TEMPLATE = "STAFF_TEMPLATE"
    SALON_EXCEPTION = "SALON_EXCEPTION"
    STAFF_EXCEPTION = "STAFF_EXCEPTION"
    PUBLIC_HOLIDAY = "PUBLIC_HOLIDAY"
    NO_SCHEDULE = "NO_SCHEDULE"


class ClosureReason(str, Enum):
    SALON_CLOSED = "SALON_CLOSED"
    STAFF_OFF = "STAFF_OFF"


class WeeklyWorkingHour(BaseModel):
    """Weekly template record for the salon (``staff_id=None``) or a staff member.

    Times are kept as raw ``HH:mm`` strings; they are checked when the record
    is read by the resolver so that bad data fails the computation using it.
    """

    day_of_week: WeekDay
    start_local: str
    end_local: str
    is_working_day: bool = True
    staff_id: Optional[str] = None

    class Config:
        from_attributes = True
        frozen = True


class ScheduleException(BaseModel):
    """Date-range override of the weekly template (inclusive local dates)."""

    id: Optional[str] = None
    staff_id: Optional[str] = None  # None = whole salon
    start_date: date
    end_date: date
    type: ScheduleExceptionType
    custom_start_local: Optional[str] = None
    custom_end_local: Optional[str] = None
    is_working_day: Optional[bool] = None
    reason: Optional[str] = Field(None, max_length=255)

    class Config:
        from_attributes = True
        frozen = True

    @model_validator(mode="after")
    def end_date_not_before_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def is_salon_wide(self) -> bool:
        return self.staff_id is None

    @property
    def closes_day(self) -> bool:
        """True when the exception makes the covered dates non-working."""
        if self.type in (ScheduleExceptionType.DAY_OFF, ScheduleExceptionType.SICK_LEAVE):
            return True
        return self.is_working_day is False

    @property
    def is_blank(self) -> bool:
        """Custom hours with no times and no working flag leave the day unchanged."""
        return (
            self.type == ScheduleExceptionType.CUSTOM_HOURS
            and self.is_working_day is None
            and self.custom_start_local is None
            and self.custom_end_local is None
        )

    def covers(self, on_date: date) -> bool:
        return self.start_date <= on_date <= self.end_date

    def applies_to(self, staff_id: Optional[str]) -> bool:
        return self.staff_id is None or self.staff_id == staff_id


class OpenDay(BaseModel):
    kind: Literal["open"] = "open"
    start_local: str
    end_local: str
    source: ScheduleSource

    class Config:
        frozen = True

    @property
    def is_open(self) -> bool:
        return True

    @property
    def start_minutes(self) -> int:
        return parse_local_time(self.start_local)

    @property
    def end_minutes(self) -> int:
        return parse_local_time(self.end_local)


class ClosedDay(BaseModel):
    kind: Literal["closed"] = "closed"
    reason: ClosureReason
    source: ScheduleSource

    class Config:
        frozen = True

    @property
    def is_open(self) -> bool:
        return False


EffectiveDay = Annotated[Union[OpenDay, ClosedDay], Field(discriminator="kind")]
