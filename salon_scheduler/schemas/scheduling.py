from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator

from salon_scheduler.core.config import settings
from salon_scheduler.schemas.appointment import AppointmentView
from salon_scheduler.schemas.schedule import ScheduleException, WeeklyWorkingHour


class SlotUnavailabilityReason(str, Enum):
    APPOINTMENT_CONFLICT = "APPOINTMENT_CONFLICT"
    SALON_CLOSED = "SALON_CLOSED"
    STAFF_OFF = "STAFF_OFF"
    OUTSIDE_WORKING_HOURS = "OUTSIDE_WORKING_HOURS"


class Slot(BaseModel):
    start_local: str
    end_local: str
    start_utc: datetime
    end_utc: datetime
    available: bool
    reason: Optional[SlotUnavailabilityReason] = None

    class Config:
        frozen = True


def _check_duration(v: int) -> int:
    if v > settings.MAX_SERVICE_DURATION_MINUTES:
        raise ValueError(
            f"service_duration_minutes must be at most "
            f"{settings.MAX_SERVICE_DURATION_MINUTES}"
        )
    return v


def _check_buffer(v: Optional[int]) -> Optional[int]:
    if v is not None and v > settings.MAX_BUFFER_MINUTES:
        raise ValueError(f"buffer_minutes must be at most {settings.MAX_BUFFER_MINUTES}")
    return v


class AvailableSlotsQuery(BaseModel):
    """Parameters of a "get available slots" request.

    ``staff_id=None`` asks for salon-level availability: salon hours and
    salon-wide exceptions only, appointments of individual staff ignored.
    ``buffer_minutes=None`` falls back to ``DEFAULT_BUFFER_MINUTES``.
    ``full_day`` returns the whole-day grid with a verdict per slot instead of
    the working interval only.
    """

    date: date
    staff_id: Optional[str] = None
    service_duration_minutes: int = Field(..., gt=0)
    buffer_minutes: Optional[int] = Field(None, ge=0)
    full_day: bool = False

    class Config:
        frozen = True

    @field_validator("service_duration_minutes")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        return _check_duration(v)

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v: Optional[int]) -> Optional[int]:
        return _check_buffer(v)


class AvailableDaysQuery(BaseModel):
    start_date: date
    end_date: date
    staff_id: Optional[str] = None
    service_duration_minutes: int = Field(..., gt=0)
    buffer_minutes: Optional[int] = Field(None, ge=0)

    class Config:
        frozen = True

    @field_validator("service_duration_minutes")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        return _check_duration(v)

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v: Optional[int]) -> Optional[int]:
        return _check_buffer(v)

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        days = (self.end_date - self.start_date).days + 1
        if days > settings.MAX_AVAILABLE_DAYS_RANGE:
            raise ValueError(
                f"Date range of {days} days exceeds the maximum of "
                f"{settings.MAX_AVAILABLE_DAYS_RANGE}"
            )
        return self


class BookingValidationRequest(BaseModel):
    staff_id: str
    start_utc: datetime
    end_utc: datetime
    buffer_minutes: Optional[int] = Field(None, ge=0)
    # Appointments ignored by the check, e.g. the one being rescheduled
    exclude_appointment_ids: Tuple[str, ...] = ()

    class Config:
        frozen = True

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v: Optional[int]) -> Optional[int]:
        return _check_buffer(v)

    @field_validator("start_utc", "end_utc")
    @classmethod
    def must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("Booking datetimes must be timezone-aware")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_utc <= self.start_utc:
            raise ValueError("end_utc must be after start_utc")
        return self


class BookingValidationResult(BaseModel):
    ok: bool
    reason: Optional[SlotUnavailabilityReason] = None
    message: Optional[str] = None
    local_date: date
    conflicting: List[AppointmentView] = Field(default_factory=list)


class ScheduleSnapshot(BaseModel):
    """Immutable inputs of one scheduling computation for one tenant."""

    timezone: str = Field(default_factory=lambda: settings.DEFAULT_TIMEZONE)
    salon_hours: Tuple[WeeklyWorkingHour, ...] = ()
    staff_hours: Tuple[WeeklyWorkingHour, ...] = ()
    exceptions: Tuple[ScheduleException, ...] = ()
    appointments: Tuple[AppointmentView, ...] = ()

    class Config:
        frozen = True

    def staff_hours_for(self, staff_id: Optional[str]) -> List[WeeklyWorkingHour]:
        if staff_id is None:
            return []
        return [record for record in self.staff_hours if record.staff_id == staff_id]

    def appointments_for(self, staff_id: Optional[str]) -> List[AppointmentView]:
        """Non-void appointments of one staff member."""
        if staff_id is None:
            return []
        return [
            appointment
            for appointment in self.appointments
            if appointment.staff_id == staff_id and appointment.is_active
        ]
