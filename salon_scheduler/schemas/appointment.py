from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from salon_scheduler.utils.time_arithmetic import minutes_between


class AppointmentStatus(str, Enum):
    DRAFT = "DRAFT"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"

    @classmethod
    def _missing_(cls, value):
        # Accept lower-case values and the "CANCELED" spelling used by some clients.
        if isinstance(value, str):
            normalized = value.strip().upper()
            if normalized == "CANCELED":
                return cls.CANCELLED
            for member in cls:
                if member.value == normalized:
                    return member
        return None


# Statuses that never block a time slot
VOID_APPOINTMENT_STATUSES = frozenset(
    {AppointmentStatus.CANCELLED, AppointmentStatus.NO_SHOW}
)


class AppointmentView(BaseModel):
    """Scheduling view of a booked appointment."""

    id: Optional[str] = None
    staff_id: Optional[str] = None
    start_utc: datetime
    end_utc: datetime
    status: AppointmentStatus = AppointmentStatus.CONFIRMED

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("start_utc", "end_utc")
    @classmethod
    def must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("Appointment datetimes must be timezone-aware")
        return v

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_utc <= self.start_utc:
            raise ValueError("end_utc must be after start_utc")
        return self

    @property
    def is_active(self) -> bool:
        return self.status not in VOID_APPOINTMENT_STATUSES

    @property
    def duration_minutes(self) -> int:
        return minutes_between(self.start_utc, self.end_utc)
