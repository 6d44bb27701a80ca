from .appointment import VOID_APPOINTMENT_STATUSES, AppointmentStatus, AppointmentView
from .schedule import (
    ClosedDay,
    ClosureReason,
    EffectiveDay,
    OpenDay,
    ScheduleException,
    ScheduleExceptionType,
    ScheduleSource,
    WeekDay,
    WeeklyWorkingHour,
)
from .scheduling import (
    AvailableDaysQuery,
    AvailableSlotsQuery,
    BookingValidationRequest,
    BookingValidationResult,
    ScheduleSnapshot,
    Slot,
    SlotUnavailabilityReason,
)

__all__ = [
    "AppointmentStatus",
    "AppointmentView",
    "AvailableDaysQuery",
    "AvailableSlotsQuery",
    "BookingValidationRequest",
    "BookingValidationResult",
    "ClosedDay",
    "ClosureReason",
    "EffectiveDay",
    "OpenDay",
    "ScheduleException",
    "ScheduleExceptionType",
    "ScheduleSnapshot",
    "ScheduleSource",
    "Slot",
    "SlotUnavailabilityReason",
    "VOID_APPOINTMENT_STATUSES",
    "WeekDay",
    "WeeklyWorkingHour",
]
