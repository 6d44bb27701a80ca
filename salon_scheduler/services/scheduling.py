from datetime import date as date_type
from datetime import datetime, timedelta
from typing import List, Optional

import structlog

from salon_scheduler.core.config import Settings, settings as default_settings
from salon_scheduler.schemas.appointment import AppointmentView
from salon_scheduler.schemas.schedule import ClosureReason, EffectiveDay, WeekDay
from salon_scheduler.schemas.scheduling import (
    AvailableDaysQuery,
    AvailableSlotsQuery,
    BookingValidationRequest,
    BookingValidationResult,
    ScheduleSnapshot,
    Slot,
    SlotUnavailabilityReason,
)
from salon_scheduler.services.conflicts import ConflictDetector
from salon_scheduler.services.holidays import HolidayCalendar
from salon_scheduler.services.schedule_exceptions import ScheduleExceptionOverlay
from salon_scheduler.services.slots import SlotGenerator
from salon_scheduler.services.working_hours import WorkingHoursResolver
from salon_scheduler.utils.time_arithmetic import (
    get_zone,
    iter_dates,
    local_date_of,
    local_day_bounds_utc,
    to_utc_instant,
)

logger = structlog.get_logger(__name__)

_MESSAGES = {
    SlotUnavailabilityReason.SALON_CLOSED: "Salon is closed on this date",
    SlotUnavailabilityReason.STAFF_OFF: "Staff member is not working on this date",
    SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS: "Booking is outside working hours",
    SlotUnavailabilityReason.APPOINTMENT_CONFLICT: "Staff has an existing appointment during this time",
}


class SchedulingEngineService:
    """Availability and booking validation for one tenant.

    Works on an immutable ``ScheduleSnapshot`` fetched by the persistence
    layer. Every entry point is read-only; the same snapshot can serve any
    number of requests.
    """

    def __init__(
        self,
        snapshot: ScheduleSnapshot,
        config: Optional[Settings] = None,
        holiday_calendar: Optional[HolidayCalendar] = None,
    ):
        self.snapshot = snapshot
        self.settings = config or default_settings
        self.timezone = snapshot.timezone or self.settings.DEFAULT_TIMEZONE
        get_zone(self.timezone)

        if holiday_calendar is None:
            holiday_calendar = HolidayCalendar.from_settings(self.settings)

        self.working_hours = WorkingHoursResolver()
        self.overlay = ScheduleExceptionOverlay(holiday_calendar)
        self.slot_generator = SlotGenerator(
            self.timezone, step_minutes=self.settings.SLOT_STEP_MINUTES
        )

    def _buffer(self, buffer_minutes: Optional[int]) -> int:
        if buffer_minutes is None:
            return self.settings.DEFAULT_BUFFER_MINUTES
        return buffer_minutes

    def get_effective_day(
        self, on_date: date_type, staff_id: Optional[str] = None
    ) -> EffectiveDay:
        """Final working interval (or closure) of ``staff_id`` on ``on_date``.

        With ``staff_id=None`` the salon's own schedule is resolved.
        """
        try:
            weekly = self.working_hours.resolve_day(
                WeekDay.from_date(on_date),
                self.snapshot.salon_hours,
                self.snapshot.staff_hours_for(staff_id),
            )
            return self.overlay.resolve(
                weekly, on_date, self.snapshot.exceptions, staff_id
            )
        except ValueError as e:
            logger.error(
                "Invalid schedule data",
                date=on_date.isoformat(),
                staff_id=staff_id,
                error=str(e),
            )
            raise

    def _appointments_on(
        self, on_date: date_type, staff_id: Optional[str], buffer_minutes: int = 0
    ) -> List[AppointmentView]:
        """Appointments whose buffered interval reaches into the local day."""
        day_start, day_end = local_day_bounds_utc(on_date, self.timezone)
        buffer = timedelta(minutes=buffer_minutes)
        day_start -= buffer
        day_end += buffer
        return [
            appointment
            for appointment in self.snapshot.appointments_for(staff_id)
            if appointment.start_utc < day_end and day_start < appointment.end_utc
        ]

    def get_available_slots(self, query: AvailableSlotsQuery) -> List[Slot]:
        """Slots for one date, staff member and service duration, oldest first."""
        buffer_minutes = self._buffer(query.buffer_minutes)
        logger.info(
            "Computing available slots",
            date=query.date.isoformat(),
            staff_id=query.staff_id,
            duration=query.service_duration_minutes,
            buffer=buffer_minutes,
            timezone=self.timezone,
        )

        day = self.get_effective_day(query.date, query.staff_id)
        appointments = self._appointments_on(query.date, query.staff_id, buffer_minutes)

        slots = self.slot_generator.generate(
            day,
            query.date,
            query.service_duration_minutes,
            buffer_minutes=buffer_minutes,
            appointments=appointments,
            full_day=query.full_day,
        )

        logger.info(
            "Available slots computed",
            date=query.date.isoformat(),
            staff_id=query.staff_id,
            open=day.is_open,
            source=day.source.value,
            total=len(slots),
            available=sum(1 for s in slots if s.available),
        )
        return slots

    def day_has_availability(
        self,
        on_date: date_type,
        staff_id: Optional[str],
        service_duration_minutes: int,
        buffer_minutes: Optional[int] = None,
    ) -> bool:
        day = self.get_effective_day(on_date, staff_id)
        if not day.is_open:
            return False
        buffer_minutes = self._buffer(buffer_minutes)
        slots = self.slot_generator.generate(
            day,
            on_date,
            service_duration_minutes,
            buffer_minutes=buffer_minutes,
            appointments=self._appointments_on(on_date, staff_id, buffer_minutes),
        )
        return any(slot.available for slot in slots)

    def get_available_days(self, query: AvailableDaysQuery) -> List[date_type]:
        """Dates in the inclusive range with at least one available slot."""
        available_days = [
            on_date
            for on_date in iter_dates(query.start_date, query.end_date)
            if self.day_has_availability(
                on_date,
                query.staff_id,
                query.service_duration_minutes,
                query.buffer_minutes,
            )
        ]
        logger.info(
            "Available days computed",
            staff_id=query.staff_id,
            start_date=query.start_date.isoformat(),
            end_date=query.end_date.isoformat(),
            available=len(available_days),
            total=(query.end_date - query.start_date).days + 1,
        )
        return available_days

    def validate_proposed_booking(
        self, request: BookingValidationRequest
    ) -> BookingValidationResult:
        """Check a proposed booking against the schedule and existing appointments.

        Reasons are checked in order: salon closed, staff off, outside working
        hours, appointment conflict. The verdict is advisory; the write path
        must re-run it against fresh data before committing.
        """
        local_date = local_date_of(request.start_utc, self.timezone)
        day = self.get_effective_day(local_date, request.staff_id)

        reason = None
        conflicting: List[AppointmentView] = []
        if not day.is_open:
            reason = (
                SlotUnavailabilityReason.SALON_CLOSED
                if day.reason == ClosureReason.SALON_CLOSED
                else SlotUnavailabilityReason.STAFF_OFF
            )
        elif not self._within_working_hours(
            day, local_date, request.start_utc, request.end_utc
        ):
            reason = SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS
        else:
            detector = ConflictDetector(self._buffer(request.buffer_minutes))
            candidates = [
                appointment
                for appointment in self.snapshot.appointments_for(request.staff_id)
                if appointment.id is None
                or appointment.id not in request.exclude_appointment_ids
            ]
            conflicting = detector.find_conflicts(
                request.start_utc, request.end_utc, candidates
            )
            if conflicting:
                reason = SlotUnavailabilityReason.APPOINTMENT_CONFLICT

        result = BookingValidationResult(
            ok=reason is None,
            reason=reason,
            message=_MESSAGES.get(reason),
            local_date=local_date,
            conflicting=conflicting,
        )
        logger.info(
            "Booking validated",
            staff_id=request.staff_id,
            start=request.start_utc.isoformat(),
            end=request.end_utc.isoformat(),
            ok=result.ok,
            reason=reason.value if reason else None,
        )
        return result

    def _within_working_hours(
        self,
        day: EffectiveDay,
        on_date: date_type,
        start_utc: datetime,
        end_utc: datetime,
    ) -> bool:
        open_utc = to_utc_instant(on_date, day.start_local, self.timezone)
        close_utc = to_utc_instant(on_date, day.end_local, self.timezone)
        return open_utc <= start_utc and end_utc <= close_utc
