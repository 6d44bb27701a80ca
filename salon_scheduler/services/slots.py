from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Tuple

import structlog

from salon_scheduler.schemas.appointment import AppointmentView
from salon_scheduler.schemas.schedule import ClosureReason, EffectiveDay
from salon_scheduler.schemas.scheduling import Slot, SlotUnavailabilityReason
from salon_scheduler.services.conflicts import ConflictDetector
from salon_scheduler.utils.time_arithmetic import (
    MINUTES_IN_DAY,
    format_local_time,
    is_nonexistent_local_time,
    to_local,
    to_utc_instant,
)

logger = structlog.get_logger(__name__)

DEFAULT_STEP_MINUTES = 15

_CLOSURE_REASONS = {
    ClosureReason.SALON_CLOSED: SlotUnavailabilityReason.SALON_CLOSED,
    ClosureReason.STAFF_OFF: SlotUnavailabilityReason.STAFF_OFF,
}


class SlotGenerator:
    """Walks a day in fixed steps and gives every candidate slot a verdict."""

    def __init__(self, timezone: str, step_minutes: int = DEFAULT_STEP_MINUTES):
        if step_minutes <= 0:
            raise ValueError("step_minutes must be a positive integer")
        self.timezone = timezone
        self.step_minutes = step_minutes

    def generate(
        self,
        day: EffectiveDay,
        on_date: date,
        service_duration_minutes: int,
        buffer_minutes: int = 0,
        appointments: Iterable[AppointmentView] = (),
        full_day: bool = False,
    ) -> List[Slot]:
        """Slots for ``on_date``, oldest first.

        By default only the working interval is walked and a closed day has no
        slots. With ``full_day`` the whole local day is walked and slots
        outside working hours or on a closed day are reported unavailable.
        """
        if service_duration_minutes <= 0:
            raise ValueError("service_duration_minutes must be greater than 0")
        if buffer_minutes < 0:
            raise ValueError("buffer_minutes must be a non-negative integer")

        if not day.is_open and not full_day:
            logger.debug(
                "Day closed, no slots",
                date=on_date.isoformat(),
                reason=day.reason.value,
                source=day.source.value,
            )
            return []

        detector = ConflictDetector(buffer_minutes)
        active = [a for a in appointments if a.is_active]

        duration = timedelta(minutes=service_duration_minutes)
        if day.is_open:
            open_start, open_end = day.start_minutes, day.end_minutes
            open_bounds = (
                to_utc_instant(on_date, open_start, self.timezone),
                to_utc_instant(on_date, open_end, self.timezone),
            )
        else:
            open_bounds = None

        if full_day:
            window_start, window_end = 0, MINUTES_IN_DAY
        else:
            window_start, window_end = open_start, open_end
        window_end_utc = to_utc_instant(on_date, window_end, self.timezone)

        slots: List[Slot] = []
        candidate = window_start
        while candidate < window_end:
            if is_nonexistent_local_time(on_date, candidate, self.timezone):
                # Same instant as the first slot after the DST gap
                logger.debug(
                    "Skipping slot inside DST gap",
                    date=on_date.isoformat(),
                    start=format_local_time(candidate),
                )
                candidate += self.step_minutes
                continue

            # Elapsed time, not wall-clock minutes
            start_utc = to_utc_instant(on_date, candidate, self.timezone)
            end_utc = start_utc + duration
            if end_utc > window_end_utc:
                break

            reason = self._verdict(day, start_utc, end_utc, open_bounds, detector, active)
            slots.append(
                Slot(
                    start_local=format_local_time(candidate),
                    end_local=to_local(end_utc, self.timezone)[1],
                    start_utc=start_utc,
                    end_utc=end_utc,
                    available=reason is None,
                    reason=reason,
                )
            )
            candidate += self.step_minutes

        logger.debug(
            "Generated slots",
            date=on_date.isoformat(),
            total=len(slots),
            available=sum(1 for s in slots if s.available),
            duration=service_duration_minutes,
            buffer=buffer_minutes,
            full_day=full_day,
        )
        return slots

    @staticmethod
    def _verdict(
        day: EffectiveDay,
        start_utc: datetime,
        end_utc: datetime,
        open_bounds: Optional[Tuple[datetime, datetime]],
        detector: ConflictDetector,
        appointments: List[AppointmentView],
    ) -> Optional[SlotUnavailabilityReason]:
        if not day.is_open:
            return _CLOSURE_REASONS[day.reason]
        open_utc, close_utc = open_bounds
        if start_utc < open_utc or end_utc > close_utc:
            return SlotUnavailabilityReason.OUTSIDE_WORKING_HOURS
        if detector.has_conflict(start_utc, end_utc, appointments):
            return SlotUnavailabilityReason.APPOINTMENT_CONFLICT
        return None
