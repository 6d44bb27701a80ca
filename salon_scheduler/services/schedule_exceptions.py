from datetime import date
from typing import Iterable, List, Optional

import structlog

from salon_scheduler.schemas.schedule import (
    ClosedDay,
    ClosureReason,
    EffectiveDay,
    OpenDay,
    ScheduleException,
    ScheduleExceptionType,
    ScheduleSource,
)
from salon_scheduler.services.holidays import HolidayCalendar
from salon_scheduler.services.working_hours import ResolvedWorkingHour
from salon_scheduler.utils.time_arithmetic import require_range

logger = structlog.get_logger(__name__)


def select_exceptions(
    exceptions: Iterable[ScheduleException],
    on_date: date,
    staff_id: Optional[str],
) -> List[ScheduleException]:
    """Exceptions covering ``on_date`` that apply to the salon or to ``staff_id``."""
    return [
        exception
        for exception in exceptions
        if exception.covers(on_date)
        and exception.applies_to(staff_id)
        and not exception.is_blank
    ]


def pick_latest(candidates: List[ScheduleException]) -> Optional[ScheduleException]:
    """Tie-break among same-scope exceptions: latest ``start_date`` wins.

    Equal start dates keep the one that comes later in the input.
    """
    winner = None
    for candidate in candidates:
        if winner is None or candidate.start_date >= winner.start_date:
            winner = candidate
    return winner


class ScheduleExceptionOverlay:
    """Applies date-range exceptions on top of the effective weekly template.

    Precedence, highest first:

    1. salon-wide closure (day off, sick leave, non-working custom hours, or a
       public holiday when a holiday calendar is configured)
    2. staff-specific exception (closure or custom hours)
    3. salon-wide working custom hours
    4. the weekly template for the day of week
    """

    def __init__(self, holiday_calendar: Optional[HolidayCalendar] = None):
        self.holiday_calendar = holiday_calendar

    def resolve(
        self,
        weekly: ResolvedWorkingHour,
        on_date: date,
        exceptions: Iterable[ScheduleException],
        staff_id: Optional[str] = None,
    ) -> EffectiveDay:
        matching = select_exceptions(exceptions, on_date, staff_id)
        salon_wide = [e for e in matching if e.is_salon_wide]
        staff_specific = [e for e in matching if not e.is_salon_wide]

        # 1. Salon-wide closure
        salon_closures = [e for e in salon_wide if e.closes_day]
        if salon_closures:
            self._warn_on_overlap(salon_closures, on_date, "salon")
            closure = pick_latest(salon_closures)
            logger.debug(
                "Salon closed by exception",
                date=on_date.isoformat(),
                exception_id=closure.id,
                type=closure.type.value,
            )
            return ClosedDay(
                reason=ClosureReason.SALON_CLOSED,
                source=ScheduleSource.SALON_EXCEPTION,
            )

        if self.holiday_calendar and self.holiday_calendar.is_holiday(on_date):
            logger.debug(
                "Salon closed for public holiday",
                date=on_date.isoformat(),
                holiday=self.holiday_calendar.get_holiday_name(on_date),
            )
            return ClosedDay(
                reason=ClosureReason.SALON_CLOSED,
                source=ScheduleSource.PUBLIC_HOLIDAY,
            )

        # 2. Staff-specific exception
        if staff_specific:
            self._warn_on_overlap(staff_specific, on_date, "staff")
            exception = pick_latest(staff_specific)
            return self._apply_exception(
                exception,
                on_date,
                ScheduleSource.STAFF_EXCEPTION,
                ClosureReason.STAFF_OFF,
            )

        # 3. Salon-wide custom hours
        salon_custom = [
            e
            for e in salon_wide
            if e.type == ScheduleExceptionType.CUSTOM_HOURS and not e.closes_day
        ]
        if salon_custom:
            self._warn_on_overlap(salon_custom, on_date, "salon")
            return self._apply_exception(
                pick_latest(salon_custom),
                on_date,
                ScheduleSource.SALON_EXCEPTION,
                ClosureReason.SALON_CLOSED,
            )

        # 4. Weekly template
        return self._from_weekly(weekly)

    def _apply_exception(
        self,
        exception: ScheduleException,
        on_date: date,
        source: ScheduleSource,
        closure_reason: ClosureReason,
    ) -> EffectiveDay:
        if exception.closes_day:
            logger.debug(
                "Day closed by exception",
                date=on_date.isoformat(),
                exception_id=exception.id,
                type=exception.type.value,
                source=source.value,
            )
            return ClosedDay(reason=closure_reason, source=source)

        require_range(
            exception.custom_start_local,
            exception.custom_end_local,
            context=f"custom hours exception {exception.id or ''}".strip(),
        )
        logger.debug(
            "Custom hours applied",
            date=on_date.isoformat(),
            exception_id=exception.id,
            start=exception.custom_start_local,
            end=exception.custom_end_local,
        )
        return OpenDay(
            start_local=exception.custom_start_local,
            end_local=exception.custom_end_local,
            source=source,
        )

    @staticmethod
    def _from_weekly(weekly: ResolvedWorkingHour) -> EffectiveDay:
        if weekly.is_working_day:
            return OpenDay(
                start_local=weekly.start_local,
                end_local=weekly.end_local,
                source=weekly.source,
            )
        if weekly.source == ScheduleSource.STAFF_TEMPLATE:
            return ClosedDay(reason=ClosureReason.STAFF_OFF, source=weekly.source)
        return ClosedDay(reason=ClosureReason.SALON_CLOSED, source=weekly.source)

    @staticmethod
    def _warn_on_overlap(
        candidates: List[ScheduleException], on_date: date, scope: str
    ) -> None:
        if len(candidates) > 1:
            logger.warning(
                "Overlapping schedule exceptions, latest start date wins",
                date=on_date.isoformat(),
                scope=scope,
                exception_ids=[e.id for e in candidates],
            )
