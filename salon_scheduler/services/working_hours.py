from typing import Dict, Iterable, List, Optional

import structlog

from salon_scheduler.schemas.schedule import (
    ScheduleSource,
    WeekDay,
    WeeklyWorkingHour,
)
from salon_scheduler.utils.time_arithmetic import require_range

logger = structlog.get_logger(__name__)


class ResolvedWorkingHour:
    """Effective weekly record for one day together with where it came from."""

    __slots__ = ("day_of_week", "record", "source")

    def __init__(
        self,
        day_of_week: WeekDay,
        record: Optional[WeeklyWorkingHour],
        source: ScheduleSource,
    ):
        self.day_of_week = day_of_week
        self.record = record
        self.source = source

    @property
    def is_working_day(self) -> bool:
        return self.record is not None and self.record.is_working_day

    @property
    def start_local(self) -> Optional[str]:
        return self.record.start_local if self.is_working_day else None

    @property
    def end_local(self) -> Optional[str]:
        return self.record.end_local if self.is_working_day else None

    def __repr__(self):
        if not self.is_working_day:
            return f"<ResolvedWorkingHour({self.day_of_week.name}: closed, {self.source.value})>"
        return (
            f"<ResolvedWorkingHour({self.day_of_week.name}: "
            f"{self.start_local}-{self.end_local}, {self.source.value})>"
        )


class WorkingHoursResolver:
    """Merges the salon weekly template with a staff member's weekly override.

    A staff record for a day replaces the salon record for that day as a
    whole. A day with no record in either scope is closed.
    """

    @staticmethod
    def _index_by_day(
        records: Iterable[WeeklyWorkingHour], scope: str
    ) -> Dict[WeekDay, WeeklyWorkingHour]:
        by_day: Dict[WeekDay, WeeklyWorkingHour] = {}
        for record in records:
            day = WeekDay(record.day_of_week)
            if day in by_day:
                logger.warning(
                    "Duplicate weekly working hours record, last one wins",
                    scope=scope,
                    day_of_week=day.name,
                    staff_id=record.staff_id,
                )
            by_day[day] = record
        return by_day

    @staticmethod
    def _resolve_one(
        day: WeekDay,
        salon_by_day: Dict[WeekDay, WeeklyWorkingHour],
        staff_by_day: Dict[WeekDay, WeeklyWorkingHour],
    ) -> ResolvedWorkingHour:
        if day in staff_by_day:
            resolved = ResolvedWorkingHour(
                day, staff_by_day[day], ScheduleSource.STAFF_TEMPLATE
            )
        elif day in salon_by_day:
            resolved = ResolvedWorkingHour(
                day, salon_by_day[day], ScheduleSource.SALON_TEMPLATE
            )
        else:
            resolved = ResolvedWorkingHour(day, None, ScheduleSource.NO_SCHEDULE)

        if resolved.is_working_day:
            require_range(
                resolved.start_local,
                resolved.end_local,
                context=f"{resolved.source.value} {day.name}",
            )
        return resolved

    def resolve(
        self,
        salon_hours: Iterable[WeeklyWorkingHour],
        staff_hours: Iterable[WeeklyWorkingHour] = (),
    ) -> List[ResolvedWorkingHour]:
        """Return the effective template, one entry per day Sunday..Saturday."""
        salon_by_day = self._index_by_day(salon_hours, "salon")
        staff_by_day = self._index_by_day(staff_hours, "staff")

        week = [self._resolve_one(day, salon_by_day, staff_by_day) for day in WeekDay]

        logger.debug(
            "Resolved weekly working hours",
            staff_override_days=[d.name for d in staff_by_day],
            working_days=[r.day_of_week.name for r in week if r.is_working_day],
        )
        return week

    def resolve_day(
        self,
        day: WeekDay,
        salon_hours: Iterable[WeeklyWorkingHour],
        staff_hours: Iterable[WeeklyWorkingHour] = (),
    ) -> ResolvedWorkingHour:
        """Resolve a single day; only that day's records are validated."""
        return self._resolve_one(
            WeekDay(day),
            self._index_by_day(salon_hours, "salon"),
            self._index_by_day(staff_hours, "staff"),
        )
