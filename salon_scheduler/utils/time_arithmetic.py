"""Wall-clock and time-zone arithmetic for the scheduling core.

Local times are ``HH:mm`` strings in the salon's IANA zone and are handled as
minutes since local midnight. Absolute instants are timezone-aware UTC
datetimes. Nothing else in the package does date arithmetic by hand.

DST rules:

* a nonexistent local time (inside a forward jump) is shifted forward past
  the gap by the length of the gap, e.g. 02:30 on the Europe/Warsaw spring
  transition becomes 03:30 CEST;
* an ambiguous local time (inside a backward jump) resolves to its first
  occurrence, e.g. 02:30 on the autumn transition is 02:30 CEST (00:30 UTC).
"""

import re
from datetime import date, datetime, time, timedelta, timezone
from functools import lru_cache
from typing import Tuple, Union

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from salon_scheduler.core.exceptions import (
    InvalidRange,
    InvalidTimeFormat,
    UnknownTimezone,
)

MINUTES_IN_DAY = 24 * 60

_LOCAL_TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")

LocalTime = Union[str, int]


def parse_local_time(value: str) -> int:
    """``HH:mm`` → minutes since midnight."""
    if not isinstance(value, str):
        raise InvalidTimeFormat(value)
    match = _LOCAL_TIME_PATTERN.match(value)
    if not match:
        raise InvalidTimeFormat(value)
    return int(match.group(1)) * 60 + int(match.group(2))


def format_local_time(minutes: int) -> str:
    """Minutes since midnight → ``HH:mm``, wrapping at 24 hours."""
    minutes %= MINUTES_IN_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def is_valid_time_format(value: str) -> bool:
    return isinstance(value, str) and bool(_LOCAL_TIME_PATTERN.match(value))


def is_valid_range(start: str, end: str) -> bool:
    """True iff both values parse and ``start < end``."""
    if not (is_valid_time_format(start) and is_valid_time_format(end)):
        return False
    return parse_local_time(start) < parse_local_time(end)


def require_range(start: str, end: str, context: str = "") -> Tuple[int, int]:
    """Parse a local range, raising ``InvalidRange`` when ``start >= end``."""
    start_minutes = parse_local_time(start)
    end_minutes = parse_local_time(end)
    if start_minutes >= end_minutes:
        raise InvalidRange(start, end, context)
    return start_minutes, end_minutes


@lru_cache(maxsize=64)
def get_zone(name: str) -> ZoneInfo:
    if not name:
        raise UnknownTimezone(name)
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise UnknownTimezone(name) from e


def day_of_week(on_date: date) -> int:
    """Day of week with 0 = Sunday … 6 = Saturday."""
    return (on_date.weekday() + 1) % 7


def _as_minutes(local_time: LocalTime) -> int:
    if isinstance(local_time, int):
        return local_time
    return parse_local_time(local_time)


def _wall_clock(on_date: date, local_time: LocalTime, zone: ZoneInfo, fold: int = 0):
    # Minute values past midnight roll over to the following dates.
    minutes = _as_minutes(local_time)
    day_offset, minute_of_day = divmod(minutes, MINUTES_IN_DAY)
    target = on_date + timedelta(days=day_offset)
    return datetime.combine(
        target,
        time(minute_of_day // 60, minute_of_day % 60, fold=fold),
        tzinfo=zone,
    )


def is_nonexistent_local_time(on_date: date, local_time: LocalTime, zone_name: str) -> bool:
    """True when the wall-clock time is skipped by a forward DST jump."""
    zone = get_zone(zone_name)
    wall = _wall_clock(on_date, local_time, zone)
    round_trip = wall.astimezone(timezone.utc).astimezone(zone)
    return round_trip.replace(tzinfo=None) != wall.replace(tzinfo=None)


def is_ambiguous_local_time(on_date: date, local_time: LocalTime, zone_name: str) -> bool:
    """True when the wall-clock time occurs twice because of a backward DST jump."""
    zone = get_zone(zone_name)
    first = _wall_clock(on_date, local_time, zone, fold=0)
    second = _wall_clock(on_date, local_time, zone, fold=1)
    return first.utcoffset() != second.utcoffset() and not is_nonexistent_local_time(
        on_date, local_time, zone_name
    )


def to_utc_instant(on_date: date, local_time: LocalTime, zone_name: str) -> datetime:
    """Resolve a salon wall-clock time on ``on_date`` to an absolute UTC instant.

    ``local_time`` is an ``HH:mm`` string or minutes since midnight (values of
    1440 and above land on the following day). ``fold=0`` gives PEP 495
    semantics that match the DST rules in the module docstring: the
    pre-transition offset for gaps (shift forward) and the first occurrence
    for folds.
    """
    zone = get_zone(zone_name)
    return _wall_clock(on_date, local_time, zone, fold=0).astimezone(timezone.utc)


def to_local(instant: datetime, zone_name: str) -> Tuple[date, str]:
    """Inverse of ``to_utc_instant``: UTC instant → (local date, ``HH:mm``)."""
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"Naive datetime is not an instant: {instant!r}")
    local = instant.astimezone(get_zone(zone_name))
    return local.date(), f"{local.hour:02d}:{local.minute:02d}"


def local_date_of(instant: datetime, zone_name: str) -> date:
    return to_local(instant, zone_name)[0]


def local_day_bounds_utc(on_date: date, zone_name: str) -> Tuple[datetime, datetime]:
    """UTC instants of local midnight on ``on_date`` and on the next day."""
    return (
        to_utc_instant(on_date, 0, zone_name),
        to_utc_instant(on_date, MINUTES_IN_DAY, zone_name),
    )


def minutes_between(start: datetime, end: datetime) -> int:
    return int((end - start).total_seconds() // 60)


def iter_dates(start_date: date, end_date: date):
    """Yield every date in the inclusive range."""
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)
