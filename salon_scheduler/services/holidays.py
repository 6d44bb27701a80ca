from datetime import date
from functools import lru_cache
from typing import Optional

import holidays
import structlog

logger = structlog.get_logger(__name__)


class HolidayCalendar:
    """Public holidays of one country, treated as salon-wide closures.

    Uses the `holidays` library; ``country`` is an ISO 3166 code such as
    "PL" and ``subdivision`` an optional region code.
    """

    def __init__(self, country: str, subdivision: Optional[str] = None):
        self.country = country.upper()
        self.subdivision = subdivision

    @staticmethod
    @lru_cache(maxsize=32)
    def _country_holidays(
        country: str, subdivision: Optional[str], year: int
    ) -> holidays.HolidayBase:
        return holidays.country_holidays(country, subdiv=subdivision, years=year)

    def _calendar(self, year: int) -> holidays.HolidayBase:
        return self._country_holidays(self.country, self.subdivision, year)

    def is_holiday(self, on_date: date) -> bool:
        return on_date in self._calendar(on_date.year)

    def get_holiday_name(self, on_date: date) -> Optional[str]:
        return self._calendar(on_date.year).get(on_date)

    @classmethod
    def from_settings(cls, config) -> Optional["HolidayCalendar"]:
        """Build the calendar configured in settings, or None when disabled."""
        if not config.HOLIDAY_COUNTRY:
            return None
        try:
            calendar = cls(config.HOLIDAY_COUNTRY, config.HOLIDAY_SUBDIVISION)
            calendar._calendar(date.today().year)
        except NotImplementedError:
            logger.error(
                "Unsupported holiday country",
                country=config.HOLIDAY_COUNTRY,
                subdivision=config.HOLIDAY_SUBDIVISION,
            )
            raise
        return calendar
