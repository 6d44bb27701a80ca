"""Half-open interval overlap checks between bookings.

Two intervals ``[s1, e1)`` and ``[s2, e2)`` conflict iff ``s1 < e2 and
s2 < e1``. Back-to-back bookings (one ends exactly when the other starts) do
not conflict.
"""

from datetime import datetime, timedelta
from typing import Iterable, List

import structlog

from salon_scheduler.schemas.appointment import AppointmentView

logger = structlog.get_logger(__name__)


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    return start_a < end_b and start_b < end_a


class ConflictDetector:
    """Finds existing non-cancelled appointments overlapping a proposal.

    ``buffer_minutes`` keeps that much idle time after the proposal and after
    every existing appointment. Whether a conflict blocks the booking is the
    caller's decision.
    """

    def __init__(self, buffer_minutes: int = 0):
        if buffer_minutes < 0:
            raise ValueError("buffer_minutes must be a non-negative integer")
        self.buffer = timedelta(minutes=buffer_minutes)

    def conflicts_with(
        self, start_utc: datetime, end_utc: datetime, appointment: AppointmentView
    ) -> bool:
        if not appointment.is_active:
            return False
        return intervals_overlap(
            start_utc,
            end_utc + self.buffer,
            appointment.start_utc,
            appointment.end_utc + self.buffer,
        )

    def find_conflicts(
        self,
        start_utc: datetime,
        end_utc: datetime,
        appointments: Iterable[AppointmentView],
    ) -> List[AppointmentView]:
        conflicts = [
            appointment
            for appointment in appointments
            if self.conflicts_with(start_utc, end_utc, appointment)
        ]
        if conflicts:
            logger.debug(
                "Found conflicting appointments",
                start=start_utc.isoformat(),
                end=end_utc.isoformat(),
                appointment_ids=[a.id for a in conflicts],
            )
        return conflicts

    def has_conflict(
        self,
        start_utc: datetime,
        end_utc: datetime,
        appointments: Iterable[AppointmentView],
    ) -> bool:
        return any(
            self.conflicts_with(start_utc, end_utc, appointment)
            for appointment in appointments
        )
