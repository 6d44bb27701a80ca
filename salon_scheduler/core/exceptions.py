"""Errors raised by the scheduling core.

Missing schedule data is never an error (it resolves to a closed day), and
DST edge cases are resolved deterministically. Only malformed records and
unknown time zones surface here.
"""


class SchedulingError(ValueError):
    """Base class for scheduling core errors."""


class InvalidTimeFormat(SchedulingError):
    """Raised when a local wall-clock value is not a valid ``HH:mm`` string."""

    def __init__(self, value):
        self.value = value
        super().__init__(f"Invalid time format (HH:mm expected): {value!r}")


class InvalidRange(SchedulingError):
    """Raised when a working or custom hours record has ``start >= end``."""

    def __init__(self, start: str, end: str, context: str = ""):
        self.start = start
        self.end = end
        self.context = context
        message = f"Start time {start} must be before end time {end}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)


class UnknownTimezone(SchedulingError):
    """Raised when a salon time zone is not in the tz database."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown IANA time zone: {name!r}")
