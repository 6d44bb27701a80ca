from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Scheduling core settings."""

    # Basic settings
    PROJECT_NAME: str = "Salon Scheduler"
    VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"

    # Slot grid
    SLOT_STEP_MINUTES: int = 15  # booking UI snapping granularity
    DEFAULT_BUFFER_MINUTES: int = 0

    # Request limits
    MAX_SERVICE_DURATION_MINUTES: int = 480
    MAX_BUFFER_MINUTES: int = 60
    MAX_AVAILABLE_DAYS_RANGE: int = 62

    # Time zone used when a snapshot does not carry one
    DEFAULT_TIMEZONE: str = "Europe/Warsaw"

    # Public holidays (python-holidays country code, e.g. "PL")
    HOLIDAY_COUNTRY: Optional[str] = None
    HOLIDAY_SUBDIVISION: Optional[str] = None

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    @field_validator("SLOT_STEP_MINUTES")
    @classmethod
    def validate_step(cls, v: int) -> int:
        if v <= 0 or 1440 % v != 0:
            raise ValueError("SLOT_STEP_MINUTES must be a positive divisor of 1440")
        return v

    @field_validator(
        "DEFAULT_BUFFER_MINUTES",
        "MAX_SERVICE_DURATION_MINUTES",
        "MAX_BUFFER_MINUTES",
        "MAX_AVAILABLE_DAYS_RANGE",
    )
    @classmethod
    def validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be a non-negative integer")
        return v

    @field_validator("HOLIDAY_COUNTRY", "HOLIDAY_SUBDIVISION", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    model_config = {"env_file": ".env", "case_sensitive": True}


# Global settings instance
settings = Settings()
