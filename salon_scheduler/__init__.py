"""Appointment scheduling and availability core for the salon booking platform."""

from salon_scheduler.services.scheduling import SchedulingEngineService

__version__ = "1.0.0"

__all__ = ["SchedulingEngineService", "__version__"]
