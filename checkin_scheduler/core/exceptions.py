# checkin_scheduler/core/exceptions.py
from typing import Any, Optional


class SchedulerError(Exception):
    """Base exception for the check-in scheduler."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidTimezoneError(SchedulerError):
    """The configured timezone name is not a known IANA zone."""

    pass


class ConfigurationNotFoundError(SchedulerError):
    """No schedule configuration exists for the requested team."""

    pass


class InvalidConfigurationError(SchedulerError):
    """A stored team configuration has anchors outside their valid ranges."""

    pass
