# checkin_scheduler/services/timezone_resolver.py
from __future__ import annotations

from typing import Mapping, Optional, Protocol

from checkin_scheduler.core.config import get_settings
from checkin_scheduler.services.timezone_converter import get_zone


class OrgTimezoneResolver(Protocol):
    """Anything that maps an organization id to an IANA timezone name."""

    def __call__(self, organization_id: Optional[int]) -> str: ...


class SettingsTimezoneResolver:
    """
    Resolve organization timezones from a default plus explicit overrides.

    Zone names are validated eagerly so a typo in configuration fails at
    construction time instead of in the middle of a generation run.
    """

    def __init__(self, default_tz: str, overrides: Optional[Mapping[int, str]] = None):
        get_zone(default_tz)
        for tz in (overrides or {}).values():
            get_zone(tz)
        self.default_tz = default_tz
        self.overrides = dict(overrides or {})

    def __call__(self, organization_id: Optional[int]) -> str:
        if organization_id is None:
            return self.default_tz
        return self.overrides.get(organization_id, self.default_tz)


def get_timezone_resolver() -> SettingsTimezoneResolver:
    """
    Build the resolver wired to application settings.
    """
    settings = get_settings()
    return SettingsTimezoneResolver(
        default_tz=settings.ORG_TIMEZONE,
        overrides=settings.ORG_TIMEZONE_OVERRIDES,
    )
