# checkin_scheduler/services/timezone_converter.py
"""
Civil (wall-clock) time <-> UTC instant conversion for named IANA zones.

Every instant handled by the scheduler is an aware UTC datetime; local
wall-clock values only exist transiently inside this module.

DST policy
----------
- A wall-clock time that falls inside a spring-forward gap is shifted
  forward by the length of the gap (01:30 in a 01:00 -> 02:00 gap becomes
  02:30 local).
- A wall-clock time that occurs twice during a fall-back overlap resolves to
  the earlier (first) instant.

Both cases are logged so a team configured at an unlucky time is visible.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from checkin_scheduler.core.exceptions import InvalidTimezoneError

logger = logging.getLogger(__name__)


@lru_cache(maxsize=64)
def get_zone(tz: str) -> ZoneInfo:
    """Return the ZoneInfo for `tz`, raising InvalidTimezoneError if unknown."""
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise InvalidTimezoneError(f"Unknown timezone '{tz}'", details={"timezone": tz}) from exc


def as_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        # Naive values coming back from the store are UTC by convention.
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def _wall_clock(instant: datetime, zone: ZoneInfo) -> datetime:
    return instant.astimezone(zone).replace(tzinfo=None)


def to_utc(year: int, month: int, day: int, hour: int, minute: int, tz: str) -> datetime:
    """
    Resolve civil time in `tz` to the matching UTC instant.

    A trial instant is built by reading the components as if they were UTC,
    rendered back in `tz`, and the discrepancy between the rendering and the
    requested wall clock is applied as a correction. The correction is the
    offset in effect on that calendar date, not a fixed one.
    """
    zone = get_zone(tz)
    desired = datetime(year, month, day, hour, minute)
    trial = desired.replace(tzinfo=timezone.utc)

    discrepancy = _wall_clock(trial, zone) - desired
    candidate = trial - discrepancy

    # The first correction uses the offset at the trial instant, which is
    # wrong when a transition lies between the trial and the answer.
    # A second pass settles it.
    rendered = _wall_clock(candidate, zone)
    if rendered != desired:
        candidate = candidate - (rendered - desired)
        rendered = _wall_clock(candidate, zone)

    if rendered != desired:
        # Spring-forward gap: use the offset in effect before the transition.
        before = (candidate - timedelta(days=1)).astimezone(zone).utcoffset()
        candidate = trial - before
        logger.info(
            "Local time %s does not exist in %s (DST gap); using %s",
            desired.isoformat(),
            tz,
            _wall_clock(candidate, zone).isoformat(),
        )
        return candidate

    # An overlap means the same wall clock also exists one offset-step earlier.
    for step in (timedelta(minutes=30), timedelta(hours=1), timedelta(hours=2)):
        earlier = candidate - step
        if _wall_clock(earlier, zone) == desired:
            logger.info(
                "Local time %s is ambiguous in %s (DST overlap); using the earlier instant",
                desired.isoformat(),
                tz,
            )
            return earlier

    return candidate


def local_date_key(instant: datetime, tz: str) -> str:
    """Calendar date ("YYYY-MM-DD") of `instant` rendered in `tz`."""
    return as_utc(instant).astimezone(get_zone(tz)).date().isoformat()


def start_of_local_day(instant: datetime, tz: str) -> datetime:
    """UTC instant of local midnight on the local date containing `instant`."""
    local = as_utc(instant).astimezone(get_zone(tz))
    return to_utc(local.year, local.month, local.day, 0, 0, tz)


def format_local(instant: datetime, tz: str) -> str:
    """Render `instant` as local wall-clock "YYYY-MM-DDTHH:MM" in `tz`."""
    return as_utc(instant).astimezone(get_zone(tz)).strftime("%Y-%m-%dT%H:%M")


def format_utc(instant: datetime) -> str:
    """ISO-8601 rendering of `instant` in UTC with a trailing Z."""
    return as_utc(instant).isoformat(timespec="milliseconds").replace("+00:00", "Z")
