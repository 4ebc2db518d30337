# checkin_scheduler/services/recurrence_calculator.py
"""
Pure calculation of candidate meeting instants for a team configuration.

Nothing here touches the database; the same function backs real generation
and every preview surface.
"""
from __future__ import annotations

import calendar
import logging
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

from checkin_scheduler.schemas.schedule import (
    LAST_WEEK,
    Cadence,
    GenerationWindow,
    TeamScheduleConfig,
)
from checkin_scheduler.services.timezone_converter import get_zone, to_utc

logger = logging.getLogger(__name__)

# Guard against malformed configuration or absurd windows.
MAX_CANDIDATES = 1000

# Day-of-week numbering is 0=Sunday ... 6=Saturday throughout.
MONDAY = 1
DEFAULT_WEEK_OF_MONTH = 1
DEFAULT_ANCHOR_MONTH = 1

MONTH_INTERVALS = {
    Cadence.MONTHLY: 1,
    Cadence.QUARTERLY: 3,
    Cadence.HALF_YEARLY: 6,
    Cadence.ANNUAL: 12,
}


def day_of_week(day: date) -> int:
    """Weekday of `day` with 0=Sunday ... 6=Saturday."""
    return day.isoweekday() % 7


def clamped_day_of_month(year: int, month: int, day: int) -> int:
    """Clamp `day` down to the last valid day of the month. Never rolls over."""
    return min(day, calendar.monthrange(year, month)[1])


def nth_weekday_of_month(
    year: int,
    month: int,
    week_of_month: Union[int, str],
    dow: int,
) -> Optional[date]:
    """
    Return the Nth (1-indexed) or last `dow` of the month.

    None when the month has fewer matching weekdays than requested.
    """
    last_day = calendar.monthrange(year, month)[1]
    matches = [
        date(year, month, day)
        for day in range(1, last_day + 1)
        if day_of_week(date(year, month, day)) == dow
    ]
    if week_of_month == LAST_WEEK:
        return matches[-1] if matches else None
    if isinstance(week_of_month, int) and 1 <= week_of_month <= len(matches):
        return matches[week_of_month - 1]
    return None


# ---------------------------------------------------------------------------
# Day-selection strategies and month filter
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExactDayOfMonth:
    day: int

    def select(self, year: int, month: int) -> Optional[date]:
        return date(year, month, clamped_day_of_month(year, month, self.day))


@dataclass(frozen=True)
class NthWeekdayOfMonth:
    week_of_month: Union[int, str]
    dow: int

    def select(self, year: int, month: int) -> Optional[date]:
        return nth_weekday_of_month(year, month, self.week_of_month, self.dow)


@dataclass(frozen=True)
class MonthFilter:
    """Accept months that are a multiple of `interval` months from `anchor_month`."""

    interval: int
    anchor_month: int = DEFAULT_ANCHOR_MONTH

    def accepts(self, month: int) -> bool:
        return ((month - self.anchor_month) % 12) % self.interval == 0


def day_selector_for(config: TeamScheduleConfig) -> Union[ExactDayOfMonth, NthWeekdayOfMonth]:
    if config.anchor_day_of_month:
        return ExactDayOfMonth(config.anchor_day_of_month)
    week = config.anchor_week_of_month if config.anchor_week_of_month is not None else DEFAULT_WEEK_OF_MONTH
    dow = config.anchor_day_of_week if config.anchor_day_of_week is not None else MONDAY
    return NthWeekdayOfMonth(week, dow)


def month_filter_for(cadence: Cadence, config: TeamScheduleConfig) -> MonthFilter:
    interval = MONTH_INTERVALS[cadence]
    if interval == 1:
        return MonthFilter(1)
    anchor = config.anchor_month if config.anchor_month is not None else DEFAULT_ANCHOR_MONTH
    return MonthFilter(interval, anchor)


# ---------------------------------------------------------------------------
# Local date enumeration
# ---------------------------------------------------------------------------

def _every_day(first: date, last: date) -> Iterator[date]:
    current = first
    while current <= last:
        yield current
        current += timedelta(days=1)


def _every_weekday(first: date, last: date, dow: int, step_days: int) -> Iterator[date]:
    current = first + timedelta(days=(dow - day_of_week(first)) % 7)
    while current <= last:
        yield current
        current += timedelta(days=step_days)


def _every_selected_month_day(
    first: date,
    last: date,
    selector: Union[ExactDayOfMonth, NthWeekdayOfMonth],
    month_filter: MonthFilter,
) -> Iterator[date]:
    first_index = first.year * 12 + first.month - 1
    last_index = last.year * 12 + last.month - 1
    for index in range(first_index, last_index + 1):
        year, month = divmod(index, 12)
        month += 1
        if not month_filter.accepts(month):
            continue
        selected = selector.select(year, month)
        if selected is not None:
            yield selected


def resolve_cadence(config: TeamScheduleConfig) -> Optional[Cadence]:
    """Return the Cadence member for the config, or None if unrecognised."""
    try:
        return Cadence(config.cadence)
    except ValueError:
        return None


def candidate_local_dates(config: TeamScheduleConfig, first: date, last: date) -> Iterator[date]:
    """
    Enumerate local calendar dates (inclusive range) on which the configured
    cadence places a meeting, in ascending order.
    """
    cadence = resolve_cadence(config)
    dow = config.anchor_day_of_week if config.anchor_day_of_week is not None else MONDAY

    if cadence is Cadence.DAILY:
        return _every_day(first, last)
    if cadence is Cadence.WEEKLY:
        return _every_weekday(first, last, dow, 7)
    if cadence is Cadence.BI_WEEKLY:
        return _every_weekday(first, last, dow, 14)
    if cadence in MONTH_INTERVALS:
        return _every_selected_month_day(
            first,
            last,
            day_selector_for(config),
            month_filter_for(cadence, config),
        )

    logger.warning(
        "Unrecognised cadence %r for team %s; falling back to weekly on Monday",
        config.cadence,
        config.team_id,
    )
    return _every_weekday(first, last, MONDAY, 7)


def calculate_meeting_dates(
    config: TeamScheduleConfig,
    window: GenerationWindow,
    tz: str,
    now: Optional[datetime] = None,
) -> list[datetime]:
    """
    Compute the ascending list of UTC meeting instants for `config`.

    Every returned instant lies in `[window.start, window.end)` and is not
    earlier than `now`, independently of any clipping done by the caller.
    """
    now = now or datetime.now(tz=timezone.utc)
    zone = get_zone(tz)
    first = window.start.astimezone(zone).date()
    last = window.end.astimezone(zone).date()

    hour = config.meeting_time.hour
    minute = config.meeting_time.minute

    dates: list[datetime] = []
    for local_day in candidate_local_dates(config, first, last):
        utc_date = to_utc(local_day.year, local_day.month, local_day.day, hour, minute, tz)
        if not (window.start <= utc_date < window.end and utc_date >= now):
            continue
        if dates and utc_date <= dates[-1]:
            continue
        if len(dates) >= MAX_CANDIDATES:
            logger.warning(
                "Degenerate schedule for team %s: candidate limit %d reached at %s; "
                "returning partial list",
                config.team_id,
                MAX_CANDIDATES,
                local_day.isoformat(),
            )
            break
        dates.append(utc_date)

    logger.debug(
        "Calculated %d %s meeting dates for team %s in %s",
        len(dates),
        config.cadence,
        config.team_id,
        tz,
    )
    return dates
