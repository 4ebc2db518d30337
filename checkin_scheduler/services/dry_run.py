# checkin_scheduler/services/dry_run.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from checkin_scheduler.schemas.schedule import (
    GenerationWindow,
    PreviewEntry,
    TeamScheduleConfig,
)
from checkin_scheduler.services.recurrence_calculator import calculate_meeting_dates
from checkin_scheduler.services.timezone_converter import format_local, format_utc
from checkin_scheduler.services.window_clipper import clip_window

logger = logging.getLogger(__name__)

PREVIEW_HORIZON = timedelta(days=365)


def dry_run_meeting_generation(
    config: TeamScheduleConfig,
    start: datetime,
    end: datetime,
    tz: str,
    *,
    count: int = 3,
    now: Optional[datetime] = None,
) -> list[PreviewEntry]:
    """
    Preview the first `count` meetings a configuration would produce, without
    touching the database.

    Uses the exact calculation path of real generation, window clipping
    included, so what an admin sees here is what the scheduler will persist.
    """
    now = now or datetime.now(tz=timezone.utc)
    window = clip_window(GenerationWindow(start=start, end=end), now, tz)
    if window is None:
        return []
    dates = calculate_meeting_dates(config, window, tz, now=now)
    preview = [
        PreviewEntry(local=format_local(d, tz), utc=format_utc(d))
        for d in dates[:count]
    ]
    logger.debug(
        "Dry run for %s (%s) in %s: %s",
        config.name,
        config.cadence,
        tz,
        [p.utc for p in preview],
    )
    return preview


def preview_next_meetings(
    config: TeamScheduleConfig,
    tz: str,
    *,
    count: int = 8,
    now: Optional[datetime] = None,
) -> list[datetime]:
    """
    Next `count` meeting instants over a one-year horizon from `now`.
    """
    now = now or datetime.now(tz=timezone.utc)
    # Starts exactly at now, so clipping would leave it unchanged
    window = GenerationWindow(start=now, end=now + PREVIEW_HORIZON)
    return calculate_meeting_dates(config, window, tz, now=now)[:count]
