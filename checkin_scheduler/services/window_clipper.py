# checkin_scheduler/services/window_clipper.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from checkin_scheduler.schemas.schedule import GenerationWindow
from checkin_scheduler.services.timezone_converter import start_of_local_day

logger = logging.getLogger(__name__)


def clip_window(
    window: GenerationWindow,
    now: datetime,
    tz: str,
) -> Optional[GenerationWindow]:
    """
    Adjust a generation window so it never reaches into already-past local time.

    Rules
    -----
    - `end < now`            => None (purely past windows are never regenerated)
    - `start < now <= end`   => start becomes local midnight "today" in `tz`
    - otherwise              => window unchanged
    """
    if window.end < now:
        logger.debug(
            "Skipping past window end=%s now=%s",
            window.end.isoformat(),
            now.isoformat(),
        )
        return None

    if window.start < now:
        clipped_start = start_of_local_day(now, tz)
        logger.debug(
            "Window straddles now: clipping start %s -> %s (local midnight in %s)",
            window.start.isoformat(),
            clipped_start.isoformat(),
            tz,
        )
        return GenerationWindow(start=clipped_start, end=window.end)

    return window
