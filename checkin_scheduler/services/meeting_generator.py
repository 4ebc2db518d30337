# checkin_scheduler/services/meeting_generator.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checkin_scheduler.core.config import get_settings
from checkin_scheduler.core.exceptions import InvalidConfigurationError
from checkin_scheduler.schemas.schedule import (
    BulkGenerationSummary,
    GenerationResult,
    GenerationWindow,
    TeamScheduleConfig,
)
from checkin_scheduler.services.recurrence_calculator import calculate_meeting_dates
from checkin_scheduler.services.stores import OccurrenceStore, TeamConfigStore
from checkin_scheduler.services.timezone_converter import format_utc, local_date_key
from checkin_scheduler.services.timezone_resolver import (
    OrgTimezoneResolver,
    get_timezone_resolver,
)
from checkin_scheduler.services.window_clipper import clip_window

logger = logging.getLogger(__name__)


def meeting_title(config: TeamScheduleConfig) -> str:
    return f"{config.name} Check-in"


def meeting_description(config: TeamScheduleConfig) -> str:
    return f"Regular {config.cadence} check-in meeting for {config.name}"


async def ensure_team_meetings(
    db: AsyncSession,
    team_id: int,
    start: datetime,
    end: datetime,
    *,
    tz_resolver: Optional[OrgTimezoneResolver] = None,
    now: Optional[datetime] = None,
) -> GenerationResult:
    """
    Make sure every check-in meeting of a team inside `[start, end)` exists
    exactly once.

    Behavior
    --------
    - A window ending before `now` short-circuits to an empty result.
    - A missing or uninterpretable team configuration is logged and yields an
      empty result.
    - The window is clipped to local midnight "today" when it straddles `now`.
    - For each candidate (ascending):
        1) Compute its local date key in the organization timezone.
        2) Skip it if a meeting already exists on that local day.
        3) Insert-if-absent keyed by (organization_id, team_id, scheduled_utc);
           only rows actually inserted are counted.
    - A failed insert is logged with team/date context and skipped; the run
      continues with the remaining candidates.

    Parameters
    ----------
    db:
        Open AsyncSession used for queries and persistence.
    team_id:
        Team whose meetings should be generated.
    start, end:
        Aware UTC window boundaries, `end` exclusive.
    tz_resolver:
        Organization timezone lookup. Defaults to the settings-backed resolver.
    now:
        Reference "current" instant. Defaults to the wall clock.

    Returns
    -------
    GenerationResult:
        Inserted count and ids, plus ISO timestamps of every candidate considered.
    """
    now = now or datetime.now(tz=timezone.utc)
    window = GenerationWindow(start=start, end=end)

    if window.end < now:
        logger.info(
            "Skipping generation for team %s: window ended at %s (past)",
            team_id,
            window.end.isoformat(),
        )
        return GenerationResult()

    try:
        config = await TeamConfigStore(db).get(team_id)
    except InvalidConfigurationError as exc:
        logger.warning(
            "Degenerate configuration for team %s (invalid fields: %s); no meetings generated",
            team_id,
            ", ".join(exc.details["fields"]),
        )
        return GenerationResult()

    if config is None:
        logger.warning("Team %s not found; no meetings generated", team_id)
        return GenerationResult()

    resolver = tz_resolver or get_timezone_resolver()
    tz = resolver(config.organization_id)

    effective = clip_window(window, now, tz)
    if effective is None:
        return GenerationResult()

    meeting_dates = calculate_meeting_dates(config, effective, tz, now=now)
    preview = [format_utc(d) for d in meeting_dates]

    store = OccurrenceStore(db)
    created_ids: list[int] = []
    skipped_days: list[str] = []

    for scheduled in meeting_dates:
        date_key = local_date_key(scheduled, tz)

        existing = await store.exists_on_local_day(config.organization_id, team_id, date_key)
        if existing is not None:
            skipped_days.append(date_key)
            logger.debug(
                "Skipping duplicate local day %s for team %s (existing=%s candidate=%s)",
                date_key,
                team_id,
                existing,
                format_utc(scheduled),
            )
            continue

        try:
            async with db.begin_nested():
                new_id = await store.insert_if_absent(
                    organization_id=config.organization_id,
                    team_id=team_id,
                    scheduled_utc=scheduled,
                    local_date_key=date_key,
                    title=meeting_title(config),
                    description=meeting_description(config),
                )
        except SQLAlchemyError:
            logger.exception(
                "Failed to create meeting for team %s on %s (%s)",
                team_id,
                date_key,
                format_utc(scheduled),
            )
            continue

        if new_id is not None:
            created_ids.append(new_id)

    await db.commit()

    logger.info(
        "Generated %d new meetings for team %s (%d candidates, %d skipped as local-day duplicates)",
        len(created_ids),
        team_id,
        len(meeting_dates),
        len(skipped_days),
    )
    return GenerationResult(
        created_count=len(created_ids),
        created_ids=created_ids,
        preview=preview,
    )


async def ensure_all_team_meetings(
    db: AsyncSession,
    *,
    lookahead_days: Optional[int] = None,
    tz_resolver: Optional[OrgTimezoneResolver] = None,
    now: Optional[datetime] = None,
) -> BulkGenerationSummary:
    """
    Rolling generation over every configured team for `[now, now + lookahead)`.

    Intended for a periodic trigger. A failure for one team is logged and the
    remaining teams are still processed.
    """
    now = now or datetime.now(tz=timezone.utc)
    lookahead_days = lookahead_days or get_settings().GENERATION_LOOKAHEAD_DAYS
    window = GenerationWindow(start=now, end=now + timedelta(days=lookahead_days))
    resolver = tz_resolver or get_timezone_resolver()

    team_ids = await TeamConfigStore(db).list_team_ids()
    results: dict[int, GenerationResult] = {}

    for team_id in team_ids:
        try:
            results[team_id] = await ensure_team_meetings(
                db,
                team_id,
                window.start,
                window.end,
                tz_resolver=resolver,
                now=now,
            )
        except SQLAlchemyError:
            logger.exception("Meeting generation failed for team %s", team_id)
            await db.rollback()

    return BulkGenerationSummary(
        window=window,
        teams_evaluated=len(team_ids),
        created_count=sum(r.created_count for r in results.values()),
        results=results,
    )
