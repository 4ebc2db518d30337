# checkin_scheduler/api/routes/internal.py
from datetime import datetime, timedelta, timezone
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from checkin_scheduler.api.dependencies.internal_auth import verify_internal_api_key
from checkin_scheduler.core.config import get_settings
from checkin_scheduler.core.exceptions import InvalidTimezoneError
from checkin_scheduler.db.session import get_db
from checkin_scheduler.schemas.schedule import (
    BulkGenerationSummary,
    DryRunRequest,
    GenerationResult,
    PreviewEntry,
)
from checkin_scheduler.services.dry_run import dry_run_meeting_generation
from checkin_scheduler.services.meeting_generator import (
    ensure_all_team_meetings,
    ensure_team_meetings,
)
from checkin_scheduler.services.timezone_converter import as_utc
from checkin_scheduler.services.timezone_resolver import (
    SettingsTimezoneResolver,
    get_timezone_resolver,
)

router = APIRouter(
    prefix="/internal",
    tags=["Internal"],
    dependencies=[Depends(verify_internal_api_key)],
)


# Accepted window years; offset arithmetic near datetime.min/max overflows
MIN_WINDOW_YEAR = 1900
MAX_WINDOW_YEAR = 2999


def _check_year(value: datetime | None, name: str) -> None:
    if value is not None and not MIN_WINDOW_YEAR <= value.year <= MAX_WINDOW_YEAR:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail=f"Window {name} must fall between years {MIN_WINDOW_YEAR} and {MAX_WINDOW_YEAR}.",
        )


def _resolve_window(start: datetime | None, end: datetime | None) -> tuple[datetime, datetime]:
    _check_year(start, "start")
    _check_year(end, "end")
    start = as_utc(start) if start else datetime.now(tz=timezone.utc)
    if end is None:
        end = start + timedelta(days=get_settings().GENERATION_LOOKAHEAD_DAYS)
    end = as_utc(end)
    if end <= start:
        raise HTTPException(
            status_code=HTTPStatus.BAD_REQUEST,
            detail="Window end must be after window start.",
        )
    return start, end


@router.post(
    "/teams/{team_id}/generate-meetings",
    response_model=GenerationResult,
    status_code=HTTPStatus.OK,
    summary="Generate check-in meetings for one team",
    description=(
        "Ensures every check-in meeting of the team inside `[start, end)` exists "
        "exactly once. Safe to call repeatedly: meetings that already exist (on the "
        "same local calendar day) are skipped, never duplicated or updated.\n\n"
        "- `start` defaults to now.\n"
        "- `end` defaults to `start + GENERATION_LOOKAHEAD_DAYS`.\n"
        "- A window entirely in the past produces nothing.\n"
        "- An unknown team produces an empty result."
    ),
    responses={
        200: {
            "description": "Generation executed. A summary is returned.",
            "content": {
                "application/json": {
                    "example": {
                        "created_count": 2,
                        "created_ids": [41, 42],
                        "preview": [
                            "2026-11-02T09:00:00.000Z",
                            "2026-11-09T09:00:00.000Z",
                        ],
                    }
                }
            },
        },
        400: {"description": "Window end is not after window start, or a bound is out of range."},
        401: {"description": "Missing or invalid internal API key (if configured)."},
    },
)
async def generate_team_meetings(
    team_id: int = Path(..., ge=1, description="Team identifier."),
    start: datetime | None = Query(
        default=None,
        description="Window start (ISO-8601). Naive values are read as UTC.",
    ),
    end: datetime | None = Query(
        default=None,
        description="Window end, exclusive (ISO-8601). Naive values are read as UTC.",
    ),
    db: AsyncSession = Depends(get_db),
    tz_resolver: SettingsTimezoneResolver = Depends(get_timezone_resolver),
) -> GenerationResult:
    """
    Run idempotent meeting generation for a single team.
    """
    window_start, window_end = _resolve_window(start, end)
    return await ensure_team_meetings(
        db,
        team_id,
        window_start,
        window_end,
        tz_resolver=tz_resolver,
    )


@router.post(
    "/generate-meetings",
    response_model=BulkGenerationSummary,
    status_code=HTTPStatus.OK,
    summary="Generate check-in meetings for all teams (rolling window)",
    description=(
        "Internal-only endpoint intended for scheduled/cron usage.\n\n"
        "Generates meetings for every configured team over `[now, now + lookahead_days)`. "
        "A failure for one team is logged and does not abort the run."
    ),
    responses={
        401: {"description": "Missing or invalid internal API key (if configured)."},
    },
)
async def generate_all_meetings(
    lookahead_days: int | None = Query(
        default=None,
        ge=1,
        le=730,
        description="Override of GENERATION_LOOKAHEAD_DAYS for this run.",
    ),
    db: AsyncSession = Depends(get_db),
    tz_resolver: SettingsTimezoneResolver = Depends(get_timezone_resolver),
) -> BulkGenerationSummary:
    """
    Rolling generation across all teams.
    """
    return await ensure_all_team_meetings(
        db,
        lookahead_days=lookahead_days,
        tz_resolver=tz_resolver,
    )


@router.post(
    "/meetings/dry-run",
    response_model=list[PreviewEntry],
    status_code=HTTPStatus.OK,
    summary="Preview a schedule configuration without persisting anything",
    description=(
        "Runs the exact calculation used by real generation for the supplied "
        "configuration and returns the first `count` meetings as local and UTC "
        "timestamps. Nothing is written to the database."
    ),
    responses={
        200: {
            "description": "Preview computed.",
            "content": {
                "application/json": {
                    "example": [
                        {"local": "2026-11-02T09:00", "utc": "2026-11-02T09:00:00.000Z"},
                    ]
                }
            },
        },
        400: {"description": "Unknown timezone, empty window or out-of-range window bound."},
    },
)
async def dry_run(
    payload: DryRunRequest,
    tz_resolver: SettingsTimezoneResolver = Depends(get_timezone_resolver),
) -> list[PreviewEntry]:
    """
    Dry-run generation for configuration testing UIs.
    """
    start, end = _resolve_window(payload.start, payload.end)
    tz = payload.timezone or tz_resolver(payload.config.organization_id)
    try:
        return dry_run_meeting_generation(
            payload.config,
            start,
            end,
            tz,
            count=payload.count,
        )
    except InvalidTimezoneError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=exc.message) from exc
