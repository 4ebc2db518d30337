# checkin_scheduler/api/routes/teams.py
from http import HTTPStatus

from fastapi import APIRouter, Depends, HTTPException, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from checkin_scheduler.core.config import get_settings
from checkin_scheduler.core.exceptions import (
    ConfigurationNotFoundError,
    InvalidConfigurationError,
)
from checkin_scheduler.db.session import get_db
from checkin_scheduler.schemas.checkin_meeting import CheckInMeetingRead, TeamMeetingPreview
from checkin_scheduler.schemas.schedule import PreviewEntry
from checkin_scheduler.services.dry_run import preview_next_meetings
from checkin_scheduler.services.stores import OccurrenceStore, TeamConfigStore
from checkin_scheduler.services.timezone_converter import format_local, format_utc
from checkin_scheduler.services.timezone_resolver import (
    SettingsTimezoneResolver,
    get_timezone_resolver,
)

router = APIRouter(prefix="/teams", tags=["Teams"])


@router.get(
    "/{team_id}/meeting-preview",
    response_model=TeamMeetingPreview,
    summary="Preview the next meetings of a team",
    description=(
        "Returns the next `count` meetings the stored configuration of the team "
        "would produce over the coming year, rendered as local and UTC timestamps.\n\n"
        "Nothing is persisted; use the internal generation endpoint for that."
    ),
    responses={
        404: {
            "description": "No team exists with the given ID.",
            "content": {
                "application/json": {
                    "example": {"detail": "Team with id 42 not found."},
                }
            },
        },
        422: {"description": "The stored schedule configuration of the team is invalid."},
    },
)
async def get_meeting_preview(
    team_id: int = Path(..., ge=1, description="Team identifier."),
    count: int | None = Query(
        default=None,
        ge=1,
        le=100,
        description="Number of meetings to return (defaults to PREVIEW_COUNT).",
    ),
    db: AsyncSession = Depends(get_db),
    tz_resolver: SettingsTimezoneResolver = Depends(get_timezone_resolver),
) -> TeamMeetingPreview:
    """
    Preview upcoming meetings for a stored team.
    """
    try:
        config = await TeamConfigStore(db).require(team_id)
    except ConfigurationNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=exc.message) from exc
    except InvalidConfigurationError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=exc.message) from exc

    tz = tz_resolver(config.organization_id)
    dates = preview_next_meetings(config, tz, count=count or get_settings().PREVIEW_COUNT)

    return TeamMeetingPreview(
        team_id=team_id,
        timezone=tz,
        cadence=config.cadence,
        meetings=[PreviewEntry(local=format_local(d, tz), utc=format_utc(d)) for d in dates],
    )


@router.get(
    "/{team_id}/meetings",
    response_model=list[CheckInMeetingRead],
    summary="List generated meetings of a team",
    description="Returns every check-in meeting generated for the team, ordered by time.",
    responses={
        404: {"description": "No team exists with the given ID."},
        422: {"description": "The stored schedule configuration of the team is invalid."},
    },
)
async def list_team_meetings(
    team_id: int = Path(..., ge=1, description="Team identifier."),
    db: AsyncSession = Depends(get_db),
) -> list[CheckInMeetingRead]:
    """
    List persisted meetings for a team.
    """
    try:
        config = await TeamConfigStore(db).require(team_id)
    except ConfigurationNotFoundError as exc:
        raise HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=exc.message) from exc
    except InvalidConfigurationError as exc:
        raise HTTPException(status_code=HTTPStatus.UNPROCESSABLE_ENTITY, detail=exc.message) from exc

    meetings = await OccurrenceStore(db).list_for_team(config.organization_id, team_id)
    return [CheckInMeetingRead.model_validate(m) for m in meetings]
