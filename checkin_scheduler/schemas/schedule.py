# checkin_scheduler/schemas/schedule.py
from __future__ import annotations

from datetime import datetime, time
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator, model_validator

LAST_WEEK = "last"


class Cadence(str, Enum):
    """
    Named repetition patterns supported by the meeting generator.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi_weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    HALF_YEARLY = "half_yearly"
    ANNUAL = "annual"


class TeamScheduleConfig(BaseModel):
    """
    Recurrence configuration of a single team.

    Absent anchors default to Monday / first week / January as appropriate
    to the cadence. For month-based cadences `anchor_day_of_month` wins when
    set; otherwise `(anchor_week_of_month, anchor_day_of_week)` selects the day.
    """

    team_id: int | None = Field(None, description="Team identifier (absent for dry runs).")
    organization_id: int | None = Field(None, description="Owning organization identifier.")
    name: str = Field("Team", description="Team display name, used in meeting titles.")

    cadence: str = Field(
        Cadence.WEEKLY.value,
        description=(
            "One of daily, weekly, bi_weekly, monthly, quarterly, half_yearly, annual. "
            "Unrecognised values fall back to weekly on Monday."
        ),
        examples=["weekly"],
    )
    meeting_time: time = Field(
        time(9, 0),
        description="Local wall-clock meeting time (HH:MM:SS).",
        examples=["09:00:00"],
    )
    anchor_day_of_week: int | None = Field(
        None, ge=0, le=6, description="0=Sunday ... 6=Saturday. Defaults to Monday."
    )
    anchor_week_of_month: Union[int, Literal["last"], None] = Field(
        None,
        description='1-4 for the Nth weekday of the month, or "last". Defaults to 1.',
    )
    anchor_day_of_month: int | None = Field(
        None, ge=1, le=31, description="Exact day of month (clamped to the month length)."
    )
    anchor_month: int | None = Field(
        None,
        ge=1,
        le=12,
        description="First month of the cycle for quarterly/half_yearly/annual. Defaults to 1.",
    )

    @field_validator("anchor_week_of_month", mode="before")
    @classmethod
    def _normalize_week_of_month(cls, value):
        # Stored as -1 for "last"
        if value == -1 or (isinstance(value, str) and value.lower() == LAST_WEEK):
            return LAST_WEEK
        if isinstance(value, str) and value.isdigit():
            value = int(value)
        if isinstance(value, int) and not 1 <= value <= 4:
            raise ValueError('anchor_week_of_month must be 1-4 or "last"')
        return value

    @field_validator("cadence", mode="before")
    @classmethod
    def _normalize_cadence(cls, value):
        if isinstance(value, Cadence):
            return value.value
        return value

    @classmethod
    def from_team(cls, team) -> "TeamScheduleConfig":
        """
        Build a config from a `Team` ORM row.
        """
        return cls(
            team_id=team.id,
            organization_id=team.organization_id,
            name=team.name,
            cadence=team.cadence,
            meeting_time=team.meeting_time,
            anchor_day_of_week=team.anchor_day_of_week,
            anchor_week_of_month=team.anchor_week_of_month,
            anchor_day_of_month=team.anchor_day_of_month,
            anchor_month=team.anchor_month,
        )


class GenerationWindow(BaseModel):
    """
    Half-open window `[start, end)` of aware UTC instants.
    """

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def _check_aware(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("window boundaries must be timezone-aware")
        return self


class GenerationResult(BaseModel):
    """
    Outcome of one generation run for a single team.
    """

    created_count: int = Field(0, description="Number of meetings actually inserted.", examples=[4])
    created_ids: list[int] = Field(
        default_factory=list,
        description="Identifiers of the inserted meetings.",
    )
    preview: list[str] = Field(
        default_factory=list,
        description="ISO-8601 UTC timestamps of every candidate considered, not only those inserted.",
        examples=[["2026-11-02T09:00:00.000Z"]],
    )


class BulkGenerationSummary(BaseModel):
    """
    Summary returned by the rolling generation trigger over all teams.
    """

    window: GenerationWindow
    teams_evaluated: int = Field(..., description="Number of teams processed.", examples=[3])
    created_count: int = Field(..., description="Total meetings inserted across teams.", examples=[12])
    results: dict[int, GenerationResult] = Field(
        default_factory=dict,
        description="Per-team results keyed by team id. Teams that failed are absent.",
    )


class PreviewEntry(BaseModel):
    """
    A candidate meeting rendered both as local wall-clock and UTC.
    """

    local: str = Field(..., description="Local wall-clock time (YYYY-MM-DDTHH:MM).", examples=["2026-11-02T09:00"])
    utc: str = Field(..., description="UTC instant (ISO-8601).", examples=["2026-11-02T09:00:00.000Z"])


class DryRunRequest(BaseModel):
    """
    Payload for previewing a configuration without persisting anything.
    """

    config: TeamScheduleConfig
    start: datetime | None = Field(None, description="Window start (defaults to now).")
    end: datetime | None = Field(None, description="Window end, exclusive (defaults to start + lookahead).")
    timezone: str | None = Field(
        None,
        description="IANA timezone; defaults to the organization timezone.",
        examples=["Europe/London"],
    )
    count: int = Field(3, ge=1, le=100, description="Maximum number of entries to return.")
