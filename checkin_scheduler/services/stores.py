# checkin_scheduler/services/stores.py
"""
Database-backed accessors used by the meeting generator.

- TeamConfigStore: read-only access to team recurrence configuration.
- OccurrenceStore: local-day lookup and insert-if-absent for check-in meetings.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from checkin_scheduler.core.exceptions import (
    ConfigurationNotFoundError,
    InvalidConfigurationError,
)
from checkin_scheduler.models.checkin_meeting import CheckInMeeting
from checkin_scheduler.models.team import Team
from checkin_scheduler.schemas.schedule import TeamScheduleConfig

PLANNING_STATUS = "Planning"
CHECK_IN_MEETING_TYPE = "check_in"


class TeamConfigStore:
    """
    Read-only accessor for team schedule configuration.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, team_id: int) -> Optional[TeamScheduleConfig]:
        """
        Return the team configuration, or None when the team does not exist.

        Raises InvalidConfigurationError when the stored anchors cannot be
        interpreted.
        """
        result = await self.db.execute(select(Team).where(Team.id == team_id))
        team = result.scalar_one_or_none()
        if team is None:
            return None
        try:
            return TeamScheduleConfig.from_team(team)
        except ValidationError as exc:
            # Rows are authored elsewhere; out-of-range anchors are not rejected on write
            raise InvalidConfigurationError(
                f"Team with id {team_id} has an invalid schedule configuration.",
                details={
                    "team_id": team_id,
                    "fields": [".".join(str(p) for p in err["loc"]) for err in exc.errors()],
                },
            ) from exc

    async def require(self, team_id: int) -> TeamScheduleConfig:
        config = await self.get(team_id)
        if config is None:
            raise ConfigurationNotFoundError(
                f"Team with id {team_id} not found.",
                details={"team_id": team_id},
            )
        return config

    async def list_team_ids(self) -> list[int]:
        result = await self.db.execute(select(Team.id).order_by(Team.id.asc()))
        return list(result.scalars().all())


class OccurrenceStore:
    """
    Persistence for generated check-in meetings.

    The table's unique constraint on (organization_id, team_id, scheduled_utc)
    is what makes concurrent generation runs safe; `exists_on_local_day` is
    only a fast path in front of it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def exists_on_local_day(
        self,
        organization_id: int,
        team_id: int,
        local_date_key: str,
    ) -> Optional[datetime]:
        """
        Return the scheduled time of an existing meeting on that local day, if any.
        """
        stmt = (
            select(CheckInMeeting.scheduled_utc)
            .where(
                CheckInMeeting.organization_id == organization_id,
                CheckInMeeting.team_id == team_id,
                CheckInMeeting.local_date_key == local_date_key,
            )
            .limit(1)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(CheckInMeeting)
        if dialect == "sqlite":
            return sqlite.insert(CheckInMeeting)
        raise NotImplementedError(f"insert-if-absent is not supported for dialect '{dialect}'")

    async def insert_if_absent(
        self,
        *,
        organization_id: int,
        team_id: int,
        scheduled_utc: datetime,
        local_date_key: str,
        title: str,
        description: str,
    ) -> Optional[int]:
        """
        Insert a meeting unless one already exists for the same scheduled instant.

        Returns the new row id, or None when the unique constraint suppressed it.
        """
        stmt = (
            self._insert()
            .values(
                organization_id=organization_id,
                team_id=team_id,
                title=title,
                description=description,
                scheduled_utc=scheduled_utc,
                local_date_key=local_date_key,
                status=PLANNING_STATUS,
                meeting_type=CHECK_IN_MEETING_TYPE,
                agenda=[],
            )
            .on_conflict_do_nothing(
                index_elements=["organization_id", "team_id", "scheduled_utc"],
            )
            .returning(CheckInMeeting.id)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_team(self, organization_id: int, team_id: int) -> list[CheckInMeeting]:
        stmt = (
            select(CheckInMeeting)
            .where(
                CheckInMeeting.organization_id == organization_id,
                CheckInMeeting.team_id == team_id,
            )
            .order_by(CheckInMeeting.scheduled_utc.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())
