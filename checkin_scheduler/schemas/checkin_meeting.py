# checkin_scheduler/schemas/checkin_meeting.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from checkin_scheduler.schemas.schedule import PreviewEntry
from checkin_scheduler.services.timezone_converter import as_utc


class CheckInMeetingRead(BaseModel):
    """
    Public representation of a generated check-in meeting.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., examples=[1], description="Database identifier of the meeting.")
    organization_id: int = Field(..., description="Owning organization.")
    team_id: int = Field(..., description="Team the meeting belongs to.")
    title: str = Field(..., examples=["Platform Check-in"])
    description: str | None = Field(None, examples=["Regular weekly check-in meeting for Platform"])
    scheduled_utc: datetime = Field(..., description="Scheduled start as a UTC instant.")
    local_date_key: str = Field(
        ...,
        description="Calendar date of the meeting in the organization timezone.",
        examples=["2026-11-02"],
    )
    status: str = Field(..., examples=["Planning"])
    meeting_type: str = Field(..., examples=["check_in"])
    agenda: list = Field(default_factory=list)

    @field_validator("scheduled_utc")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class TeamMeetingPreview(BaseModel):
    """
    Upcoming meetings for a stored team configuration.
    """

    team_id: int = Field(..., examples=[7])
    timezone: str = Field(..., examples=["Europe/London"])
    cadence: str = Field(..., examples=["weekly"])
    meetings: list[PreviewEntry] = Field(default_factory=list)
