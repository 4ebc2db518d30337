# checkin_scheduler/models/checkin_meeting.py
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from checkin_scheduler.db.base import Base


class CheckInMeeting(Base):
    """
    A single generated check-in meeting for a team.

    Rows are created once by the meeting generator and never updated by it
    afterwards; their downstream lifecycle (attendance, status changes) is
    owned elsewhere.
    """

    __tablename__ = "check_in_meetings"

    id = Column(Integer, primary_key=True, index=True)

    organization_id = Column(Integer, nullable=False)
    team_id = Column(
        Integer,
        ForeignKey("teams.id", ondelete="CASCADE"),
        nullable=False,
    )

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    scheduled_utc = Column(DateTime(timezone=True), nullable=False, index=True)
    # Calendar date of scheduled_utc in the organization timezone (YYYY-MM-DD)
    local_date_key = Column(String(10), nullable=False)

    status = Column(String(32), nullable=False, default="Planning")
    meeting_type = Column(String(50), nullable=False, default="check_in")
    agenda = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    team = relationship("Team", backref="check_in_meetings")

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "team_id",
            "scheduled_utc",
            name="uq_check_in_meetings_org_team_scheduled",
        ),
        Index(
            "ix_check_in_meetings_org_team_local_date",
            "organization_id",
            "team_id",
            "local_date_key",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<CheckInMeeting id={self.id} team_id={self.team_id} "
            f"scheduled_utc={self.scheduled_utc} status={self.status}>"
        )
