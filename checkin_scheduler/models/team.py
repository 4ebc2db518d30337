# checkin_scheduler/models/team.py
from sqlalchemy import Column, DateTime, Integer, SmallInteger, String, Time, func

from checkin_scheduler.db.base import Base


class Team(Base):
    """
    Team recurrence configuration.

    Rows are authored outside this service; the scheduler only reads them.

    Anchor columns follow these rules:
    - daily: meeting_time only
    - weekly / bi_weekly: anchor_day_of_week + meeting_time
    - monthly: anchor_day_of_month OR (anchor_week_of_month + anchor_day_of_week)
    - quarterly / half_yearly / annual: like monthly, repeating every 3/6/12
      months starting from anchor_month
    """

    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, nullable=False, index=True)
    name = Column(String(120), nullable=False)

    cadence = Column(String(32), nullable=False, default="weekly")
    meeting_time = Column(Time, nullable=False)

    # 0=Sunday ... 6=Saturday
    anchor_day_of_week = Column(SmallInteger, nullable=True)
    # 1..4, or -1 for "last"
    anchor_week_of_month = Column(SmallInteger, nullable=True)
    anchor_day_of_month = Column(SmallInteger, nullable=True)
    anchor_month = Column(SmallInteger, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return (
            f"<Team id={self.id} organization_id={self.organization_id} "
            f"cadence={self.cadence} meeting_time={self.meeting_time}>"
        )
