# checkin_scheduler/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models in the Check-in Scheduler service.
    """
    pass


# Import ORM models so that Base.metadata is aware of them.
# Plain module imports keep this safe when a model module is imported first.
import checkin_scheduler.models.team  # noqa: E402,F401
import checkin_scheduler.models.checkin_meeting  # noqa: E402,F401
