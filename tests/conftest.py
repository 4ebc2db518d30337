# tests/conftest.py
import os
import tempfile
from datetime import time

import pytest

# Settings are read at import time, so point the app at a throwaway SQLite
# file before anything from checkin_scheduler is imported.
_DB_DIR = tempfile.mkdtemp(prefix="checkin_scheduler_tests_")
_DB_PATH = os.path.join(_DB_DIR, "test.db")
os.environ["DB_URL"] = f"sqlite+aiosqlite:///{_DB_PATH}"
os.environ["APP_ENV"] = "test"
os.environ["ORG_TIMEZONE"] = "Europe/London"
os.environ.pop("INTERNAL_API_KEY", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine as create_sync_engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from checkin_scheduler.db.base import Base  # noqa: E402
from checkin_scheduler.main import create_app  # noqa: E402
from checkin_scheduler.models.team import Team  # noqa: E402


def _sync_engine():
    return create_sync_engine(f"sqlite:///{_DB_PATH}", future=True)


@pytest.fixture(autouse=True)
def reset_db():
    """
    Reset the schema before every test using a synchronous engine, so no
    event loop is involved in DDL.
    """
    engine = _sync_engine()
    with engine.begin() as conn:
        Base.metadata.drop_all(bind=conn)
        Base.metadata.create_all(bind=conn)
    engine.dispose()
    yield


@pytest.fixture
def make_team():
    """
    Insert a Team row and return its id.
    """

    def _make_team(
        name: str = "Platform",
        organization_id: int = 3,
        cadence: str = "weekly",
        meeting_time: time = time(9, 0),
        **anchors,
    ) -> int:
        engine = _sync_engine()
        with Session(engine) as session:
            team = Team(
                name=name,
                organization_id=organization_id,
                cadence=cadence,
                meeting_time=meeting_time,
                **anchors,
            )
            session.add(team)
            session.commit()
            team_id = team.id
        engine.dispose()
        return team_id

    return _make_team


@pytest.fixture(scope="session")
def client() -> TestClient:
    """
    Shared TestClient fixture for all API tests.
    """
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client
