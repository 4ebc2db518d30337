# checkin_scheduler/db/session.py
import os
from collections.abc import AsyncGenerator

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from checkin_scheduler.core.config import get_settings
from checkin_scheduler.db.base import Base

settings = get_settings()

# PYTEST_CURRENT_TEST is only set once a test runs; APP_ENV=test covers collection time
IS_TEST = "PYTEST_CURRENT_TEST" in os.environ or os.environ.get("APP_ENV") == "test"

# ---------------------------------------------------------------------------
# Engine + session shared by the API and the meeting generator
# ---------------------------------------------------------------------------
engine = create_async_engine(
    settings.DB_URL,
    echo=False,
    future=True,
    # TestClient requests and asyncio tests run on different event loops,
    # so never hand a pooled connection from one loop to another.
    poolclass=NullPool if IS_TEST else None,
)

if engine.dialect.name == "sqlite":

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        # Needed for ON DELETE CASCADE from teams to check_in_meetings
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    autoflush=False,
    expire_on_commit=False,
    class_=AsyncSession,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides an async SQLAlchemy session.

    Generation commits explicitly; the session is closed when the request
    is completed.
    """
    async with AsyncSessionLocal() as session:
        yield session


# ---------------------------------------------------------------------------
# PRODUCTION / DEV: DB init for app startup
# ---------------------------------------------------------------------------
async def init_db_for_startup() -> None:
    """
    Create the teams and check_in_meetings tables if they are missing.

    Safe to call from FastAPI startup; existing tables and rows are untouched.
    Typically you'd eventually replace this with Alembic migrations.
    """
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
