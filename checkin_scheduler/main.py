# checkin_scheduler/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from checkin_scheduler.api.routes import health, internal, teams
from checkin_scheduler.core.config import get_settings
from checkin_scheduler.core.logging import configure_logging
from checkin_scheduler.db.session import init_db_for_startup


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db_for_startup()
    yield


def create_app() -> FastAPI:
    """
    Application factory for the Check-in Scheduler service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend service that turns each team's recurrence configuration into\n"
            "concrete check-in meetings, DST-aware and exactly once per local day,\n"
            "and previews upcoming meetings for configuration screens."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(health.router)
    app.include_router(teams.router)
    app.include_router(internal.router)

    return app


app = create_app()
