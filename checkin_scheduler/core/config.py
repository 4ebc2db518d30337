# checkin_scheduler/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection
    - Internal API key
    - Organization timezone resolution
    - Generation window / preview defaults
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Check-in Scheduler"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")

    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./checkin_scheduler.db",
        description="SQLAlchemy-compatible async database URL",
    )

    INTERNAL_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting /internal endpoints",
    )

    # --- Scheduling ---
    ORG_TIMEZONE: str = Field(
        default="Europe/London",
        description=(
            "IANA timezone used for every organization that has no explicit "
            "override. Meeting times are interpreted as wall-clock time in this zone."
        ),
    )
    ORG_TIMEZONE_OVERRIDES: dict[int, str] = Field(
        default_factory=dict,
        description=(
            "Per-organization timezone overrides as JSON, "
            'e.g. {"3": "America/New_York"}.'
        ),
    )
    GENERATION_LOOKAHEAD_DAYS: int = Field(
        default=90,
        ge=1,
        description="Length of the rolling window used by the periodic generation trigger.",
    )
    PREVIEW_COUNT: int = Field(
        default=8,
        ge=1,
        description="Default number of upcoming meetings returned by preview endpoints.",
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
