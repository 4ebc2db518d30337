# checkin_scheduler/api/dependencies/internal_auth.py
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from checkin_scheduler.core.config import get_settings

OPEN_ENVIRONMENTS = ("local", "test")


def _key_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    # Constant-time comparison so the key cannot be guessed byte by byte
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or missing internal API key.",
    )


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description="Internal API key guarding meeting generation and dry runs outside local/test.",
    ),
) -> None:
    """
    Dependency protecting the /internal generation and dry-run endpoints.

    Rules
    -----
    - APP_ENV in OPEN_ENVIRONMENTS ("local", "test"):
        - No INTERNAL_API_KEY configured -> open, so a scheduler can be driven by hand.
        - INTERNAL_API_KEY configured     -> the header must match it (401 otherwise).
    - Any other APP_ENV (dev / stage / prod):
        - INTERNAL_API_KEY missing        -> 500, the deployment is misconfigured.
        - Header missing or different     -> 401.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = getattr(settings, "INTERNAL_API_KEY", None)

    # Local / test: optional, but enforce once a key is configured
    if env in OPEN_ENVIRONMENTS:
        if expected and not _key_matches(internal_api_key, expected):
            raise _unauthorized()
        return

    # Deployed: a cron trigger must always authenticate
    if not expected:
        # Fail fast instead of silently exposing generation to anyone
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="INTERNAL_API_KEY not configured for this environment.",
        )

    if not _key_matches(internal_api_key, expected):
        raise _unauthorized()
