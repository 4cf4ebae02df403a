# app/api/dependencies/admin_auth.py
from typing import Optional

from fastapi import Header, HTTPException, status

from app.core.config import get_settings


async def verify_admin_api_key(
    admin_api_key: Optional[str] = Header(
        default=None,
        alias="X-Admin-Api-Key",
        description="Admin API key required for dashboard endpoints in non-local environments.",
    ),
) -> None:
    """
    Dependency to protect the dashboard endpoints.

    Rules
    -----
    - APP_ENV in ("local", "test"):
        - If ADMIN_API_KEY is not set -> no auth enforced (convenient for local dev).
        - If ADMIN_API_KEY is set      -> header must match the configured key.
    - APP_ENV not in ("local", "test")  [e.g. dev/stage/prod]:
        - ADMIN_API_KEY must be set, otherwise 500 (misconfiguration).
        - Header must be present and match ADMIN_API_KEY, otherwise 401.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = getattr(settings, "ADMIN_API_KEY", None)

    if env in ("local", "test"):
        if not expected:
            return

        if not admin_api_key or admin_api_key != expected:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing admin API key.",
            )
        return

    if not expected:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="ADMIN_API_KEY not configured for this environment.",
        )

    if not admin_api_key or admin_api_key != expected:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing admin API key.",
        )
