# app/main.py
from fastapi import FastAPI

from app.api.routes import calendly_oauth, health, webinars
from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import AsyncSessionLocal, init_db_for_startup
from app.services.calendly_client import build_calendly_client
from app.services.token_cache import TokenCache
from app.services.token_store import OAuthTokenStore


def create_app() -> FastAPI:
    """
    Application factory for the Collective Webinar Dashboard service.
    """
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Backend for the collective webinar dashboard: aggregates Calendly\n"
            "registrations per collective and session, and reconciles them with\n"
            "Zoom attendance."
        ),
        version="0.1.0",
    )

    # Long-lived provider state shared by all requests
    app.state.calendly_client = build_calendly_client(OAuthTokenStore(AsyncSessionLocal))
    app.state.zoom_token_cache = TokenCache()

    # Routers
    app.include_router(health.router)
    app.include_router(webinars.router)
    app.include_router(calendly_oauth.router)

    @app.on_event("startup")
    async def on_startup() -> None:  # pragma: no cover
        await init_db_for_startup()

    return app


app = create_app()
