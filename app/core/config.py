# app/core/config.py
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Global application configuration.

    Values are loaded from environment variables (or a local `.env` file)
    at runtime and cover:
    - DB connection used for OAuth token persistence
    - Calendly OAuth application credentials
    - Zoom server-to-server OAuth credentials
    - Admin API key protecting the dashboard endpoints
    - Cohort ("collective") configuration and display timezone
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    APP_NAME: str = "Collective Webinar Dashboard"
    APP_ENV: str = Field("local", description="Environment name: local/dev/stage/prod")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the service.")

    DB_URL: str = Field(
        "sqlite+aiosqlite:///./webinar_dashboard.db",
        description="SQLAlchemy-compatible database URL",
    )

    ADMIN_API_KEY: str | None = Field(
        default=None,
        description="API key required for hitting the /api dashboard endpoints",
    )

    # --- Calendly OAuth application ---
    CALENDLY_CLIENT_ID: str | None = None
    CALENDLY_CLIENT_SECRET: str | None = None
    CALENDLY_REDIRECT_URI: str | None = None
    CALENDLY_API_BASE_URL: str = "https://api.calendly.com"
    CALENDLY_AUTH_BASE_URL: str = "https://auth.calendly.com"
    CALENDLY_MAX_EVENT_PAGES: int = Field(
        default=5,
        description="Upper bound on scheduled_events pages followed per overview.",
    )

    # --- Zoom server-to-server OAuth ---
    ZOOM_ACCOUNT_ID: str | None = None
    ZOOM_CLIENT_ID: str | None = None
    ZOOM_CLIENT_SECRET: str | None = None
    ZOOM_API_BASE_URL: str = "https://api.zoom.us/v2"
    ZOOM_OAUTH_URL: str = "https://zoom.us/oauth/token"

    # --- Reporting ---
    COHORT_NAMES: str = Field(
        default="Mumbai,Bhopal,Hammiyala,Poomaale",
        description=(
            "Comma-separated, ordered list of collective names. An event belongs "
            "to the first collective whose name appears in its title."
        ),
    )
    DISPLAY_TIMEZONE: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone used for the human-readable session date/time.",
    )
    FETCH_CONCURRENCY: int = Field(
        default=8,
        description="Maximum number of provider calls dispatched concurrently.",
    )
    HTTP_TIMEOUT_SECONDS: float = Field(
        default=15.0,
        description="Timeout applied to every outbound provider request.",
    )

    @property
    def cohort_names(self) -> list[str]:
        return [name.strip() for name in self.COHORT_NAMES.split(",") if name.strip()]

    @property
    def zoom_configured(self) -> bool:
        return bool(self.ZOOM_ACCOUNT_ID and self.ZOOM_CLIENT_ID and self.ZOOM_CLIENT_SECRET)


@lru_cache()
def get_settings() -> Settings:
    """
    Cached accessor for application settings.

    Using LRU cache ensures settings are read and validated only once,
    while still being easily importable across the app.
    """
    return Settings()
