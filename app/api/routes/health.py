# app/api/routes/health.py
from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.core.config import get_settings


router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    """
    Liveness payload plus a snapshot of which providers are configured.
    """

    status: str = Field("ok", examples=["ok"])
    app_name: str = Field(..., examples=["Collective Webinar Dashboard"])
    environment: str = Field(..., examples=["prod"])
    calendly_configured: bool = Field(
        ...,
        description="CALENDLY_CLIENT_ID is set, so the OAuth connect flow can start.",
    )
    zoom_configured: bool = Field(
        ...,
        description="Zoom credentials are set, so past sessions carry attendance.",
    )
    cohorts: list[str] = Field(
        default_factory=list,
        description="Collectives the dashboard groups events into, in display order.",
        examples=[["Mumbai", "Bhopal", "Hammiyala", "Poomaale"]],
    )
    timestamp_utc: datetime


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness and configuration snapshot",
    description=(
        "Answers without contacting Calendly, Zoom or the token database, so a "
        "provider outage never fails the health check. The configuration flags tell an "
        "operator why attendance or the Calendly connect button may be missing."
    ),
)
async def health_check() -> HealthResponse:
    settings = get_settings()
    return HealthResponse(
        app_name=settings.APP_NAME,
        environment=settings.APP_ENV,
        calendly_configured=bool(settings.CALENDLY_CLIENT_ID),
        zoom_configured=settings.zoom_configured,
        cohorts=settings.cohort_names,
        timestamp_utc=datetime.now(tz=timezone.utc),
    )
