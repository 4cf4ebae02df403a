# app/api/routes/webinars.py
import logging
from http import HTTPStatus

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from app.api.dependencies.admin_auth import verify_admin_api_key
from app.api.dependencies.providers import get_calendly_client, get_webinar_fetcher
from app.core.config import get_settings
from app.schemas.webinar import TimeDirection, WebinarOverview
from app.services.calendly_client import (
    CalendlyAuthError,
    CalendlyClient,
    CalendlyClientError,
    CalendlyNotConnectedError,
)
from app.services.webinar_fetcher import WebinarFetcher
from app.services.webinar_overview import build_webinar_overview

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["Webinars"],
    dependencies=[Depends(verify_admin_api_key)],
)


class AuthStatusResponse(BaseModel):
    """
    Connection status of the upstream providers.
    """

    is_calendly_connected: bool = Field(
        ...,
        description="True once an administrator has completed the Calendly OAuth flow.",
    )
    is_zoom_configured: bool = Field(
        ...,
        description="True when Zoom credentials are configured; attendance is skipped otherwise.",
    )


async def _overview_or_http_error(
    fetcher: WebinarFetcher,
    direction: TimeDirection,
    include_attendance: bool,
) -> WebinarOverview:
    """
    Build an overview, translating provider failures into HTTP errors.
    """
    try:
        return await build_webinar_overview(
            fetcher,
            direction,
            include_attendance=include_attendance,
        )
    except CalendlyNotConnectedError:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail="Calendly not connected")
    except CalendlyAuthError as exc:
        logger.error("Calendly authentication expired: %s", exc)
        raise HTTPException(status_code=HTTPStatus.UNAUTHORIZED, detail="Authentication expired")
    except (CalendlyClientError, httpx.HTTPError, ValueError):
        logger.exception("Failed to fetch %s webinar data", direction.value)
        raise HTTPException(
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
            detail="Failed to fetch data",
        )


@router.get(
    "/auth-status",
    response_model=AuthStatusResponse,
    summary="Provider connection status",
)
async def auth_status(
    calendly: CalendlyClient = Depends(get_calendly_client),
) -> AuthStatusResponse:
    return AuthStatusResponse(
        is_calendly_connected=await calendly.is_connected(),
        is_zoom_configured=get_settings().zoom_configured,
    )


@router.get(
    "/webinars",
    response_model=WebinarOverview,
    status_code=HTTPStatus.OK,
    summary="Upcoming webinars per collective",
    description=(
        "Return all active upcoming Calendly events grouped into collectives and "
        "sessions, with registrant lists and totals.\n\n"
        "Events sharing a start time within a collective are merged into one "
        "session. `global_stats.next_session` points at the nearest upcoming "
        "session.\n\n"
        "Set `include_attendance=true` to also resolve Zoom attendance (only "
        "meaningful for sessions that already took place)."
    ),
    responses={
        400: {"description": "Calendly has not been connected yet."},
        401: {"description": "Missing admin key, or Calendly authentication expired."},
        500: {"description": "Calendly could not be reached."},
    },
)
async def get_upcoming_webinars(
    include_attendance: bool = Query(
        default=False,
        description="Resolve Zoom attendance for every session.",
    ),
    fetcher: WebinarFetcher = Depends(get_webinar_fetcher),
) -> WebinarOverview:
    return await _overview_or_http_error(fetcher, TimeDirection.UPCOMING, include_attendance)


@router.get(
    "/webinars/past",
    response_model=WebinarOverview,
    status_code=HTTPStatus.OK,
    summary="Past webinars per collective with attendance",
    description=(
        "Return active past Calendly events grouped into collectives and "
        "sessions. When Zoom is configured, each session carries matched, "
        "external and total attendance plus the attendance rate "
        "(matched / registrants * 100).\n\n"
        "A failure for a single event or session yields empty registrants or "
        "no attendance for that item only."
    ),
    responses={
        400: {"description": "Calendly has not been connected yet."},
        401: {"description": "Missing admin key, or Calendly authentication expired."},
        500: {"description": "Calendly could not be reached."},
    },
)
async def get_past_webinars(
    include_attendance: bool = Query(
        default=True,
        description="Resolve Zoom attendance for every session.",
    ),
    fetcher: WebinarFetcher = Depends(get_webinar_fetcher),
) -> WebinarOverview:
    return await _overview_or_http_error(fetcher, TimeDirection.PAST, include_attendance)
