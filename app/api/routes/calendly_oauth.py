# app/api/routes/calendly_oauth.py
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from http import HTTPStatus

from app.api.dependencies.admin_auth import verify_admin_api_key
from app.api.dependencies.providers import get_calendly_client
from app.services.calendly_client import CalendlyClient, CalendlyClientError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Calendly OAuth"])


@router.get(
    "/connect-calendly",
    summary="Start the Calendly OAuth flow",
    dependencies=[Depends(verify_admin_api_key)],
    response_class=RedirectResponse,
    status_code=HTTPStatus.FOUND,
)
async def connect_calendly(
    calendly: CalendlyClient = Depends(get_calendly_client),
) -> RedirectResponse:
    try:
        url = calendly.authorize_url()
    except CalendlyClientError as exc:
        raise HTTPException(status_code=HTTPStatus.BAD_REQUEST, detail=str(exc))
    return RedirectResponse(url, status_code=HTTPStatus.FOUND)


@router.get(
    "/oauth/callback",
    summary="Calendly OAuth redirect target",
    response_class=RedirectResponse,
    status_code=HTTPStatus.FOUND,
)
async def oauth_callback(
    code: str = Query(..., description="Authorization code issued by Calendly."),
    calendly: CalendlyClient = Depends(get_calendly_client),
) -> RedirectResponse:
    """
    Exchange the authorization code, persist the token pair and send the
    administrator back to the dashboard.
    """
    try:
        await calendly.exchange_code(code)
    except (CalendlyClientError, httpx.HTTPError) as exc:
        logger.error("Error exchanging Calendly authorization code: %s", exc)
        return RedirectResponse("/?error=calendly_auth_failed", status_code=HTTPStatus.FOUND)

    logger.info("Calendly connected")
    return RedirectResponse("/", status_code=HTTPStatus.FOUND)
