# app/api/dependencies/providers.py
from fastapi import Request

from app.core.config import get_settings
from app.services.attendance_resolver import AttendanceResolver
from app.services.calendly_client import CalendlyClient
from app.services.webinar_fetcher import WebinarFetcher
from app.services.zoom_client import build_zoom_client


def get_calendly_client(request: Request) -> CalendlyClient:
    """
    The process-wide Calendly client created by the application factory.
    """
    return request.app.state.calendly_client


def get_webinar_fetcher(request: Request) -> WebinarFetcher:
    """
    Build the provider facade for one request.

    Zoom attendance is only wired in when Zoom credentials are configured;
    the Zoom token cache is shared across requests through app state.
    """
    settings = get_settings()
    zoom_client = build_zoom_client(token_cache=request.app.state.zoom_token_cache)
    attendance_resolver = AttendanceResolver(zoom_client) if zoom_client else None

    return WebinarFetcher(
        calendly=get_calendly_client(request),
        attendance_resolver=attendance_resolver,
        max_event_pages=settings.CALENDLY_MAX_EVENT_PAGES,
    )
