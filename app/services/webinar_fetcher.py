# app/services/webinar_fetcher.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Sequence

import httpx

from app.schemas.attendance import AttendanceRecord, SessionAttendance
from app.schemas.calendly import RawEvent, Registrant
from app.schemas.webinar import Session, TimeDirection
from app.services.attendance_resolver import AttendanceResolver
from app.services.calendly_client import CalendlyAuthError, CalendlyClient, CalendlyClientError
from app.services.cohort_classifier import classify_cohort

logger = logging.getLogger(__name__)


class WebinarFetcher:
    """
    Single entry point the reporting pipeline uses to reach both providers.

    Failures are isolated per event (registrants) and per session
    (attendance): the affected item gets an empty result and the rest of the
    overview is still computed. Calendly authentication failures are not
    isolated since every following call would fail the same way.
    """

    def __init__(
        self,
        calendly: CalendlyClient,
        attendance_resolver: Optional[AttendanceResolver] = None,
        max_event_pages: Optional[int] = None,
    ) -> None:
        self.calendly = calendly
        self.attendance_resolver = attendance_resolver
        self.max_event_pages = max_event_pages

    @property
    def attendance_enabled(self) -> bool:
        return self.attendance_resolver is not None

    async def fetch_events(
        self,
        direction: TimeDirection,
        now: datetime,
        cohort_names: Optional[Sequence[str]] = None,
    ) -> List[RawEvent]:
        """
        List scheduled events on one side of `now`, optionally keeping only
        those that belong to one of `cohort_names`.
        """
        events = await self.calendly.list_scheduled_events(
            direction, now, max_pages=self.max_event_pages
        )
        if cohort_names is None:
            return events
        return [e for e in events if classify_cohort(e.name, cohort_names) is not None]

    async def fetch_registrants(self, event: RawEvent) -> List[Registrant]:
        try:
            return await self.calendly.list_invitees(event.uuid)
        except CalendlyAuthError:
            raise
        except (CalendlyClientError, httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch invitees for event %s: %s", event.uuid, exc)
            return []

    async def fetch_meeting_participants(
        self,
        meeting_id: str,
        target: Optional[datetime] = None,
    ) -> List[AttendanceRecord]:
        """
        Raw Zoom participant records of a meeting, or an empty list when Zoom
        is not configured.
        """
        if self.attendance_resolver is None:
            return []
        return await self.attendance_resolver.fetch_meeting_participants(meeting_id, target)

    async def resolve_session_attendance(self, session: Session) -> Optional[SessionAttendance]:
        """
        Attendance of one session, or None when Zoom is not configured.
        """
        if self.attendance_resolver is None:
            return None
        return await self.attendance_resolver.resolve_session_attendance(session)
