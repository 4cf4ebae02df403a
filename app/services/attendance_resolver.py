# app/services/attendance_resolver.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from app.core.time_utils import parse_iso_utc
from app.schemas.attendance import AttendanceRecord, SessionAttendance
from app.schemas.webinar import Session
from app.services.attendance_deduplicator import deduplicate_attendance
from app.services.meeting_resolver import ZoomMeetingResolver
from app.services.registrant_matcher import RegistrantMatcher
from app.services.zoom_client import ZoomClient, ZoomClientError

logger = logging.getLogger(__name__)


class AttendanceResolver:
    """
    Resolves attendance for a webinar session using the Zoom participants
    report:

        GET /v2/report/meetings/{meeting_id_or_instance_uuid}/participants

    The meeting instance is resolved first so that a recurring meeting id does
    not attribute one date's attendance to another.
    """

    def __init__(
        self,
        zoom_client: ZoomClient,
        meeting_resolver: Optional[ZoomMeetingResolver] = None,
    ) -> None:
        self.zoom = zoom_client
        self.meeting_resolver = meeting_resolver or ZoomMeetingResolver(zoom_client)

    async def resolve_lookup_ref(self, meeting_id: str, target: datetime) -> Optional[str]:
        """
        Meeting id or instance uuid to report on for the session at `target`,
        or None when no reliable instance exists.
        """
        instance = await self.meeting_resolver.resolve_instance(meeting_id, target)
        return instance.lookup_ref

    async def fetch_meeting_participants(
        self,
        meeting_id: str,
        target: Optional[datetime] = None,
    ) -> List[AttendanceRecord]:
        """
        Return raw participant records of a meeting.

        When `target` is given the matching past instance is resolved first;
        an unreliable resolution yields an empty list. Without `target`,
        `meeting_id` (an id or instance uuid) is queried as is. Entries that
        are not JSON objects are skipped.
        """
        lookup_ref: Optional[str] = meeting_id
        if target is not None:
            lookup_ref = await self.resolve_lookup_ref(meeting_id, target)

        if lookup_ref is None:
            return []

        participants = await self.zoom.list_participants(lookup_ref)
        return [self._to_record(p) for p in participants if isinstance(p, dict)]

    async def resolve_session_attendance(self, session: Session) -> SessionAttendance:
        """
        Resolve, deduplicate and match the attendance of one session.

        Returns
        -------
        SessionAttendance
            has_data is False when the session has no Zoom meeting, no reliable
            instance could be resolved, or Zoom failed or answered with an
            unusable payload; in the latter case the error message is kept in
            `raw`.
        """
        if not session.meeting_id:
            return SessionAttendance(meeting_id=None, has_data=False)

        try:
            lookup_ref = await self.resolve_lookup_ref(session.meeting_id, session.start_time)
            if lookup_ref is None:
                return SessionAttendance(meeting_id=session.meeting_id, has_data=False)

            records = deduplicate_attendance(await self.fetch_meeting_participants(lookup_ref))
        except (ZoomClientError, httpx.HTTPError, ValueError) as exc:
            # ValueError covers undecodable JSON and records failing validation.
            logger.warning(
                "Failed to fetch Zoom attendance for meeting %s (%s): %s",
                session.meeting_id,
                session.start_time.isoformat(),
                exc,
            )
            return SessionAttendance(
                meeting_id=session.meeting_id,
                has_data=False,
                raw={"error": str(exc)},
            )

        return SessionAttendance(
            meeting_id=lookup_ref,
            has_data=True,
            records=records,
            match=RegistrantMatcher.match(records, session.registrants),
        )

    def _to_record(self, participant: Dict[str, Any]) -> AttendanceRecord:
        duration = participant.get("duration") or 0
        try:
            seconds = max(int(duration), 0)
        except (TypeError, ValueError):
            seconds = 0

        return AttendanceRecord(
            name=participant.get("name") or "",
            email=participant.get("user_email") or participant.get("email") or "",
            join_time=parse_iso_utc(participant.get("join_time")),
            duration=seconds,
        )
