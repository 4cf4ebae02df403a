# app/services/meeting_resolver.py
from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from app.core.time_utils import Clock, as_utc, parse_iso_utc, utc_now
from app.schemas.calendly import EventLocation
from app.schemas.meeting import MeetingInstance

if TYPE_CHECKING:
    from app.services.zoom_client import ZoomClient

logger = logging.getLogger(__name__)

INSTANCE_MATCH_TOLERANCE = timedelta(hours=2)
GENERIC_ID_MAX_AGE = timedelta(hours=24)

_ZOOM_JOIN_URL_RE = re.compile(r"/(?:j|w|s)/(\d{9,12})")


def extract_zoom_meeting_id(location: Optional[EventLocation]) -> Optional[str]:
    """
    Pull the numeric Zoom meeting id out of a Calendly event location.

    Uses the id Calendly stores under `data` for Zoom-conferencing events,
    otherwise parses the `/j/<digits>` segment of the join URL.
    """
    if location is None:
        return None

    data = location.data or {}
    if data.get("id"):
        return str(data["id"]).replace(" ", "")

    if location.join_url:
        match = _ZOOM_JOIN_URL_RE.search(location.join_url)
        if match:
            return match.group(1)
    return None


class ZoomMeetingResolver:
    """
    Resolves which instance of a recurring Zoom meeting a session refers to.

    - Sessions that have not started yet have no attendance to report.
    - Lists past instances of the meeting.
    - Picks the instance closest to the session start, within 2 hours.
    - Refuses to fall back to the generic meeting id for sessions older than
      24 hours, since that id reports the latest instance only.
    """

    def __init__(self, zoom_client: "ZoomClient", clock: Clock = utc_now) -> None:
        self.zoom = zoom_client
        self._clock = clock

    async def resolve_instance(self, meeting_id: str, target: datetime) -> MeetingInstance:
        """
        Resolve the meeting instance for the session starting at `target`.
        """
        target_utc = as_utc(target)
        now = self._clock()

        if target_utc > now:
            logger.info(
                "Session of meeting %s at %s has not started; no attendance yet",
                meeting_id,
                target_utc.isoformat(),
            )
            return MeetingInstance(meeting_id=meeting_id, reliable=False)

        instances = await self.zoom.list_past_instances(meeting_id)

        best = self._closest_instance(instances, target_utc)
        if best is not None:
            uuid, start = best
            return MeetingInstance(
                meeting_id=meeting_id,
                instance_uuid=uuid,
                start_time_utc=start,
            )

        if now - target_utc > GENERIC_ID_MAX_AGE:
            logger.info(
                "No Zoom instance of meeting %s near %s; treating attendance as unavailable",
                meeting_id,
                target_utc.isoformat(),
            )
            return MeetingInstance(meeting_id=meeting_id, reliable=False)

        return MeetingInstance(meeting_id=meeting_id)

    def _closest_instance(
        self,
        instances: List[Dict[str, Any]],
        target: datetime,
    ) -> Optional[tuple[str, datetime]]:
        best: Optional[tuple[str, datetime]] = None
        best_delta: Optional[timedelta] = None

        for inst in instances:
            uuid = inst.get("uuid")
            start = parse_iso_utc(inst.get("start_time"))
            if not uuid or start is None:
                continue

            delta = abs(start - target)
            if delta > INSTANCE_MATCH_TOLERANCE:
                continue
            if best_delta is None or delta < best_delta:
                best = (uuid, start)
                best_delta = delta

        return best

