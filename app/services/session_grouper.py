# app/services/session_grouper.py
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Sequence, Tuple

from app.core.time_utils import as_utc
from app.schemas.calendly import RawEvent, Registrant
from app.schemas.webinar import Session
from app.services.meeting_resolver import extract_zoom_meeting_id

EventWithRegistrants = Tuple[RawEvent, datetime, Sequence[Registrant]]


def session_key(start_time: datetime) -> str:
    """
    Grouping key of a session: the ISO-8601 UTC form of its start instant.
    """
    return as_utc(start_time).isoformat()


def group_sessions(items: Iterable[EventWithRegistrants]) -> List[Session]:
    """
    Merge events of one collective that start at the same instant.

    Rules
    -----
    - Events are grouped by exact start instant (no tolerance window).
    - The first event seen for a start instant provides the title, end time
      and join URL of the session.
    - Registrant lists are concatenated in encounter order.
    - Sessions are returned sorted by start time, ascending.
    """
    sessions: Dict[str, Session] = {}

    for event, start_time, registrants in items:
        key = session_key(start_time)
        session = sessions.get(key)

        if session is None:
            location = event.location
            session = Session(
                start_time=as_utc(start_time),
                end_time=as_utc(event.end_time) if event.end_time else None,
                event_name=event.name,
                join_url=location.join_url if location else None,
                meeting_id=extract_zoom_meeting_id(location),
            )
            sessions[key] = session

        session.registrants.extend(registrants)

    return sorted(sessions.values(), key=lambda s: s.start_time)
