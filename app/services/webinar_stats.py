# app/services/webinar_stats.py
from __future__ import annotations

import asyncio
import math
from collections import defaultdict
from datetime import datetime
from typing import Awaitable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from app.core.time_utils import as_utc
from app.schemas.attendance import SessionAttendance
from app.schemas.calendly import RawEvent, Registrant
from app.schemas.webinar import CohortStats, GlobalStats, Session, SessionStats
from app.services.cohort_classifier import classify_cohort
from app.services.session_formatter import format_session_datetime
from app.services.session_grouper import group_sessions

T = TypeVar("T")


class SessionDataSource(Protocol):
    attendance_enabled: bool

    async def fetch_registrants(self, event: RawEvent) -> List[Registrant]: ...

    async def resolve_session_attendance(self, session: Session) -> Optional[SessionAttendance]: ...


async def gather_bounded(awaitables: Iterable[Awaitable[T]], limit: int) -> List[T]:
    """
    Await all `awaitables` with at most `limit` in flight; results keep input order.

    If any of them raises, the remaining ones are cancelled and awaited before
    the exception propagates.
    """
    semaphore = asyncio.Semaphore(max(limit, 1))

    async def _run(aw: Awaitable[T]) -> T:
        async with semaphore:
            return await aw

    tasks = [asyncio.ensure_future(_run(aw)) for aw in awaitables]
    try:
        return list(await asyncio.gather(*tasks))
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def compute_attendance_rate(matched_count: int, registrant_count: int) -> Optional[int]:
    """
    Percentage of registrants that attended, rounded half up.

    Returns None when there are no registrants.
    """
    if registrant_count <= 0:
        return None
    return int(math.floor(matched_count / registrant_count * 100 + 0.5))


def build_session_stats(
    session: Session,
    attendance: Optional[SessionAttendance],
    display_tz: str = "Asia/Kolkata",
) -> SessionStats:
    """
    Serialize a session together with its attendance figures.

    Without attendance data the counts stay at zero and the rate is null.
    """
    registrant_count = len(session.registrants)
    checked = attendance is not None and attendance.has_data

    matched = attendance.matched_count if checked else 0
    total = attendance.total_count if checked else 0
    external = attendance.external_count if checked else 0

    meeting_id = session.meeting_id
    if attendance is not None and attendance.meeting_id:
        meeting_id = attendance.meeting_id

    return SessionStats(
        event_name=session.event_name,
        **format_session_datetime(session.start_time, display_tz),
        start_time=session.start_time,
        end_time=session.end_time,
        registrants=list(session.registrants),
        registrant_count=registrant_count,
        join_url=session.join_url,
        meeting_id=meeting_id,
        attendance_checked=checked,
        matched_attendance_count=matched,
        total_attendance_count=total,
        external_attendance_count=external,
        attendance_rate=compute_attendance_rate(matched, registrant_count) if checked else None,
    )


async def compute_cohort_stats(
    events: Sequence[RawEvent],
    *,
    fetcher: SessionDataSource,
    include_attendance: bool,
    cohort_names: Sequence[str],
    display_tz: str = "Asia/Kolkata",
    concurrency: int = 8,
) -> List[CohortStats]:
    """
    Roll scheduled events up into per-collective statistics.

    Steps
    -----
    1) Classify each event into a collective; unclassified events are dropped.
    2) Fetch registrants of every kept event concurrently.
    3) Merge events of one collective sharing a start instant into sessions.
    4) Optionally resolve Zoom attendance of every session concurrently.
    5) Sum registrants and attendance per collective.

    Every configured collective is returned, in configured order, even when
    it has no sessions.
    """
    classified: List[Tuple[RawEvent, str]] = []
    for event in events:
        cohort = classify_cohort(event.name, cohort_names)
        if cohort is not None:
            classified.append((event, cohort))

    registrant_lists = await gather_bounded(
        (fetcher.fetch_registrants(event) for event, _ in classified),
        concurrency,
    )

    items_by_cohort: Dict[str, list] = defaultdict(list)
    for (event, cohort), registrants in zip(classified, registrant_lists):
        items_by_cohort[cohort].append((event, as_utc(event.start_time), registrants))

    sessions_by_cohort: Dict[str, List[Session]] = {
        name: group_sessions(items_by_cohort.get(name, [])) for name in cohort_names
    }

    all_sessions = [s for name in cohort_names for s in sessions_by_cohort[name]]
    if include_attendance and fetcher.attendance_enabled:
        attendance_list = await gather_bounded(
            (fetcher.resolve_session_attendance(s) for s in all_sessions),
            concurrency,
        )
    else:
        attendance_list = [None] * len(all_sessions)
    attendance_by_session = dict(zip(map(id, all_sessions), attendance_list))

    results: List[CohortStats] = []
    for name in cohort_names:
        session_stats = [
            build_session_stats(s, attendance_by_session[id(s)], display_tz)
            for s in sessions_by_cohort[name]
        ]
        results.append(
            CohortStats(
                collective=name,
                sessions=session_stats,
                total_registrants=sum(s.registrant_count for s in session_stats),
                total_matched_attendance=sum(s.matched_attendance_count for s in session_stats),
                total_attendance=sum(s.total_attendance_count for s in session_stats),
            )
        )
    return results


def compute_global_stats(cohort_stats: Sequence[CohortStats], now: datetime) -> GlobalStats:
    """
    Totals across collectives plus the nearest session still in the future.
    """
    now_utc = as_utc(now)
    all_sessions = [s for c in cohort_stats for s in c.sessions]

    upcoming = [s for s in all_sessions if as_utc(s.start_time) > now_utc]
    next_session = min(upcoming, key=lambda s: as_utc(s.start_time)) if upcoming else None

    return GlobalStats(
        total_registrants=sum(c.total_registrants for c in cohort_stats),
        total_matched_attendance=sum(c.total_matched_attendance for c in cohort_stats),
        total_attendance=sum(c.total_attendance for c in cohort_stats),
        next_session=next_session,
        total_sessions=len(all_sessions),
    )
