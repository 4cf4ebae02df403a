# app/services/webinar_overview.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from app.core.config import get_settings
from app.core.time_utils import utc_now
from app.schemas.webinar import TimeDirection, WebinarOverview
from app.services.webinar_fetcher import WebinarFetcher
from app.services.webinar_stats import compute_cohort_stats, compute_global_stats

logger = logging.getLogger(__name__)


async def build_webinar_overview(
    fetcher: WebinarFetcher,
    direction: TimeDirection,
    *,
    include_attendance: bool,
    now: Optional[datetime] = None,
) -> WebinarOverview:
    """
    Build the dashboard overview for upcoming or past webinars.

    Behavior
    --------
    1) Fetch active Calendly events on the requested side of `now`.
    2) Compute per-collective stats (registrants, optionally Zoom attendance).
    3) Compute global totals and the next upcoming session.

    Registrant and attendance failures are isolated per event/session. Errors
    while listing the events themselves propagate to the caller.
    """
    settings = get_settings()
    now = now or utc_now()
    cohort_names = settings.cohort_names

    events = await fetcher.fetch_events(direction, now, cohort_names=cohort_names)
    logger.info("Fetched %d %s collective events", len(events), direction.value)

    collectives = await compute_cohort_stats(
        events,
        fetcher=fetcher,
        include_attendance=include_attendance,
        cohort_names=cohort_names,
        display_tz=settings.DISPLAY_TIMEZONE,
        concurrency=settings.FETCH_CONCURRENCY,
    )

    return WebinarOverview(
        direction=direction,
        generated_at=now,
        collectives=collectives,
        global_stats=compute_global_stats(collectives, now),
    )
