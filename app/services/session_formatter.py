# app/services/session_formatter.py
from __future__ import annotations

from datetime import datetime
from typing import Dict
from zoneinfo import ZoneInfo


def format_session_datetime(start_time: datetime, tz_name: str = "Asia/Kolkata") -> Dict[str, str]:
    """
    Human-readable date/time pieces of a session start in the display timezone.

    Example (Asia/Kolkata, 2026-01-03T13:00:00Z):
        date_string="Sat, 3 Jan 2026", time_string="06:30 PM",
        day_part="3", month_part="Jan"
    """
    local = start_time.astimezone(ZoneInfo(tz_name))
    return {
        "date_string": f"{local.strftime('%a')}, {local.day} {local.strftime('%b')} {local.year}",
        "time_string": local.strftime("%I:%M %p"),
        "day_part": str(local.day),
        "month_part": local.strftime("%b"),
    }
