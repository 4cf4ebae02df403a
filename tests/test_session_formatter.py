# tests/test_session_formatter.py
from datetime import datetime, timezone

from app.services.session_formatter import format_session_datetime


def test_formats_in_display_timezone():
    start = datetime(2026, 1, 3, 13, 0, tzinfo=timezone.utc)

    parts = format_session_datetime(start, "Asia/Kolkata")

    assert parts == {
        "date_string": "Sat, 3 Jan 2026",
        "time_string": "06:30 PM",
        "day_part": "3",
        "month_part": "Jan",
    }


def test_local_date_can_roll_over_to_next_day():
    start = datetime(2026, 1, 3, 20, 0, tzinfo=timezone.utc)

    parts = format_session_datetime(start, "Asia/Kolkata")

    assert parts["day_part"] == "4"
    assert parts["time_string"] == "01:30 AM"
