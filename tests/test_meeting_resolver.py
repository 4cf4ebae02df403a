# tests/test_meeting_resolver.py
from datetime import datetime, timedelta, timezone

import pytest

from app.schemas.calendly import EventLocation
from app.schemas.meeting import MeetingInstance
from app.services.meeting_resolver import ZoomMeetingResolver, extract_zoom_meeting_id


class FakeZoomClient:
    """
    Simple stub for ZoomClient used in resolver tests.
    """

    def __init__(self, instances):
        self.instances = instances
        self.called_with = []

    async def list_past_instances(self, meeting_id):
        self.called_with.append(meeting_id)
        return self.instances


SESSION_START = datetime(2026, 1, 3, 13, 0, tzinfo=timezone.utc)


def _clock(now):
    return lambda: now


@pytest.mark.asyncio
async def test_resolver_picks_closest_instance_within_window():
    fake_client = FakeZoomClient(
        [
            {"uuid": "week-before", "start_time": "2025-12-27T13:00:00Z"},
            {"uuid": "slightly-late", "start_time": "2026-01-03T13:40:00Z"},
            {"uuid": "on-time", "start_time": "2026-01-03T13:05:00Z"},
        ]
    )
    resolver = ZoomMeetingResolver(fake_client, clock=_clock(SESSION_START + timedelta(days=10)))

    result = await resolver.resolve_instance("81234567890", SESSION_START)

    assert isinstance(result, MeetingInstance)
    assert result.instance_uuid == "on-time"
    assert result.start_time_utc == datetime(2026, 1, 3, 13, 5, tzinfo=timezone.utc)
    assert result.lookup_ref == "on-time"
    assert fake_client.called_with == ["81234567890"]


@pytest.mark.asyncio
async def test_resolver_ignores_instances_outside_window_for_old_session():
    fake_client = FakeZoomClient(
        [{"uuid": "other-day", "start_time": "2026-01-10T13:00:00Z"}]
    )
    resolver = ZoomMeetingResolver(fake_client, clock=_clock(SESSION_START + timedelta(days=10)))

    result = await resolver.resolve_instance("81234567890", SESSION_START)

    assert result.reliable is False
    assert result.lookup_ref is None


@pytest.mark.asyncio
async def test_resolver_falls_back_to_meeting_id_for_recent_session():
    fake_client = FakeZoomClient([])
    resolver = ZoomMeetingResolver(fake_client, clock=_clock(SESSION_START + timedelta(hours=3)))

    result = await resolver.resolve_instance("81234567890", SESSION_START)

    assert result.reliable is True
    assert result.instance_uuid is None
    assert result.lookup_ref == "81234567890"


@pytest.mark.asyncio
async def test_resolver_skips_malformed_instances():
    fake_client = FakeZoomClient(
        [
            {"uuid": "no-start"},
            {"start_time": "2026-01-03T13:00:00Z"},
            {"uuid": "bad-date", "start_time": "not-a-date"},
            {"uuid": "good", "start_time": "2026-01-03T14:30:00+00:00"},
        ]
    )
    resolver = ZoomMeetingResolver(fake_client, clock=_clock(SESSION_START + timedelta(days=2)))

    result = await resolver.resolve_instance("81234567890", SESSION_START)

    assert result.instance_uuid == "good"


def test_extract_meeting_id_prefers_location_data():
    location = EventLocation(
        type="zoom",
        join_url="https://us02web.zoom.us/j/81234567890",
        data={"id": "999 888 7777"},
    )

    assert extract_zoom_meeting_id(location) == "9998887777"


def test_extract_meeting_id_parses_join_url():
    location = EventLocation(type="zoom", join_url="https://us02web.zoom.us/j/81234567890?pwd=abc")

    assert extract_zoom_meeting_id(location) == "81234567890"


def test_extract_meeting_id_returns_none_without_zoom_link():
    assert extract_zoom_meeting_id(None) is None
    assert extract_zoom_meeting_id(EventLocation(type="physical")) is None
    assert (
        extract_zoom_meeting_id(EventLocation(type="google_conference", join_url="https://meet.google.com/abc"))
        is None
    )


@pytest.mark.asyncio
async def test_resolver_reports_no_data_for_session_not_started():
    fake_client = FakeZoomClient(
        [{"uuid": "previous-week", "start_time": "2025-12-27T13:00:00Z"}]
    )
    resolver = ZoomMeetingResolver(fake_client, clock=_clock(SESSION_START - timedelta(days=3)))

    result = await resolver.resolve_instance("81234567890", SESSION_START)

    assert result.reliable is False
    assert result.lookup_ref is None
    assert fake_client.called_with == []
