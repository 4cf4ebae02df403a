# app/schemas/webinar.py
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from app.schemas.calendly import Registrant


class TimeDirection(str, Enum):
    """
    Which side of "now" an overview covers.
    """

    UPCOMING = "upcoming"
    PAST = "past"


class Session(BaseModel):
    """
    One real-world occurrence of a webinar after merging every Calendly event
    that shares its start instant.
    """

    start_time: datetime = Field(..., description="Start instant; the grouping key.")
    end_time: datetime | None = Field(None, description="End instant of the first merged event.")
    event_name: str = Field(..., description="Title of the first merged event.")
    join_url: str | None = Field(None, description="Join URL of the first merged event.")
    meeting_id: str | None = Field(None, description="Zoom meeting id parsed from the location.")
    registrants: list[Registrant] = Field(
        default_factory=list,
        description="Registrants of all merged events, in encounter order.",
    )


class SessionStats(BaseModel):
    """
    Serialized session as returned to dashboard clients.
    """

    event_name: str = Field(..., examples=["Bhopal Collective Webinar"])
    date_string: str = Field(..., description="Display date.", examples=["Sat, 3 Jan 2026"])
    time_string: str = Field(..., description="Display time.", examples=["06:30 PM"])
    day_part: str = Field(..., examples=["3"])
    month_part: str = Field(..., examples=["Jan"])
    start_time: datetime = Field(..., description="Raw ISO start instant.")
    end_time: datetime | None = Field(None, description="Raw ISO end instant.")
    registrants: list[Registrant] = Field(default_factory=list)
    registrant_count: int = Field(..., examples=[12])
    join_url: str | None = Field(None)
    meeting_id: str | None = Field(None, examples=["81234567890"])
    attendance_checked: bool = Field(
        False,
        description="True when Zoom attendance was resolved for this session.",
    )
    matched_attendance_count: int = Field(0, description="Attendees matched to a registrant.")
    total_attendance_count: int = Field(0, description="Deduplicated attendees.")
    external_attendance_count: int = Field(0, description="Attendees with no registrant.")
    attendance_rate: int | None = Field(
        None,
        description=(
            "round(matched / registrants * 100). Null when there are no "
            "registrants or attendance was not checked."
        ),
        examples=[75],
    )


class CohortStats(BaseModel):
    """
    Per-collective rollup of sessions and attendance.
    """

    collective: str = Field(..., examples=["Bhopal"])
    sessions: list[SessionStats] = Field(default_factory=list)
    total_registrants: int = Field(0)
    total_matched_attendance: int = Field(0)
    total_attendance: int = Field(0)


class GlobalStats(BaseModel):
    """
    Cross-collective rollup.
    """

    total_registrants: int = Field(0)
    total_matched_attendance: int = Field(0)
    total_attendance: int = Field(0)
    next_session: SessionStats | None = Field(
        None,
        description="Nearest session still in the future, if any.",
    )
    total_sessions: int = Field(0)


class WebinarOverview(BaseModel):
    """
    Response payload of the /api/webinars endpoints.
    """

    direction: TimeDirection
    generated_at: datetime
    collectives: list[CohortStats] = Field(default_factory=list)
    global_stats: GlobalStats
