# app/schemas/attendance.py
from datetime import datetime

from pydantic import BaseModel, Field


class AttendanceRecord(BaseModel):
    """
    A raw participant entry from a Zoom meeting participants report.

    The same person re-joining a meeting shows up as several records.
    """

    name: str = Field("", description="Participant display name.", examples=["Asha Rao"])
    email: str = Field("", description="Participant email; empty for guests.", examples=["asha@example.com"])
    join_time: datetime | None = Field(None, description="Join instant of this record.")
    duration: int = Field(
        0,
        ge=0,
        description="Seconds spent in the meeting for this record.",
        examples=[1800],
    )


class MatchResult(BaseModel):
    """
    Partition of deduplicated attendance into registrant-matched and
    external (walk-in or unresolvable) records.
    """

    matched: list[AttendanceRecord] = Field(default_factory=list)
    external: list[AttendanceRecord] = Field(default_factory=list)


class SessionAttendance(BaseModel):
    """
    Normalized view of a session's attendance, derived from the Zoom
    participants report and matched against the session's registrants.
    """

    meeting_id: str | None = Field(
        None,
        description="Zoom meeting id (or resolved instance uuid) used for lookup.",
        examples=["81234567890"],
    )
    has_data: bool = Field(
        ...,
        description=(
            "Indicates whether usable attendance data was retrieved. When false, "
            "records and match lists are empty."
        ),
    )
    records: list[AttendanceRecord] = Field(
        default_factory=list,
        description="Deduplicated attendance, one record per identity.",
    )
    match: MatchResult = Field(default_factory=MatchResult)
    raw: dict | None = Field(
        None,
        description="Error marker for troubleshooting when retrieval failed.",
    )

    @property
    def matched_count(self) -> int:
        return len(self.match.matched)

    @property
    def external_count(self) -> int:
        return len(self.match.external)

    @property
    def total_count(self) -> int:
        return len(self.records)
