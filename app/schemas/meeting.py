# app/schemas/meeting.py
from datetime import datetime

from pydantic import BaseModel, Field


class MeetingInstance(BaseModel):
    """
    Represents the resolved occurrence of a (possibly recurring) Zoom meeting
    for a specific session start.

    Does not include attendance data; see SessionAttendance.
    """

    meeting_id: str = Field(..., description="Numeric Zoom meeting id from the join URL.")
    instance_uuid: str | None = Field(
        None,
        description="Uuid of the past instance matching the session start, if found.",
    )
    start_time_utc: datetime | None = Field(
        None, description="UTC start time of the matched instance."
    )
    reliable: bool = Field(
        True,
        description=(
            "False when no instance matched and the session is too old for the "
            "generic meeting id to be trusted; attendance must then be treated "
            "as unavailable."
        ),
    )

    @property
    def lookup_ref(self) -> str | None:
        """
        Identifier to query the participants report with, or None when the
        data would not be reliable.
        """
        if not self.reliable:
            return None
        return self.instance_uuid or self.meeting_id
