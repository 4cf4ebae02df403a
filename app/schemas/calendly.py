# app/schemas/calendly.py
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class EventLocation(BaseModel):
    """
    Meeting-location descriptor attached to a Calendly scheduled event.

    For Zoom-hosted webinars Calendly exposes the join URL and, when the Zoom
    integration created the meeting, the numeric meeting id under `data`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str | None = Field(None, description="Calendly location type, e.g. 'zoom'.")
    join_url: str | None = Field(
        None,
        description="Join URL of the online meeting, if any.",
        examples=["https://us02web.zoom.us/j/81234567890?pwd=abc"],
    )
    data: dict | None = Field(
        None,
        description="Provider-specific payload (Zoom meeting id, password, ...).",
    )


class RawEvent(BaseModel):
    """
    One scheduled occurrence as reported by Calendly `/scheduled_events`.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    uri: str = Field(
        ...,
        description="Opaque Calendly resource URI of the scheduled event.",
        examples=["https://api.calendly.com/scheduled_events/AAAA-BBBB"],
    )
    name: str = Field(..., description="Event title.", examples=["Bhopal Collective Webinar"])
    start_time: datetime = Field(..., description="Start instant of the occurrence.")
    end_time: datetime | None = Field(None, description="End instant of the occurrence.")
    location: EventLocation | None = Field(None, description="Meeting-location descriptor.")

    @property
    def uuid(self) -> str:
        return self.uri.rstrip("/").split("/")[-1]


class Registrant(BaseModel):
    """
    A person who registered (was invited) for a scheduled event.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field("", description="Display name entered on registration.", examples=["Asha Rao"])
    email: str = Field("", description="Registration email; may be empty.", examples=["asha@example.com"])
    phone: str | None = Field(None, description="SMS reminder number, if provided.")
    status: str = Field("active", description="Calendly invitee status (active/canceled).")
