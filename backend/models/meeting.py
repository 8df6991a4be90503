"""Pydantic models for meeting change events and notification payloads."""

from datetime import date, datetime, time

from pydantic import BaseModel, ConfigDict, Field

from models.notification import Frequency
from models.types import CouncilID, MeetingID


class ChangeEvent(BaseModel):
    """A meeting created or updated upstream since the last watermark."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: MeetingID
    state_id: int | None = None
    title: str = "Meeting"
    meeting_date: date
    meeting_time: time | None = None
    location: str | None = None
    council_id: CouncilID
    council_name: str | None = None
    updated_at: datetime


class MeetingAlert(BaseModel):
    """Payload for a single-meeting notification."""

    meeting: ChangeEvent
    unsubscribe_url: str | None = None


class DigestPayload(BaseModel):
    """Payload for a batched digest: one message covering many meetings."""

    frequency: Frequency
    meetings: list[ChangeEvent] = Field(..., min_length=1)
    unsubscribe_url: str | None = None

    @property
    def count(self) -> int:
        return len(self.meetings)


NotificationPayload = MeetingAlert | DigestPayload
