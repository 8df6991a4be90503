"""Pydantic models for the notification dispatch engine."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from models.types import JobName, MeetingID, QueueItemID, SubscriptionID


class Channel(str, Enum):
    """Delivery channel. SMS is the message channel bound by quiet hours."""

    EMAIL = "email"
    SMS = "sms"


class Frequency(str, Enum):
    """Subscriber-chosen delivery cadence."""

    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


class QueueStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class DeliveryStatus(str, Enum):
    """Outcome recorded in the notification log."""

    SENT = "sent"
    FAILED = "failed"


class DeliveryType(str, Enum):
    IMMEDIATE = "immediate"
    DAILY_DIGEST = "daily_digest"
    WEEKLY_DIGEST = "weekly_digest"

    @classmethod
    def for_frequency(cls, frequency: Frequency) -> "DeliveryType":
        return {
            Frequency.IMMEDIATE: cls.IMMEDIATE,
            Frequency.DAILY: cls.DAILY_DIGEST,
            Frequency.WEEKLY: cls.WEEKLY_DIGEST,
        }[frequency]


class QueueItem(BaseModel):
    """Deferred or digest notification waiting to be sent.

    At most one row exists per (subscription_id, meeting_id, channel).
    """

    id: QueueItemID
    subscription_id: SubscriptionID
    meeting_id: MeetingID
    channel: Channel
    status: QueueStatus = QueueStatus.PENDING
    scheduled_for: datetime
    sent_at: datetime | None = None
    error_message: str | None = None
    created_at: datetime | None = None


class NotificationLogEntry(BaseModel):
    """Append-only audit record of one delivery attempt for one pair."""

    subscription_id: SubscriptionID
    meeting_id: MeetingID
    channel: Channel
    status: DeliveryStatus
    delivery_type: DeliveryType = DeliveryType.IMMEDIATE
    error_message: str | None = None
    created_at: datetime | None = None


class RunStats(BaseModel):
    """Counters reported by every job invocation."""

    meetings_changed: int = 0
    pairs_considered: int = 0
    notifications_queued: int = 0
    already_queued: int = 0
    sent: int = 0
    failed: int = 0
    deferred: int = 0
    skipped: int = 0
    digests_sent: int = 0
    digests_failed: int = 0
    purged: int = 0

    def record_send(self, success: bool) -> None:
        if success:
            self.sent += 1
        else:
            self.failed += 1

    def record_digest(self, success: bool) -> None:
        if success:
            self.digests_sent += 1
        else:
            self.digests_failed += 1


class RunWatermark(BaseModel):
    """One successful run of a job, as stored in the run ledger."""

    job_name: JobName = Field(..., min_length=1)
    last_run: datetime
    status: str = "success"
    meetings_changed: int = 0
    notifications_queued: int = 0
    sent: int = 0
    failed: int = 0
