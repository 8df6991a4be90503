"""Pydantic models for data validation and type checking."""

from models.meeting import (
    ChangeEvent,
    DigestPayload,
    MeetingAlert,
    NotificationPayload,
)
from models.notification import (
    Channel,
    DeliveryStatus,
    DeliveryType,
    Frequency,
    NotificationLogEntry,
    QueueItem,
    QueueStatus,
    RunStats,
    RunWatermark,
)
from models.subscription import Subscriber, Subscription

__all__ = [
    "ChangeEvent",
    "MeetingAlert",
    "DigestPayload",
    "NotificationPayload",
    "Channel",
    "Frequency",
    "QueueStatus",
    "DeliveryStatus",
    "DeliveryType",
    "QueueItem",
    "NotificationLogEntry",
    "RunStats",
    "RunWatermark",
    "Subscription",
    "Subscriber",
]
