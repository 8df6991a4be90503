"""Factory functions for creating test meeting, council and queue data."""

import itertools
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from shared.utils import to_iso

_ids = itertools.count(5000)


def create_test_council(council_id: int = 1, name: str = "Honolulu City Council") -> Dict[str, Any]:
    return {"id": council_id, "name": name}


def create_test_meeting(
    meeting_id: Optional[int] = None,
    council_id: int = 1,
    title: str = "Regular Meeting",
    meeting_date: str = "2026-10-22",
    meeting_time: Optional[str] = "09:30:00",
    location: Optional[str] = "Honolulu Hale, 530 S King St",
    updated_at: Optional[datetime] = None,
    **overrides,
) -> Dict[str, Any]:
    """
    Factory for creating a meetings row.

    Args:
        meeting_id: Meeting id (defaults to a fresh id)
        council_id: Owning council
        title: Meeting title
        meeting_date: ISO date, in the notification timezone
        meeting_time: ISO clock time, or None when not yet announced
        location: Meeting location
        updated_at: Last modification time (defaults to 2026-10-19 08:00 UTC)
        **overrides: Override any field

    Returns:
        Dictionary matching the meetings table
    """
    meeting_id = meeting_id if meeting_id is not None else next(_ids)
    meeting = {
        "id": meeting_id,
        "state_id": meeting_id + 100000,
        "title": title,
        "meeting_date": meeting_date,
        "meeting_time": meeting_time,
        "location": location,
        "council_id": council_id,
        "updated_at": to_iso(updated_at or datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)),
    }
    meeting.update(overrides)
    return meeting


def create_test_queue_item(
    item_id: Optional[int] = None,
    subscription_id: int = 1,
    meeting_id: int = 1,
    channel: str = "email",
    status: str = "pending",
    scheduled_for: Optional[datetime] = None,
    **overrides,
) -> Dict[str, Any]:
    """Factory for creating a notification_queue row."""
    created = datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)
    item = {
        "id": item_id,
        "subscription_id": subscription_id,
        "meeting_id": meeting_id,
        "channel": channel,
        "status": status,
        "scheduled_for": to_iso(scheduled_for or created),
        "sent_at": None,
        "error_message": None,
        "created_at": to_iso(created),
    }
    item.update(overrides)
    return item


def create_test_log_entry(
    subscription_id: int = 1,
    meeting_id: int = 1,
    channel: str = "email",
    status: str = "sent",
    delivery_type: str = "immediate",
    **overrides,
) -> Dict[str, Any]:
    """Factory for creating a notification_log row."""
    entry = {
        "subscription_id": subscription_id,
        "meeting_id": meeting_id,
        "channel": channel,
        "status": status,
        "delivery_type": delivery_type,
        "created_at": to_iso(datetime(2026, 10, 19, 8, 0, tzinfo=timezone.utc)),
    }
    entry.update(overrides)
    return entry
