"""
Queue store: durable holding area for deferred and digest notifications.

Rows are unique per (subscription_id, meeting_id, channel); inserting an
existing triple is a no-op. A row leaves 'pending' exactly once, to 'sent' or
'failed', and never goes back.
"""

from datetime import datetime, timedelta
from typing import Any

from config.settings import QUEUE_RETENTION_DAYS
from models.notification import Channel, Frequency, QueueItem, QueueStatus
from models.types import MeetingID, QueueItemID, SubscriptionID
from shared.db import fetch_all, is_unique_violation
from shared.utils import to_iso

QUEUE_TABLE = "notification_queue"


def enqueue(
    supabase: Any,
    subscription_id: SubscriptionID,
    meeting_id: MeetingID,
    channel: Channel,
    scheduled_for: datetime,
    now: datetime,
) -> bool:
    """
    Queue one notification.

    Returns:
        True if a row was created, False if the triple was already queued
        (in any status)
    """
    row = {
        "subscription_id": subscription_id,
        "meeting_id": meeting_id,
        "channel": channel.value,
        "status": QueueStatus.PENDING.value,
        "scheduled_for": to_iso(scheduled_for),
        "created_at": to_iso(now),
    }
    try:
        supabase.table(QUEUE_TABLE).insert(row).execute()
        return True
    except Exception as e:
        # Unique constraint on (subscription_id, meeting_id, channel)
        if is_unique_violation(e):
            return False
        raise


def select_due(
    supabase: Any,
    frequency: Frequency,
    now: datetime,
    limit: int | None = None,
) -> list[QueueItem]:
    """
    Pending items due at `now` whose subscription has the given cadence.

    Items of inactive subscriptions are included so the caller can close
    them out instead of leaving them pending forever. Rows of deleted
    subscriptions are removed by the store (ON DELETE CASCADE).

    Args:
        supabase: Store client
        frequency: Cadence of the owning subscription
        now: Current time
        limit: Maximum number of items; every due item when omitted
    """
    def build_query() -> Any:
        return (
            supabase.table(QUEUE_TABLE)
            .select("*, subscriptions!inner(frequency)")
            .eq("status", QueueStatus.PENDING.value)
            .eq("subscriptions.frequency", frequency.value)
            .lte("scheduled_for", to_iso(now))
            .order("scheduled_for", desc=False)
            .order("id", desc=False)
        )

    if limit is not None:
        rows = build_query().limit(limit).execute().data or []
    else:
        rows = fetch_all(build_query)
    return [QueueItem(**row) for row in rows]


def mark_items(
    supabase: Any,
    item_ids: list[QueueItemID],
    status: QueueStatus,
    now: datetime,
    error_message: str | None = None,
) -> int:
    """
    Move pending items to a terminal status in one batch update.

    Items no longer pending (claimed by an overlapping run) are left alone.

    Returns:
        Number of rows transitioned
    """
    if status is QueueStatus.PENDING:
        raise ValueError("Queue items cannot be moved back to pending")
    if not item_ids:
        return 0

    update: dict[str, Any] = {"status": status.value, "sent_at": to_iso(now)}
    if error_message:
        update["error_message"] = error_message

    response = (
        supabase.table(QUEUE_TABLE)
        .update(update)
        .in_("id", list(item_ids))
        .eq("status", QueueStatus.PENDING.value)
        .execute()
    )
    return len(response.data or [])


def purge_finished(
    supabase: Any, now: datetime, retention_days: int = QUEUE_RETENTION_DAYS
) -> int:
    """Delete sent/failed rows older than the retention period."""
    cutoff = now - timedelta(days=retention_days)
    response = (
        supabase.table(QUEUE_TABLE)
        .delete()
        .in_("status", [QueueStatus.SENT.value, QueueStatus.FAILED.value])
        .lt("sent_at", to_iso(cutoff))
        .execute()
    )
    return len(response.data or [])


def count_finished_before(
    supabase: Any, now: datetime, retention_days: int = QUEUE_RETENTION_DAYS
) -> int:
    """How many rows purge_finished would delete (used by dry runs)."""
    cutoff = now - timedelta(days=retention_days)
    response = (
        supabase.table(QUEUE_TABLE)
        .select("id")
        .in_("status", [QueueStatus.SENT.value, QueueStatus.FAILED.value])
        .lt("sent_at", to_iso(cutoff))
        .execute()
    )
    return len(response.data or [])
