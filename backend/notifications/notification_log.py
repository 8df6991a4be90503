"""
Notification log: append-only audit of every delivery attempt.

A 'sent' entry for (subscription, meeting, channel) is what stops any later
run from delivering that pair on that channel again. The store also carries a
partial unique index on sent entries, so a racing duplicate insert is refused.
"""

from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from models.notification import Channel, DeliveryStatus, NotificationLogEntry
from models.types import MeetingID, SubscriptionID
from shared.db import fetch_all, is_unique_violation
from shared.utils import to_iso

LOG_TABLE = "notification_log"

SentIndex = dict[tuple[SubscriptionID, MeetingID], set[Channel]]


def append_entries(
    supabase: Any, entries: list[NotificationLogEntry], now: datetime
) -> int:
    """
    Append log entries, one insert per entry.

    Returns:
        Number of entries written. A 'sent' entry refused by the unique index
        (another run already logged that delivery) is not counted.
    """
    written = 0
    for entry in entries:
        row = entry.model_dump(mode="json", exclude_none=True)
        row["created_at"] = to_iso(entry.created_at or now)
        try:
            supabase.table(LOG_TABLE).insert(row).execute()
            written += 1
        except Exception as e:
            if entry.status is DeliveryStatus.SENT and is_unique_violation(e):
                print(
                    f"  ⊘ Delivery of meeting {entry.meeting_id} to subscription "
                    f"{entry.subscription_id} via {entry.channel.value} already logged"
                )
                continue
            raise
    return written


def sent_channels(
    supabase: Any, pairs: Iterable[tuple[SubscriptionID, MeetingID]]
) -> SentIndex:
    """
    Channels already delivered successfully for each (subscription, meeting).

    Pairs with no successful delivery are absent from the result.
    """
    pairs = set(pairs)
    if not pairs:
        return {}

    subscription_ids = sorted({subscription_id for subscription_id, _ in pairs})
    meeting_ids = sorted({meeting_id for _, meeting_id in pairs})

    def build_query() -> Any:
        return (
            supabase.table(LOG_TABLE)
            .select("subscription_id, meeting_id, channel")
            .eq("status", DeliveryStatus.SENT.value)
            .in_("subscription_id", subscription_ids)
            .in_("meeting_id", meeting_ids)
            .order("id", desc=False)
        )

    # The filter is the cross product of both id lists; keep requested pairs only
    index: SentIndex = defaultdict(set)
    for row in fetch_all(build_query):
        key = (row["subscription_id"], row["meeting_id"])
        if key in pairs:
            index[key].add(Channel(row["channel"]))
    return dict(index)
