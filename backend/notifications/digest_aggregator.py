"""
Digest aggregation: deliver due queue items in batches.

A daily or weekly digest run groups every due item by (user, channel) and
sends exactly one message per group, covering all of the group's meetings.
The whole group then moves to sent or failed together.

The notify job reuses the same machinery to flush immediate notifications
that were held back by SMS quiet hours; those go out one item per message.
"""

from collections import defaultdict
from datetime import datetime
from typing import Any

from models.meeting import ChangeEvent, DigestPayload, MeetingAlert
from models.notification import (
    Channel,
    DeliveryType,
    Frequency,
    QueueItem,
    QueueStatus,
    RunStats,
)
from models.subscription import Subscriber, Subscription
from models.types import MeetingID, QueueItemID, UserID
from notifications.change_detector import get_meetings
from notifications.delivery_executor import DeliveryExecutor
from notifications.notification_log import sent_channels
from notifications.queue_store import mark_items, select_due
from notifications.quiet_hours import is_quiet_hours
from notifications.subscriber_resolver import get_subscribers, subscriptions_by_id
from notifications.unsubscribe_tokens import build_unsubscribe_url

DigestGroups = dict[tuple[UserID, Channel], list[QueueItem]]


class _QueueContext:
    """Everything needed to deliver a batch of queue items, loaded once."""

    def __init__(self, supabase: Any, items: list[QueueItem]):
        self.subscriptions: dict[Any, Subscription] = subscriptions_by_id(
            supabase, {item.subscription_id for item in items}
        )
        # Deleting a subscription after selection also deleted its queue rows
        self.items = [item for item in items if item.subscription_id in self.subscriptions]
        self.subscribers: dict[UserID, Subscriber] = get_subscribers(
            supabase, {s.user_id for s in self.subscriptions.values()}
        )
        self.meetings: dict[MeetingID, ChangeEvent] = get_meetings(
            supabase, {item.meeting_id for item in items}
        )
        self.sent = sent_channels(
            supabase, {(item.subscription_id, item.meeting_id) for item in items}
        )

    def undeliverable_reason(self, item: QueueItem) -> str | None:
        subscription = self.subscriptions[item.subscription_id]
        if not subscription.active:
            return "Subscription inactive"
        subscriber = self.subscribers.get(subscription.user_id)
        if subscriber is None:
            return "User not found"
        if not subscriber.can_receive(item.channel):
            return f"User not confirmed for {item.channel.value}"
        if item.meeting_id not in self.meetings:
            return "Meeting not found"
        return None

    def already_sent(self, item: QueueItem) -> bool:
        return item.channel in self.sent.get((item.subscription_id, item.meeting_id), set())


def group_due_items(
    items: list[QueueItem], subscriptions: dict[Any, Subscription]
) -> DigestGroups:
    """Group queue items by (user, channel), keeping queue order within a group."""
    groups: DigestGroups = defaultdict(list)
    for item in items:
        subscription = subscriptions[item.subscription_id]
        groups[(subscription.user_id, item.channel)].append(item)
    return dict(groups)


def _close_out(
    supabase: Any,
    context: _QueueContext,
    items: list[QueueItem],
    now: datetime,
    stats: RunStats,
    dry_run: bool,
) -> list[QueueItem]:
    """
    Settle items that must not be sent and return the rest.

    Undeliverable items are marked failed with the reason; items the log
    shows as already delivered are marked sent without another send.
    """
    deliverable = []
    for item in items:
        reason = context.undeliverable_reason(item)
        if reason is None and not context.already_sent(item):
            deliverable.append(item)
            continue

        stats.skipped += 1
        if reason is not None:
            print(f"  ⚠️  Queue item {item.id}: {reason}, marking failed")
            if not dry_run:
                mark_items(supabase, [item.id], QueueStatus.FAILED, now, error_message=reason)
        else:
            print(f"  ⊘ Queue item {item.id} already delivered, marking sent")
            if not dry_run:
                mark_items(supabase, [item.id], QueueStatus.SENT, now)
    return deliverable


def process_digests(
    supabase: Any,
    frequency: Frequency,
    now: datetime,
    executor: DeliveryExecutor,
    stats: RunStats | None = None,
) -> RunStats:
    """
    Send one digest per (user, channel) for every due item of a cadence.

    Args:
        supabase: Store client
        frequency: Frequency.DAILY or Frequency.WEEKLY
        now: Current time
        executor: Delivery executor (its dry_run flag suppresses all writes)
        stats: Counters to update; a new RunStats is created if omitted

    Returns:
        The updated run statistics
    """
    if frequency is Frequency.IMMEDIATE:
        raise ValueError("Digests are only built for daily or weekly subscriptions")

    stats = stats or RunStats()
    dry_run = executor.dry_run

    items = select_due(supabase, frequency, now)
    print(f"  Pending {frequency.value} queue items due: {len(items)}")
    if not items:
        return stats

    context = _QueueContext(supabase, items)
    delivery_type = DeliveryType.for_frequency(frequency)
    groups = group_due_items(context.items, context.subscriptions)
    print(f"  Digest groups (user, channel): {len(groups)}")

    for (user_id, channel), group in groups.items():
        deliverable = _close_out(supabase, context, group, now, stats, dry_run)
        if not deliverable:
            continue

        if channel is Channel.SMS and is_quiet_hours(now):
            print(f"  ⏸  SMS digest for user {user_id} held until quiet hours end")
            stats.deferred += len(deliverable)
            continue

        meetings: list[ChangeEvent] = []
        for item in deliverable:
            meeting = context.meetings[item.meeting_id]
            if meeting not in meetings:
                meetings.append(meeting)

        payload = DigestPayload(
            frequency=frequency,
            meetings=meetings,
            unsubscribe_url=build_unsubscribe_url(user_id, required=not dry_run),
        )

        print(f"\n  Sending {frequency.value} {channel.value} digest to user {user_id} "
              f"({len(deliverable)} item(s), {payload.count} meeting(s))...")
        success = executor.deliver(
            supabase,
            channel,
            context.subscribers[user_id],
            payload,
            pairs=[(item.subscription_id, item.meeting_id) for item in deliverable],
            delivery_type=delivery_type,
            now=now,
            queue_item_ids=[item.id for item in deliverable],
        )
        stats.record_digest(success)

    return stats


def flush_deferred(
    supabase: Any,
    now: datetime,
    executor: DeliveryExecutor,
    limit: int,
    stats: RunStats | None = None,
) -> RunStats:
    """
    Send immediate notifications whose quiet-hours deferral has expired.

    SMS items found while quiet hours are still in force stay pending.
    """
    stats = stats or RunStats()
    dry_run = executor.dry_run

    items = select_due(supabase, Frequency.IMMEDIATE, now, limit=limit)
    if not items:
        return stats
    print(f"\n  Deferred notifications now due: {len(items)}")

    context = _QueueContext(supabase, items)
    deliverable = _close_out(supabase, context, context.items, now, stats, dry_run)

    quiet = is_quiet_hours(now)
    attempted: set[QueueItemID] = set()
    for item in deliverable:
        if item.channel is Channel.SMS and quiet:
            continue
        subscription = context.subscriptions[item.subscription_id]
        payload = MeetingAlert(
            meeting=context.meetings[item.meeting_id],
            unsubscribe_url=build_unsubscribe_url(subscription.user_id, required=not dry_run),
        )
        success = executor.deliver(
            supabase,
            item.channel,
            context.subscribers[subscription.user_id],
            payload,
            pairs=[(item.subscription_id, item.meeting_id)],
            delivery_type=DeliveryType.IMMEDIATE,
            now=now,
            queue_item_ids=[item.id],
        )
        stats.record_send(success)
        attempted.add(item.id)

    stats.deferred += len(deliverable) - len(attempted)
    return stats
