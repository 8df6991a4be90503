"""
Subscriber resolution: which subscriptions care about which change events.

Maps each changed meeting to the active subscriptions for its council, keeps
only channels the subscriber has confirmed, and drops every channel on which
the subscriber was already notified about that meeting - whether by an
earlier run (notification log) or earlier in this run through another
subscription.
"""

from collections import defaultdict
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError

from models.meeting import ChangeEvent
from models.notification import Channel
from models.subscription import Subscriber, Subscription
from models.types import CouncilID, MeetingID, UserID
from notifications.notification_log import sent_channels
from shared.db import fetch_all


class DispatchCandidate(BaseModel):
    """One (subscription, meeting) pair and the channels still to notify."""

    subscription: Subscription
    subscriber: Subscriber
    event: ChangeEvent
    channels: list[Channel]


def active_subscriptions_for(
    supabase: Any, council_ids: Iterable[CouncilID]
) -> list[Subscription]:
    """Active subscriptions for the given councils, ordered by user then id."""
    council_ids = sorted(set(council_ids))
    if not council_ids:
        return []

    def build_query() -> Any:
        return (
            supabase.table("subscriptions")
            .select("id, user_id, council_id, channels, frequency, active")
            .in_("council_id", council_ids)
            .eq("active", True)
            .order("user_id", desc=False)
            .order("id", desc=False)
        )

    subscriptions = []
    for row in fetch_all(build_query):
        try:
            subscriptions.append(Subscription(**row))
        except ValidationError as e:
            print(f"  ⚠️  Skipping invalid subscription {row.get('id')}: {e.error_count()} error(s)")
    return subscriptions


def subscriptions_by_id(
    supabase: Any, subscription_ids: Iterable[Any]
) -> dict[Any, Subscription]:
    """Subscriptions by id, active or not."""
    subscription_ids = sorted(set(subscription_ids))
    if not subscription_ids:
        return {}

    def build_query() -> Any:
        return (
            supabase.table("subscriptions")
            .select("id, user_id, council_id, channels, frequency, active")
            .in_("id", subscription_ids)
            .order("id", desc=False)
        )

    subscriptions = {}
    for row in fetch_all(build_query):
        try:
            subscriptions[row["id"]] = Subscription(**row)
        except ValidationError as e:
            print(f"  ⚠️  Skipping invalid subscription {row.get('id')}: {e.error_count()} error(s)")
    return subscriptions


def get_subscribers(supabase: Any, user_ids: Iterable[UserID]) -> dict[UserID, Subscriber]:
    """Subscriber contact and confirmation details keyed by user id."""
    user_ids = sorted(set(user_ids))
    if not user_ids:
        return {}

    def build_query() -> Any:
        return (
            supabase.table("users")
            .select("id, email, phone, confirmed_email, confirmed_phone")
            .in_("id", user_ids)
            .order("id", desc=False)
        )

    return {row["id"]: Subscriber(**row) for row in fetch_all(build_query)}


def resolve_subscribers(
    supabase: Any, events: list[ChangeEvent]
) -> list[DispatchCandidate]:
    """
    Compute the (subscription, meeting) pairs to dispatch.

    Args:
        supabase: Store client
        events: Change events, oldest first

    Returns:
        Candidates in event order; each lists at least one channel
    """
    if not events:
        return []

    subscriptions = active_subscriptions_for(supabase, (e.council_id for e in events))
    if not subscriptions:
        return []

    subscribers = get_subscribers(supabase, (s.user_id for s in subscriptions))

    subs_by_council: dict[CouncilID, list[Subscription]] = defaultdict(list)
    owner_of = {}
    for subscription in subscriptions:
        subscriber = subscribers.get(subscription.user_id)
        if subscriber is None:
            print(
                f"  ⚠️  Subscription {subscription.id} references missing user "
                f"{subscription.user_id}, skipping"
            )
            continue
        if not subscriber.has_confirmed_channel:
            continue
        subs_by_council[subscription.council_id].append(subscription)
        owner_of[subscription.id] = subscription.user_id

    pairs = [
        (subscription.id, event.id)
        for event in events
        for subscription in subs_by_council.get(event.council_id, [])
    ]

    # Anything already delivered to this user about this meeting, via any
    # of their subscriptions, counts as notified
    notified: set[tuple[UserID, MeetingID, Channel]] = set()
    for (subscription_id, meeting_id), channels in sent_channels(supabase, pairs).items():
        for channel in channels:
            notified.add((owner_of[subscription_id], meeting_id, channel))

    candidates = []
    for event in events:
        for subscription in subs_by_council.get(event.council_id, []):
            subscriber = subscribers[subscription.user_id]
            channels = []
            for channel in subscription.channels:
                if not subscriber.can_receive(channel):
                    continue
                key = (subscriber.id, event.id, channel)
                if key in notified:
                    continue
                notified.add(key)
                channels.append(channel)

            if channels:
                candidates.append(
                    DispatchCandidate(
                        subscription=subscription,
                        subscriber=subscriber,
                        event=event,
                        channels=channels,
                    )
                )

    return candidates
