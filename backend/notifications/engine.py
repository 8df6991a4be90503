"""
Batch jobs of the dispatch engine.

Each job is a single pass meant to be invoked by cron:

- notify: every 15 minutes. Detects meeting changes since the last watermark,
  sends or queues a notification per subscriber/channel, flushes deferred
  SMS whose quiet-hours hold has expired, then records the new watermark.
- daily / weekly digest: once per cadence. Sends one digest per user and
  channel for everything queued and due.
- purge: daily. Deletes old sent/failed queue rows.

Reads and decisions failing abort the job before the watermark is written,
so the next invocation retries the same window. Send failures never abort.
"""

import os
import socket
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from config.settings import (
    DAILY_DIGEST_JOB,
    DEFERRED_BATCH_LIMIT,
    NOTIFY_JOB,
    PURGE_JOB,
    QUEUE_RETENTION_DAYS,
    WEEKLY_DIGEST_JOB,
)
from models.meeting import MeetingAlert
from models.notification import DeliveryType, Frequency, RunStats
from notifications.change_detector import find_changes
from notifications.delivery_executor import DeliveryExecutor
from notifications.digest_aggregator import flush_deferred, process_digests
from notifications.dispatch_policy import DispatchAction, decide
from notifications.queue_store import count_finished_before, enqueue, purge_finished
from notifications.run_ledger import acquire_lock, get_watermark, record_run, release_lock
from notifications.subscriber_resolver import DispatchCandidate, resolve_subscribers
from notifications.unsubscribe_tokens import build_unsubscribe_url

DIGEST_JOBS = {
    Frequency.DAILY: DAILY_DIGEST_JOB,
    Frequency.WEEKLY: WEEKLY_DIGEST_JOB,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _lock_owner() -> str:
    return f"{socket.gethostname()}:{os.getpid()}:{uuid4().hex[:8]}"


def _require_signing_key(dry_run: bool) -> None:
    # Every outgoing notification carries an unsubscribe link
    if not dry_run and not os.getenv("UNSUBSCRIBE_SECRET_KEY"):
        raise ValueError("UNSUBSCRIBE_SECRET_KEY environment variable must be set.")


@contextmanager
def job_lock(supabase: Any, job_name: str, now: datetime, dry_run: bool) -> Iterator[bool]:
    """Hold the advisory lock for a job; yields False if someone else has it."""
    if dry_run:
        yield True
        return

    owner = _lock_owner()
    acquired = acquire_lock(supabase, job_name, owner, now)
    try:
        yield acquired
    finally:
        if acquired:
            release_lock(supabase, job_name, owner)


def run_notify_job(
    supabase: Any,
    now: datetime | None = None,
    dry_run: bool = False,
    executor: DeliveryExecutor | None = None,
) -> RunStats:
    """
    Detect changes and dispatch notifications for them.

    Args:
        supabase: Store client
        now: Run start time (defaults to the current UTC time)
        dry_run: Decide everything but send and write nothing
        executor: Delivery executor; one with the default transports is
            created when omitted

    Returns:
        Counters for the run
    """
    now = now or _utcnow()
    stats = RunStats()
    _require_signing_key(dry_run)

    with job_lock(supabase, NOTIFY_JOB, now, dry_run) as acquired:
        if not acquired:
            print(f"  ⊘ {NOTIFY_JOB} is already running elsewhere, nothing to do")
            return stats

        since = get_watermark(supabase, NOTIFY_JOB, now)
        print(f"  Last successful run: {since.isoformat()}")

        events = find_changes(supabase, since, now)
        stats.meetings_changed = len(events)
        print(f"  Meetings changed since last run: {len(events)}")

        candidates = resolve_subscribers(supabase, events)
        stats.pairs_considered = len(candidates)
        print(f"  Subscriber/meeting pairs to notify: {len(candidates)}")

        owns_executor = executor is None
        executor = executor or DeliveryExecutor(dry_run=dry_run)
        try:
            for candidate in candidates:
                _dispatch(supabase, candidate, now, executor, stats, dry_run)

            flush_deferred(supabase, now, executor, DEFERRED_BATCH_LIMIT, stats)
        finally:
            if owns_executor:
                executor.close()

        if dry_run:
            print("  [DRY RUN] Watermark not recorded")
        else:
            record_run(supabase, NOTIFY_JOB, now, stats)

    return stats


def _dispatch(
    supabase: Any,
    candidate: DispatchCandidate,
    now: datetime,
    executor: DeliveryExecutor,
    stats: RunStats,
    dry_run: bool,
) -> None:
    """Apply the dispatch policy to every channel of one candidate."""
    subscription = candidate.subscription
    event = candidate.event

    for channel in candidate.channels:
        decision = decide(subscription.frequency, channel, now)

        if decision.action is DispatchAction.SEND_NOW:
            payload = MeetingAlert(
                meeting=event,
                unsubscribe_url=build_unsubscribe_url(subscription.user_id, required=not dry_run),
            )
            success = executor.deliver(
                supabase,
                channel,
                candidate.subscriber,
                payload,
                pairs=[(subscription.id, event.id)],
                delivery_type=DeliveryType.IMMEDIATE,
                now=now,
            )
            stats.record_send(success)
            continue

        label = "deferred" if decision.action is DispatchAction.DEFER else subscription.frequency.value
        scheduled_for = decision.scheduled_for
        if dry_run:
            print(
                f"    [DRY RUN] Would queue {label} {channel.value} for user "
                f"{subscription.user_id} meeting {event.id} at {scheduled_for.isoformat()}"
            )
            stats.notifications_queued += 1
            continue

        if enqueue(supabase, subscription.id, event.id, channel, scheduled_for, now):
            stats.notifications_queued += 1
            if decision.action is DispatchAction.DEFER:
                stats.deferred += 1
            print(
                f"    ⏸  Queued {label} {channel.value} for user {subscription.user_id} "
                f"meeting {event.id} at {scheduled_for.isoformat()}"
            )
        else:
            stats.already_queued += 1


def run_digest_job(
    supabase: Any,
    frequency: Frequency,
    now: datetime | None = None,
    dry_run: bool = False,
    executor: DeliveryExecutor | None = None,
) -> RunStats:
    """Send the daily or weekly digests that are due."""
    if frequency not in DIGEST_JOBS:
        raise ValueError(f"No digest job for {frequency.value} subscriptions")

    now = now or _utcnow()
    job_name = DIGEST_JOBS[frequency]
    stats = RunStats()
    _require_signing_key(dry_run)

    with job_lock(supabase, job_name, now, dry_run) as acquired:
        if not acquired:
            print(f"  ⊘ {job_name} is already running elsewhere, nothing to do")
            return stats

        owns_executor = executor is None
        executor = executor or DeliveryExecutor(dry_run=dry_run)
        try:
            process_digests(supabase, frequency, now, executor, stats)
        finally:
            if owns_executor:
                executor.close()

        if not dry_run:
            record_run(supabase, job_name, now, stats)

    return stats


def run_purge_job(
    supabase: Any,
    now: datetime | None = None,
    dry_run: bool = False,
    retention_days: int = QUEUE_RETENTION_DAYS,
) -> RunStats:
    """Delete sent and failed queue rows past the retention period."""
    now = now or _utcnow()
    stats = RunStats()

    with job_lock(supabase, PURGE_JOB, now, dry_run) as acquired:
        if not acquired:
            print(f"  ⊘ {PURGE_JOB} is already running elsewhere, nothing to do")
            return stats

        if dry_run:
            stats.purged = count_finished_before(supabase, now, retention_days)
            print(f"  [DRY RUN] Would purge {stats.purged} queue rows older than {retention_days} days")
            return stats

        stats.purged = purge_finished(supabase, now, retention_days)
        print(f"  Purged {stats.purged} old notification queue rows")
        record_run(supabase, PURGE_JOB, now, stats)

    return stats
