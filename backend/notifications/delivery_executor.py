"""
Delivery executor: one transport call plus its bookkeeping.

Every call runs under a hard timeout; a timeout, a raised exception and a
False return from the transport are all the same thing - a failed delivery,
recorded and not retried within the run.
"""

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from datetime import datetime
from typing import Any

from config.settings import TRANSPORT_TIMEOUT_SECONDS
from models.meeting import DigestPayload, NotificationPayload
from models.notification import (
    Channel,
    DeliveryStatus,
    DeliveryType,
    NotificationLogEntry,
    QueueStatus,
)
from models.subscription import Subscriber
from models.types import MeetingID, QueueItemID, SubscriptionID
from notifications.email_sender import send_email
from notifications.error_logger import log_notification_error
from notifications.notification_log import append_entries
from notifications.queue_store import mark_items
from notifications.sms_sender import send_message

Transport = Callable[[str, NotificationPayload], bool]


def default_transports() -> dict[Channel, Transport]:
    return {Channel.EMAIL: send_email, Channel.SMS: send_message}


class DeliveryExecutor:
    """Sends payloads over channel transports and records the outcome."""

    def __init__(
        self,
        transports: dict[Channel, Transport] | None = None,
        timeout: float = TRANSPORT_TIMEOUT_SECONDS,
        dry_run: bool = False,
    ):
        self.transports = transports or default_transports()
        self.timeout = timeout
        self.dry_run = dry_run
        self._pool: ThreadPoolExecutor | None = None

    def send(self, channel: Channel, subscriber: Subscriber, payload: NotificationPayload) -> bool:
        """Invoke the channel transport once. True only on confirmed success."""
        success, _ = self._attempt(channel, subscriber, payload)
        return success

    def deliver(
        self,
        supabase: Any,
        channel: Channel,
        subscriber: Subscriber,
        payload: NotificationPayload,
        pairs: list[tuple[SubscriptionID, MeetingID]],
        delivery_type: DeliveryType,
        now: datetime,
        queue_item_ids: list[QueueItemID] | None = None,
    ) -> bool:
        """
        Send once and record the outcome for every pair the payload covers.

        Writes one notification log entry per (subscription, meeting) pair and,
        for queued deliveries, moves the queue items to sent/failed together.
        Nothing is written in dry-run mode.
        """
        success, error = self._attempt(channel, subscriber, payload)
        if self.dry_run:
            return success

        status = DeliveryStatus.SENT if success else DeliveryStatus.FAILED
        entries = [
            NotificationLogEntry(
                subscription_id=subscription_id,
                meeting_id=meeting_id,
                channel=channel,
                status=status,
                delivery_type=delivery_type,
                error_message=error,
            )
            for subscription_id, meeting_id in pairs
        ]
        append_entries(supabase, entries, now)

        if queue_item_ids:
            mark_items(
                supabase,
                queue_item_ids,
                QueueStatus.SENT if success else QueueStatus.FAILED,
                now,
                error_message=error,
            )

        if not success:
            error_file = log_notification_error(
                error_type="sending",
                error_message=error or "Unknown error",
                context={
                    "user_id": subscriber.id,
                    "channel": channel.value,
                    "delivery_type": delivery_type.value,
                    "meeting_ids": sorted({meeting_id for _, meeting_id in pairs}),
                    "queue_item_ids": queue_item_ids or [],
                },
            )
            print(f"    Error details logged to: {error_file}")

        return success

    def close(self) -> None:
        if self._pool is not None:
            self._pool.shutdown(wait=False)
            self._pool = None

    def _attempt(
        self, channel: Channel, subscriber: Subscriber, payload: NotificationPayload
    ) -> tuple[bool, str | None]:
        address = subscriber.address_for(channel)
        if address is None:
            return False, f"User {subscriber.id} has no {channel.value} address"

        description = (
            f"{payload.frequency.value} digest with {payload.count} meeting(s)"
            if isinstance(payload, DigestPayload)
            else f"meeting {payload.meeting.id}"
        )

        if self.dry_run:
            print(f"    [DRY RUN] Would {channel.value} {address}: {description}")
            return True, None

        transport = self.transports[channel]
        if self._pool is None:
            self._pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notify-transport")

        future = self._pool.submit(transport, address, payload)
        try:
            success = bool(future.result(timeout=self.timeout))
        except FutureTimeoutError:
            # The worker may stay blocked; give the next send a fresh pool
            self._pool.shutdown(wait=False)
            self._pool = None
            print(f"    ✗ {channel.value} to user {subscriber.id} timed out after {self.timeout}s")
            return False, f"Transport timed out after {self.timeout}s"
        except Exception as e:
            print(f"    ✗ {channel.value} to user {subscriber.id} failed: {e}")
            return False, str(e)

        if not success:
            print(f"    ✗ {channel.value} to user {subscriber.id} was refused")
            return False, "Transport reported failure"

        print(f"    ✓ Sent {channel.value} to user {subscriber.id} ({description})")
        return True, None

    def __enter__(self) -> "DeliveryExecutor":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
