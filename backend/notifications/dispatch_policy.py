"""
Dispatch policy: send now, defer past quiet hours, or hold for a digest.
"""

from datetime import datetime
from enum import Enum
from typing import NamedTuple

from models.notification import Channel, Frequency
from notifications.quiet_hours import is_quiet_hours, next_digest_time, next_send_window


class DispatchAction(str, Enum):
    SEND_NOW = "send_now"
    DEFER = "defer"
    DIGEST = "digest"


class DispatchDecision(NamedTuple):
    action: DispatchAction
    scheduled_for: datetime | None = None


def decide(frequency: Frequency, channel: Channel, now: datetime) -> DispatchDecision:
    """
    Decide how one (subscription, meeting, channel) notification is delivered.

    - immediate + email: send now (email has no quiet hours)
    - immediate + sms: send now, or queue for the end of quiet hours
    - daily/weekly: queue for the next digest time, on any channel. SMS digests
      that would fall inside quiet hours are moved to the window end.
    """
    if frequency is Frequency.IMMEDIATE:
        if channel is Channel.SMS and is_quiet_hours(now):
            return DispatchDecision(DispatchAction.DEFER, next_send_window(now))
        return DispatchDecision(DispatchAction.SEND_NOW)

    scheduled_for = next_digest_time(frequency, now)
    if channel is Channel.SMS:
        scheduled_for = next_send_window(scheduled_for)
    return DispatchDecision(DispatchAction.DIGEST, scheduled_for)
