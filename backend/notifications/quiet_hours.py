"""
Quiet hours and digest cadence times.

Every function here is pure: the current time is always passed in, and the
result depends only on it and the configured constants. All wall-clock
reasoning happens in one fixed timezone (config.settings.NOTIFY_TIMEZONE).
"""

from datetime import datetime, time, timedelta, tzinfo

from config.settings import (
    DAILY_DIGEST_HOUR,
    NOTIFY_TIMEZONE,
    QUIET_HOURS_END,
    QUIET_HOURS_START,
    WEEKLY_DIGEST_WEEKDAY,
)
from models.notification import Frequency


def _local(now: datetime, tz: tzinfo) -> datetime:
    if now.tzinfo is None:
        raise ValueError("now must be timezone-aware")
    return now.astimezone(tz)


def is_quiet_hours(
    now: datetime,
    start_hour: int = QUIET_HOURS_START,
    end_hour: int = QUIET_HOURS_END,
    tz: tzinfo = NOTIFY_TIMEZONE,
) -> bool:
    """
    Check whether SMS sends are disallowed at `now`.

    The window is [start_hour, end_hour) in local time and may wrap midnight
    (the default 21 -> 8 does). Equal hours mean no quiet window at all.
    """
    if start_hour == end_hour:
        return False
    hour = _local(now, tz).hour
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def next_send_window(
    now: datetime,
    start_hour: int = QUIET_HOURS_START,
    end_hour: int = QUIET_HOURS_END,
    tz: tzinfo = NOTIFY_TIMEZONE,
) -> datetime:
    """
    Earliest moment at or after `now` when an SMS may be sent.

    Returns `now` unchanged outside quiet hours, otherwise the next time the
    quiet window ends (e.g. 22:00 -> 08:00 the following day).
    """
    if not is_quiet_hours(now, start_hour, end_hour, tz):
        return now
    local = _local(now, tz)
    window_end = datetime.combine(local.date(), time(end_hour), tzinfo=tz)
    if window_end <= local:
        window_end = datetime.combine(
            local.date() + timedelta(days=1), time(end_hour), tzinfo=tz
        )
    return window_end


def next_daily_digest_time(
    now: datetime, hour: int = DAILY_DIGEST_HOUR, tz: tzinfo = NOTIFY_TIMEZONE
) -> datetime:
    """Next occurrence of the daily digest hour, strictly after `now`."""
    local = _local(now, tz)
    target = datetime.combine(local.date(), time(hour), tzinfo=tz)
    if local >= target:
        target = datetime.combine(local.date() + timedelta(days=1), time(hour), tzinfo=tz)
    return target


def next_weekly_digest_time(
    now: datetime,
    weekday: int = WEEKLY_DIGEST_WEEKDAY,
    hour: int = DAILY_DIGEST_HOUR,
    tz: tzinfo = NOTIFY_TIMEZONE,
) -> datetime:
    """Next occurrence of the weekly digest weekday+hour, strictly after `now`."""
    local = _local(now, tz)
    days_ahead = (weekday - local.weekday()) % 7
    target = datetime.combine(local.date() + timedelta(days=days_ahead), time(hour), tzinfo=tz)
    if target <= local:
        target = datetime.combine(target.date() + timedelta(days=7), time(hour), tzinfo=tz)
    return target


def next_digest_time(frequency: Frequency, now: datetime) -> datetime:
    """Delivery time for a digest cadence."""
    if frequency is Frequency.DAILY:
        return next_daily_digest_time(now)
    if frequency is Frequency.WEEKLY:
        return next_weekly_digest_time(now)
    raise ValueError(f"{frequency.value} is not a digest cadence")


def local_today(now: datetime, tz: tzinfo = NOTIFY_TIMEZONE):
    """Calendar date of `now` on the notification clock."""
    return _local(now, tz).date()
