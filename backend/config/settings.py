# This module defines the notification engine's configuration as module-level
# constants, read once from the environment (a local .env file is honoured).
# The quiet-hours window and the digest cadences are all evaluated against the
# single NOTIFY_TIMEZONE clock, independent of where a subscriber lives.

import os
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

load_dotenv()


def _int_env(name: str, default: int, low: int | None = None, high: int | None = None) -> int:
    """Read an integer environment variable, rejecting out-of-range values."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if (low is not None and value < low) or (high is not None and value > high):
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


# Clock
NOTIFY_TIMEZONE = ZoneInfo(os.getenv("NOTIFY_TIMEZONE", "Pacific/Honolulu"))

# Message (SMS) quiet hours: sends disallowed when hour >= START or hour < END
QUIET_HOURS_START = _int_env("QUIET_HOURS_START", 21, 0, 23)
QUIET_HOURS_END = _int_env("QUIET_HOURS_END", 8, 0, 23)

# Digest cadence (local time). Weekday follows datetime.weekday(): 0 = Monday.
DAILY_DIGEST_HOUR = _int_env("DAILY_DIGEST_HOUR", 8, 0, 23)
WEEKLY_DIGEST_WEEKDAY = _int_env("WEEKLY_DIGEST_WEEKDAY", 0, 0, 6)

# Batch job behaviour
NOTIFY_POLL_INTERVAL_MINUTES = _int_env("NOTIFY_POLL_INTERVAL_MINUTES", 15, 1)
TRANSPORT_TIMEOUT_SECONDS = _int_env("TRANSPORT_TIMEOUT_SECONDS", 10, 1)
DEFERRED_BATCH_LIMIT = _int_env("DEFERRED_BATCH_LIMIT", 100, 1)
QUEUE_RETENTION_DAYS = _int_env("QUEUE_RETENTION_DAYS", 30, 1)
JOB_LOCK_TTL_MINUTES = _int_env("JOB_LOCK_TTL_MINUTES", 30, 1)

# Job names used as Run Ledger / lock keys
NOTIFY_JOB = "notify_cron"
DAILY_DIGEST_JOB = "daily_digest"
WEEKLY_DIGEST_JOB = "weekly_digest"
PURGE_JOB = "queue_purge"

# Links embedded in notifications
API_BASE_URL = os.getenv("API_BASE_URL", "https://access100.app/api/v1")
PUBLIC_SITE_URL = os.getenv("PUBLIC_SITE_URL", "https://civi.me")
