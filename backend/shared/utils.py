from datetime import date, datetime, time, timezone
from dateutil import parser as date_parser

from models.notification import RunStats


def to_iso(dt: datetime) -> str:
    """Serialize an aware datetime as an ISO 8601 UTC string for the store."""
    if dt.tzinfo is None:
        raise ValueError("Refusing to store a naive datetime")
    return dt.astimezone(timezone.utc).isoformat()


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse a store timestamp into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = date_parser.isoparse(value)
        except (ValueError, OverflowError, TypeError):
            return None
    if dt.tzinfo is None:
        # The store writes UTC; naive values come from timestamp-without-tz columns
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def print_run_summary(
    job_name: str, stats: RunStats, elapsed: float, dry_run: bool = False
) -> None:
    """Print the operator summary for one job invocation."""
    title = f"{job_name} complete" + (" (DRY RUN)" if dry_run else "")
    print(f"\n{'=' * 60}")
    print(f"[{datetime.now()}] {title}")
    print(f"{'=' * 60}")
    for name, value in stats.model_dump().items():
        if value:
            print(f"{name.replace('_', ' ').capitalize():<24} {value}")
    print(f"{'Elapsed':<24} {elapsed:.2f}s")
    print(f"{'=' * 60}\n")


def format_meeting_date(day: date, long: bool = True) -> str:
    """'Tuesday, March 3, 2026' (long) or 'Tue, Mar 3' (short)."""
    if long:
        return f"{day:%A, %B} {day.day}, {day.year}"
    return f"{day:%a, %b} {day.day}"


def format_meeting_time(value: time | None, missing: str = "Time TBD") -> str:
    """'9:30 AM' style clock time, or `missing` when the time is unknown."""
    if value is None:
        return missing
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"
