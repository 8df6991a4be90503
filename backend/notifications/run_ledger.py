"""
Run ledger: the watermark of the last successful run per job.

A job reads its watermark first and records a new one only after every side
effect of the run has been attempted. A crash in between leaves the old
watermark in place, so the next invocation re-scans the same window and the
queue/log uniqueness rules absorb the repeats.

Also holds the advisory per-job lock that keeps overlapping invocations from
doing the same transport calls twice.
"""

from datetime import datetime, timedelta
from typing import Any, cast

from config.settings import JOB_LOCK_TTL_MINUTES, NOTIFY_POLL_INTERVAL_MINUTES
from models.notification import RunStats, RunWatermark
from shared.db import is_unique_violation
from shared.utils import parse_timestamp, to_iso

LEDGER_TABLE = "run_ledger"
LOCK_TABLE = "job_locks"


def _latest_run(supabase: Any, job_name: str) -> datetime | None:
    response = (
        supabase.table(LEDGER_TABLE)
        .select("job_name, last_run, status")
        .eq("job_name", job_name)
        .eq("status", "success")
        .order("last_run", desc=True)
        .limit(1)
        .execute()
    )
    if not response.data:
        return None
    row = cast(dict[str, Any], response.data[0])
    return parse_timestamp(row.get("last_run"))


def get_watermark(
    supabase: Any,
    job_name: str,
    now: datetime,
    fallback: timedelta = timedelta(minutes=NOTIFY_POLL_INTERVAL_MINUTES),
) -> datetime:
    """
    Last successful run time for a job.

    Args:
        supabase: Store client
        job_name: Ledger key (e.g. 'notify_cron')
        now: Current time, used for the fallback
        fallback: Distance into the past used when the job never ran

    Returns:
        Aware UTC datetime bounding the next change query
    """
    last_run = _latest_run(supabase, job_name)
    if last_run is None:
        return now - fallback
    return last_run


def record_run(
    supabase: Any, job_name: str, started_at: datetime, stats: RunStats
) -> RunWatermark:
    """
    Store the watermark for a completed run.

    The run's start time becomes the new watermark, so changes written while
    the run was executing are seen next time. The stored value never moves
    backwards, even when an overlapping run that started later finished first.
    """
    previous = _latest_run(supabase, job_name)
    last_run = started_at if previous is None else max(previous, started_at)

    watermark = RunWatermark(
        job_name=job_name,
        last_run=last_run,
        meetings_changed=stats.meetings_changed,
        notifications_queued=stats.notifications_queued,
        sent=stats.sent + stats.digests_sent,
        failed=stats.failed + stats.digests_failed,
    )
    row = watermark.model_dump(mode="json")
    row["last_run"] = to_iso(last_run)
    supabase.table(LEDGER_TABLE).upsert(row, on_conflict="job_name").execute()
    return watermark


def acquire_lock(
    supabase: Any,
    job_name: str,
    owner: str,
    now: datetime,
    ttl: timedelta = timedelta(minutes=JOB_LOCK_TTL_MINUTES),
) -> bool:
    """
    Take the advisory lock for a job.

    Returns False when another invocation holds a lock younger than `ttl`.
    A stale lock (its holder presumably crashed) is removed and retaken.
    """
    row = {"job_name": job_name, "owner": owner, "acquired_at": to_iso(now)}
    try:
        supabase.table(LOCK_TABLE).insert(row).execute()
        return True
    except Exception as e:
        if not is_unique_violation(e):
            raise

    stale = (
        supabase.table(LOCK_TABLE)
        .delete()
        .eq("job_name", job_name)
        .lt("acquired_at", to_iso(now - ttl))
        .execute()
    )
    if not stale.data:
        return False

    print(f"  ⚠️  Removed stale {job_name} lock held by {stale.data[0].get('owner')}")
    try:
        supabase.table(LOCK_TABLE).insert(row).execute()
        return True
    except Exception as e:
        if not is_unique_violation(e):
            raise
        return False


def release_lock(supabase: Any, job_name: str, owner: str) -> None:
    supabase.table(LOCK_TABLE).delete().eq("job_name", job_name).eq("owner", owner).execute()
