"""
CLI entry point for the notification batch jobs.

Usage:
    # Change detection + immediate sends (cron: every 15 minutes)
    uv run python -m notifications.process_notification_queue --notify

    # Daily / weekly digests (cron: at the digest hour, weekly on its weekday)
    uv run python -m notifications.process_notification_queue --daily-digest
    uv run python -m notifications.process_notification_queue --weekly-digest

    # Retention purge of old sent/failed queue rows (cron: daily)
    uv run python -m notifications.process_notification_queue --purge

    # Any job as a dry run (decide and print, but send and write nothing)
    uv run python -m notifications.process_notification_queue --notify --dry-run
"""

import argparse
import sys
import time
from datetime import datetime, timezone

from config.settings import (
    DAILY_DIGEST_JOB,
    NOTIFY_JOB,
    PURGE_JOB,
    WEEKLY_DIGEST_JOB,
)
from models.notification import Frequency, RunStats
from notifications.engine import run_digest_job, run_notify_job, run_purge_job
from notifications.error_logger import log_notification_error
from shared.db import get_supabase_client
from shared.utils import print_run_summary


def run_job(job_name: str, dry_run: bool = False) -> int:
    """
    Run one job and print its summary.

    Returns:
        Process exit status: 0 when the job completed, 1 when it aborted
    """
    start = time.monotonic()
    now = datetime.now(timezone.utc)
    print(f"[{datetime.now()}] {job_name} starting" + (" (DRY RUN)" if dry_run else "") + "...")

    try:
        supabase = get_supabase_client()
        if job_name == NOTIFY_JOB:
            stats = run_notify_job(supabase, now=now, dry_run=dry_run)
        elif job_name == DAILY_DIGEST_JOB:
            stats = run_digest_job(supabase, Frequency.DAILY, now=now, dry_run=dry_run)
        elif job_name == WEEKLY_DIGEST_JOB:
            stats = run_digest_job(supabase, Frequency.WEEKLY, now=now, dry_run=dry_run)
        elif job_name == PURGE_JOB:
            stats = run_purge_job(supabase, now=now, dry_run=dry_run)
        else:
            raise ValueError(f"Unknown job: {job_name}")
    except Exception as e:
        error_file = log_notification_error(
            error_type="run",
            error_message=f"{type(e).__name__}: {e}",
            context={"job": job_name, "started_at": now.isoformat(), "dry_run": dry_run},
        )
        print(f"  ✗ Run aborted, watermark not recorded: {e}")
        print(f"    Error details logged to: {error_file}")
        print_run_summary(job_name, RunStats(), time.monotonic() - start, dry_run)
        return 1

    print_run_summary(job_name, stats, time.monotonic() - start, dry_run)
    return 0


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Dispatch meeting notifications and digests"
    )

    jobs = parser.add_mutually_exclusive_group(required=True)
    jobs.add_argument(
        "--notify",
        action="store_const",
        dest="job",
        const=NOTIFY_JOB,
        help="Detect meeting changes and send or queue notifications",
    )
    jobs.add_argument(
        "--daily-digest",
        action="store_const",
        dest="job",
        const=DAILY_DIGEST_JOB,
        help="Send due daily digests",
    )
    jobs.add_argument(
        "--weekly-digest",
        action="store_const",
        dest="job",
        const=WEEKLY_DIGEST_JOB,
        help="Send due weekly digests",
    )
    jobs.add_argument(
        "--purge",
        action="store_const",
        dest="job",
        const=PURGE_JOB,
        help="Delete old sent/failed queue rows",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Dry run mode (print intended actions, don't send or write)",
    )

    args = parser.parse_args(argv)
    sys.exit(run_job(args.job, dry_run=args.dry_run))


if __name__ == "__main__":
    main()
