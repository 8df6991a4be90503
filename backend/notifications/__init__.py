"""
Notification dispatch engine for civic meeting alerts.

This module handles:
- Detecting meeting changes since the last successful run
- Resolving subscribers without double-notifying them
- Sending immediately, deferring past SMS quiet hours, or queueing for digests
- Sending daily and weekly digests (one message per user and channel)
"""

from .engine import run_digest_job, run_notify_job, run_purge_job

__all__ = [
    'run_notify_job',
    'run_digest_job',
    'run_purge_job',
]
