"""
Error report files for the dispatch engine.

Transport failures and aborted runs are written to timestamped files so an
operator can inspect them after the batch job has exited.
"""

import os
from datetime import datetime
from typing import Any

DEFAULT_LOG_DIR = os.path.join(os.path.dirname(__file__), "logs")


def log_notification_error(
    error_type: str, error_message: str, context: dict[str, Any] | None = None
) -> str:
    """
    Write one error report and return its path.

    Args:
        error_type: Phase that failed ('run', 'queuing', 'sending', 'digest', 'purge')
        error_message: The error message
        context: Optional ids and counts (job, subscription_id, meeting_ids, ...)

    Returns:
        Path to the report file
    """
    log_dir = os.getenv("NOTIFICATION_LOG_DIR", DEFAULT_LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)

    # Microseconds keep reports from one run from overwriting each other
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    filename = os.path.join(log_dir, f"notification_{error_type}_{timestamp}.txt")

    lines = [
        f"Notification Error Report - {datetime.now()} (pid {os.getpid()})",
        "=" * 60,
        "",
        f"Error Type: {error_type}",
        f"Error Message: {error_message}",
    ]
    if context:
        lines += ["", "Context:", "-" * 60]
        lines += [f"{key}: {value}" for key, value in context.items()]

    with open(filename, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")

    return filename
