"""
Change detection: meetings created or updated since the last watermark.
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from models.meeting import ChangeEvent
from models.types import MeetingID
from notifications.quiet_hours import local_today
from shared.db import fetch_all
from shared.utils import to_iso

MEETING_COLUMNS = (
    "id, state_id, title, meeting_date, meeting_time, location, council_id, updated_at"
)


def find_changes(supabase: Any, since: datetime, now: datetime) -> list[ChangeEvent]:
    """
    Find meetings modified after `since` that have not happened yet.

    Args:
        supabase: Store client
        since: Watermark of the last successful run (exclusive)
        now: Current time; meetings dated before today (local) are ignored

    Returns:
        Change events ordered by modification time, oldest first. An empty
        list is a normal outcome.
    """
    today = local_today(now).isoformat()

    def build_query() -> Any:
        return (
            supabase.table("meetings")
            .select(MEETING_COLUMNS)
            .gt("updated_at", to_iso(since))
            .gte("meeting_date", today)
            .order("updated_at", desc=False)
            .order("id", desc=False)
        )

    events = _to_events(supabase, fetch_all(build_query))
    events.sort(key=lambda event: event.updated_at)
    return events


def get_meetings(
    supabase: Any, meeting_ids: Iterable[MeetingID]
) -> dict[MeetingID, ChangeEvent]:
    """Meetings by id, for rendering queued notifications."""
    meeting_ids = sorted(set(meeting_ids))
    if not meeting_ids:
        return {}

    def build_query() -> Any:
        return (
            supabase.table("meetings")
            .select(MEETING_COLUMNS)
            .in_("id", meeting_ids)
            .order("id", desc=False)
        )

    events = _to_events(supabase, fetch_all(build_query))
    return {event.id: event for event in events}


def _to_events(supabase: Any, rows: list[dict[str, Any]]) -> list[ChangeEvent]:
    if not rows:
        return []

    council_names = _council_names(supabase, {row["council_id"] for row in rows})

    events = []
    for row in rows:
        try:
            event = ChangeEvent(**row, council_name=council_names.get(row["council_id"]))
        except ValidationError as e:
            print(f"  ⚠️  Skipping malformed meeting {row.get('id')}: {e.error_count()} error(s)")
            continue
        events.append(event)
    return events


def _council_names(supabase: Any, council_ids: set[Any]) -> dict[Any, str]:
    response = (
        supabase.table("councils")
        .select("id, name")
        .in_("id", sorted(council_ids))
        .execute()
    )
    return {row["id"]: row["name"] for row in response.data or []}
