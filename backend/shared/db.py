from typing import Any, Callable

from supabase import create_client, Client
from postgrest.exceptions import APIError
from dotenv import load_dotenv
import os

load_dotenv()

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

# Must not exceed the PostgREST max-rows setting (1000 on Supabase)
PAGE_SIZE = 1000


def get_supabase_client() -> Client:
    """Get initialized Supabase client (the engine's only shared store)."""
    url: str | None = os.getenv("SUPABASE_URL")
    key: str | None = os.getenv("SUPABASE_SERVICE_KEY")

    if not url or not key:
        raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set")

    return create_client(url, key)


def fetch_all(build_query: Callable[[], Any], page_size: int = PAGE_SIZE) -> list[dict[str, Any]]:
    """
    Run a select page by page until a short page comes back.

    The store silently truncates large responses, so any read that can grow
    past one page goes through here.

    Args:
        build_query: Returns a fresh, fully filtered and ordered query each call
        page_size: Rows requested per page

    Returns:
        All matching rows, in query order
    """
    rows: list[dict[str, Any]] = []
    start = 0
    while True:
        response = build_query().range(start, start + page_size - 1).execute()
        page = response.data or []
        rows.extend(page)
        if len(page) < page_size:
            return rows
        start += page_size


def is_unique_violation(error: Exception) -> bool:
    """True if a store error was raised by a unique constraint."""
    if isinstance(error, APIError):
        return error.code == UNIQUE_VIOLATION
    return "duplicate key" in str(error).lower()
