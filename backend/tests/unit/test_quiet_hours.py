"""
Unit tests for notifications/quiet_hours.py

All times are given on the Honolulu clock (UTC-10, no DST).
"""

import unittest
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from models.notification import Frequency
from notifications.quiet_hours import (
    is_quiet_hours,
    local_today,
    next_daily_digest_time,
    next_digest_time,
    next_send_window,
    next_weekly_digest_time,
)

HST = ZoneInfo("Pacific/Honolulu")


def hst(day: int, hour: int, minute: int = 0, month: int = 10) -> datetime:
    return datetime(2026, month, day, hour, minute, tzinfo=HST)


class TestIsQuietHours(unittest.TestCase):
    """Tests for is_quiet_hours() with the default 21:00-08:00 window."""

    def test_evening_is_quiet(self):
        self.assertTrue(is_quiet_hours(hst(19, 22)))

    def test_early_morning_is_quiet(self):
        self.assertTrue(is_quiet_hours(hst(20, 3)))

    def test_window_start_is_inclusive(self):
        self.assertTrue(is_quiet_hours(hst(19, 21)))
        self.assertFalse(is_quiet_hours(hst(19, 20, 59)))

    def test_window_end_is_exclusive(self):
        self.assertTrue(is_quiet_hours(hst(20, 7, 59)))
        self.assertFalse(is_quiet_hours(hst(20, 8)))

    def test_daytime_is_not_quiet(self):
        self.assertFalse(is_quiet_hours(hst(19, 12)))

    def test_evaluated_on_local_clock_not_utc(self):
        """23:00 UTC is 13:00 in Honolulu."""
        now = datetime(2026, 10, 19, 23, 0, tzinfo=timezone.utc)
        self.assertFalse(is_quiet_hours(now))

    def test_non_wrapping_window(self):
        self.assertTrue(is_quiet_hours(hst(19, 3), start_hour=1, end_hour=5))
        self.assertFalse(is_quiet_hours(hst(19, 6), start_hour=1, end_hour=5))

    def test_equal_hours_disable_quiet_hours(self):
        self.assertFalse(is_quiet_hours(hst(19, 22), start_hour=8, end_hour=8))

    def test_naive_datetime_rejected(self):
        with self.assertRaises(ValueError):
            is_quiet_hours(datetime(2026, 10, 19, 22, 0))


class TestNextSendWindow(unittest.TestCase):
    """Tests for next_send_window()."""

    def test_evening_moves_to_next_morning(self):
        self.assertEqual(next_send_window(hst(19, 22)), hst(20, 8))

    def test_early_morning_moves_to_same_morning(self):
        self.assertEqual(next_send_window(hst(20, 3, 15)), hst(20, 8))

    def test_outside_quiet_hours_returns_now(self):
        now = hst(19, 14, 30)
        self.assertEqual(next_send_window(now), now)

    def test_result_is_never_quiet(self):
        for hour in range(24):
            with self.subTest(hour=hour):
                window = next_send_window(hst(19, hour))
                self.assertFalse(is_quiet_hours(window))
                self.assertGreaterEqual(window, hst(19, hour))


class TestDigestTimes(unittest.TestCase):
    """Tests for the daily/weekly digest schedule (default: 08:00, Mondays)."""

    def test_daily_before_hour_is_same_day(self):
        self.assertEqual(next_daily_digest_time(hst(19, 7)), hst(19, 8))

    def test_daily_after_hour_is_next_day(self):
        self.assertEqual(next_daily_digest_time(hst(19, 22)), hst(20, 8))

    def test_daily_at_exact_hour_is_next_day(self):
        self.assertEqual(next_daily_digest_time(hst(19, 8)), hst(20, 8))

    def test_weekly_from_monday_morning(self):
        # 2026-10-19 is a Monday
        self.assertEqual(next_weekly_digest_time(hst(19, 7)), hst(19, 8))

    def test_weekly_from_monday_evening_is_next_week(self):
        self.assertEqual(next_weekly_digest_time(hst(19, 22)), hst(26, 8))

    def test_weekly_from_midweek(self):
        self.assertEqual(next_weekly_digest_time(hst(21, 12)), hst(26, 8))

    def test_weekly_custom_weekday(self):
        # Friday 2026-10-23
        self.assertEqual(next_weekly_digest_time(hst(21, 12), weekday=4, hour=9), hst(23, 9))

    def test_next_digest_time_dispatches_on_frequency(self):
        now = hst(19, 22)
        self.assertEqual(next_digest_time(Frequency.DAILY, now), hst(20, 8))
        self.assertEqual(next_digest_time(Frequency.WEEKLY, now), hst(26, 8))

    def test_next_digest_time_rejects_immediate(self):
        with self.assertRaises(ValueError):
            next_digest_time(Frequency.IMMEDIATE, hst(19, 22))


class TestLocalToday(unittest.TestCase):

    def test_local_date_differs_from_utc_date(self):
        # 08:00 UTC on the 20th is still the evening of the 19th in Honolulu
        now = datetime(2026, 10, 20, 8, 0, tzinfo=timezone.utc)
        self.assertEqual(local_today(now).isoformat(), "2026-10-19")


if __name__ == "__main__":
    unittest.main()
