"""
Unit tests for notifications/dispatch_policy.py
"""

import unittest
from datetime import datetime
from unittest.mock import patch
from zoneinfo import ZoneInfo

from models.notification import Channel, Frequency
from notifications.dispatch_policy import DispatchAction, decide

HST = ZoneInfo("Pacific/Honolulu")


def hst(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2026, 10, day, hour, minute, tzinfo=HST)


class TestImmediateDecisions(unittest.TestCase):

    def test_email_sends_now_even_in_quiet_hours(self):
        decision = decide(Frequency.IMMEDIATE, Channel.EMAIL, hst(19, 22))

        self.assertEqual(decision.action, DispatchAction.SEND_NOW)
        self.assertIsNone(decision.scheduled_for)

    def test_sms_sends_now_during_the_day(self):
        decision = decide(Frequency.IMMEDIATE, Channel.SMS, hst(19, 12))

        self.assertEqual(decision.action, DispatchAction.SEND_NOW)

    def test_sms_deferred_to_end_of_quiet_hours(self):
        decision = decide(Frequency.IMMEDIATE, Channel.SMS, hst(19, 22))

        self.assertEqual(decision.action, DispatchAction.DEFER)
        self.assertEqual(decision.scheduled_for, hst(20, 8))

    def test_sms_after_midnight_deferred_to_same_morning(self):
        decision = decide(Frequency.IMMEDIATE, Channel.SMS, hst(20, 2))

        self.assertEqual(decision.scheduled_for, hst(20, 8))


class TestDigestDecisions(unittest.TestCase):

    def test_daily_email_queued_for_next_digest(self):
        decision = decide(Frequency.DAILY, Channel.EMAIL, hst(19, 22))

        self.assertEqual(decision.action, DispatchAction.DIGEST)
        self.assertEqual(decision.scheduled_for, hst(20, 8))

    def test_weekly_email_queued_for_monday(self):
        decision = decide(Frequency.WEEKLY, Channel.EMAIL, hst(21, 12))

        self.assertEqual(decision.action, DispatchAction.DIGEST)
        self.assertEqual(decision.scheduled_for, hst(26, 8))

    def test_daily_sms_queued_even_during_the_day(self):
        decision = decide(Frequency.DAILY, Channel.SMS, hst(19, 12))

        self.assertEqual(decision.action, DispatchAction.DIGEST)
        self.assertEqual(decision.scheduled_for, hst(20, 8))

    @patch("notifications.dispatch_policy.next_digest_time")
    def test_sms_digest_never_scheduled_inside_quiet_hours(self, mock_next_digest):
        """A digest hour inside the quiet window is pushed to its end."""
        mock_next_digest.return_value = hst(20, 7)

        decision = decide(Frequency.DAILY, Channel.SMS, hst(19, 22))

        self.assertEqual(decision.scheduled_for, hst(20, 8))

    @patch("notifications.dispatch_policy.next_digest_time")
    def test_email_digest_keeps_early_digest_hour(self, mock_next_digest):
        mock_next_digest.return_value = hst(20, 7)

        decision = decide(Frequency.DAILY, Channel.EMAIL, hst(19, 22))

        self.assertEqual(decision.scheduled_for, hst(20, 7))


if __name__ == "__main__":
    unittest.main()
