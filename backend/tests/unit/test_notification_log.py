"""
Unit tests for notifications/notification_log.py
"""

import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from postgrest.exceptions import APIError

from models.notification import Channel, DeliveryStatus, DeliveryType, NotificationLogEntry
from notifications.notification_log import LOG_TABLE, append_entries, sent_channels
from tests.fixtures.fake_supabase import FakeSupabase
from tests.fixtures.meeting_factory import create_test_log_entry

NOW = datetime(2026, 10, 20, 18, 0, tzinfo=timezone.utc)


def entry(subscription_id=10, meeting_id=100, channel=Channel.EMAIL, status=DeliveryStatus.SENT, **kwargs):
    return NotificationLogEntry(
        subscription_id=subscription_id,
        meeting_id=meeting_id,
        channel=channel,
        status=status,
        **kwargs,
    )


class TestAppendEntries(unittest.TestCase):
    """Tests for append_entries()."""

    def setUp(self):
        self.store = FakeSupabase()

    def test_writes_one_row_per_entry(self):
        written = append_entries(
            self.store,
            [entry(meeting_id=100), entry(meeting_id=101, delivery_type=DeliveryType.DAILY_DIGEST)],
            NOW,
        )

        self.assertEqual(written, 2)
        rows = self.store.rows(LOG_TABLE)
        self.assertEqual([r["delivery_type"] for r in rows], ["immediate", "daily_digest"])
        self.assertEqual(rows[0]["status"], "sent")
        self.assertNotIn("error_message", rows[0])

    def test_failures_can_repeat(self):
        failure = entry(status=DeliveryStatus.FAILED, error_message="Transport reported failure")

        append_entries(self.store, [failure], NOW)
        append_entries(self.store, [failure], NOW)

        self.assertEqual(len(self.store.rows(LOG_TABLE)), 2)
        self.assertEqual(self.store.rows(LOG_TABLE)[0]["error_message"], "Transport reported failure")

    def test_second_sent_entry_refused_quietly(self):
        append_entries(self.store, [entry()], NOW)

        with patch("builtins.print") as mock_print:
            written = append_entries(self.store, [entry()], NOW)

        self.assertEqual(written, 0)
        self.assertEqual(len(self.store.rows(LOG_TABLE)), 1)
        self.assertIn("already logged", mock_print.call_args[0][0])

    def test_store_errors_propagate(self):
        self.store.fail(LOG_TABLE, "insert", APIError({
            "message": "permission denied for table", "code": "42501", "hint": None, "details": None,
        }))

        with self.assertRaises(APIError):
            append_entries(self.store, [entry()], NOW)


class TestSentChannels(unittest.TestCase):
    """Tests for sent_channels()."""

    def setUp(self):
        self.store = FakeSupabase({
            LOG_TABLE: [
                create_test_log_entry(subscription_id=10, meeting_id=100, channel="email"),
                create_test_log_entry(subscription_id=10, meeting_id=100, channel="sms"),
                create_test_log_entry(subscription_id=10, meeting_id=101, channel="sms", status="failed"),
                create_test_log_entry(subscription_id=11, meeting_id=101, channel="email"),
            ],
        })

    def test_index_of_successful_channels(self):
        index = sent_channels(self.store, [(10, 100), (10, 101)])

        self.assertEqual(index, {(10, 100): {Channel.EMAIL, Channel.SMS}})

    def test_only_requested_pairs(self):
        """(11, 100) is not logged; (10, 101) only failed; (11, 101) was not asked for."""
        index = sent_channels(self.store, [(11, 100), (10, 101)])

        self.assertEqual(index, {})

    def test_no_pairs(self):
        self.assertEqual(sent_channels(self.store, []), {})
        self.assertEqual(self.store.calls, [])

    def test_index_complete_when_log_exceeds_one_response(self):
        store = FakeSupabase(
            {
                LOG_TABLE: [
                    create_test_log_entry(subscription_id=subscription_id, meeting_id=100, channel=channel)
                    for subscription_id in range(1, 601)
                    for channel in ("email", "sms")
                ],
            },
            max_rows=1000,
        )

        index = sent_channels(store, [(subscription_id, 100) for subscription_id in range(1, 601)])

        self.assertEqual(len(index), 600)
        self.assertEqual(index[(600, 100)], {Channel.EMAIL, Channel.SMS})


if __name__ == "__main__":
    unittest.main()
