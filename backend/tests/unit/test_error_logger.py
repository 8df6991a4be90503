"""Unit tests for notifications/error_logger.py"""

import os
import tempfile
import unittest
from unittest.mock import patch

from notifications.error_logger import log_notification_error


class TestLogNotificationError(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.env_patch = patch.dict(os.environ, {"NOTIFICATION_LOG_DIR": self.tmp.name})
        self.env_patch.start()

    def tearDown(self):
        self.env_patch.stop()
        self.tmp.cleanup()

    def test_writes_report_with_context(self):
        path = log_notification_error(
            error_type="sending",
            error_message="Transport timed out after 10s",
            context={"user_id": 1, "channel": "sms"},
        )

        self.assertEqual(os.path.dirname(path), self.tmp.name)
        self.assertTrue(os.path.basename(path).startswith("notification_sending_"))
        with open(path, encoding="utf-8") as f:
            content = f.read()
        self.assertIn("Error Type: sending", content)
        self.assertIn("Error Message: Transport timed out after 10s", content)
        self.assertIn("channel: sms", content)

    def test_reports_do_not_overwrite_each_other(self):
        first = log_notification_error("run", "boom")
        second = log_notification_error("run", "boom again")

        self.assertNotEqual(first, second)
        self.assertEqual(len(os.listdir(self.tmp.name)), 2)


if __name__ == "__main__":
    unittest.main()
