import unittest
from datetime import datetime, timedelta, timezone

from autobackup.rules.interval_policy import is_due, next_due, required_interval
from autobackup.settings.model import BackupSettings, Frequency, format_timestamp

NOW = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def _settings(frequency, ago):
    return BackupSettings.from_document(
        {"frequency": frequency, "lastBackupDate": format_timestamp(NOW - ago)}
    )


class RequiredIntervalTests(unittest.TestCase):
    def test_known_frequencies(self):
        self.assertEqual(required_interval(Frequency.DAILY), timedelta(hours=24))
        self.assertEqual(required_interval(Frequency.WEEKLY), timedelta(days=7))

    def test_unknown_frequency_is_daily(self):
        with self.assertLogs("autobackup.settings.model", level="WARNING"):
            self.assertEqual(required_interval("monthly"), timedelta(hours=24))


class IsDueTests(unittest.TestCase):
    def test_never_backed_up_is_always_due(self):
        for frequency in ("daily", "weekly", "monthly", None):
            with self.subTest(frequency=frequency):
                settings = BackupSettings.from_document({"frequency": frequency})
                self.assertTrue(is_due(settings, NOW))

    def test_daily_boundary_is_inclusive(self):
        self.assertFalse(is_due(_settings("daily", timedelta(hours=23, minutes=59)), NOW))
        self.assertTrue(is_due(_settings("daily", timedelta(hours=24)), NOW))
        self.assertTrue(is_due(_settings("daily", timedelta(days=3)), NOW))

    def test_weekly_boundary_is_inclusive(self):
        self.assertFalse(is_due(_settings("weekly", timedelta(days=6, hours=23)), NOW))
        self.assertTrue(is_due(_settings("weekly", timedelta(days=7)), NOW))

    def test_unknown_frequency_behaves_like_daily(self):
        for ago in (timedelta(hours=23, minutes=59), timedelta(hours=24), timedelta(days=2)):
            with self.subTest(ago=ago):
                with self.assertLogs("autobackup.settings.model", level="WARNING"):
                    monthly = _settings("monthly", ago)
                self.assertEqual(is_due(monthly, NOW), is_due(_settings("daily", ago), NOW))

    def test_malformed_timestamp_is_logged_and_not_due(self):
        settings = BackupSettings(last_backup_date="not-a-date")
        with self.assertLogs("autobackup.rules.interval_policy", level="ERROR"):
            self.assertFalse(is_due(settings, NOW))

    def test_out_of_range_timestamp_is_logged_and_not_due(self):
        settings = BackupSettings(last_backup_date="0001-01-01T00:00:00+01:00")
        with self.assertLogs("autobackup.rules.interval_policy", level="ERROR"):
            self.assertFalse(is_due(settings, NOW))

    def test_future_timestamp_is_not_due(self):
        settings = _settings("daily", timedelta(hours=-5))
        with self.assertLogs("autobackup.rules.interval_policy", level="WARNING"):
            self.assertFalse(is_due(settings, NOW))

    def test_offset_timestamps_are_compared_in_utc(self):
        settings = BackupSettings(last_backup_date="2024-03-09T14:00:00+02:00")
        self.assertTrue(is_due(settings, NOW))
        self.assertFalse(is_due(settings, NOW - timedelta(seconds=1)))

    def test_naive_now_is_treated_as_utc(self):
        settings = _settings("daily", timedelta(hours=24))
        self.assertTrue(is_due(settings, NOW.replace(tzinfo=None)))


class NextDueTests(unittest.TestCase):
    def test_never_backed_up_is_due_now(self):
        self.assertEqual(next_due(BackupSettings(), NOW), NOW)

    def test_weekly_next_due(self):
        settings = _settings("weekly", timedelta(days=2))
        self.assertEqual(next_due(settings, NOW), NOW + timedelta(days=5))

    def test_out_of_range_next_due_is_unknown(self):
        settings = BackupSettings.from_document(
            {"frequency": "weekly", "lastBackupDate": "9999-12-30T00:00:00Z"}
        )
        with self.assertLogs("autobackup.rules.interval_policy", level="WARNING"):
            self.assertIsNone(next_due(settings, NOW))

    def test_malformed_timestamp_has_no_next_due(self):
        self.assertIsNone(next_due(BackupSettings(last_backup_date="garbage"), NOW))


if __name__ == "__main__":
    unittest.main()
