# PATH: tests/unit/test_time.py
"""
Unit tests for time utilities.
"""

import unittest
from datetime import datetime, timedelta, timezone

from core.time import (
    block_age_ms,
    from_unix_seconds,
    is_block_fresh,
    now_iso,
    now_ms,
    now_utc,
    parse_rfc3339,
    to_ms,
)


class TestNowFunctions(unittest.TestCase):
    """Tests for now_* functions."""

    def test_now_utc(self):
        """now_utc returns an aware datetime."""
        dt = now_utc()
        self.assertIsNotNone(dt.tzinfo)

    def test_now_iso(self):
        """now_iso returns ISO string."""
        iso = now_iso()
        self.assertIn("T", iso)
        self.assertIn("+", iso)  # Has timezone

    def test_now_ms(self):
        """now_ms is integer milliseconds."""
        ms = now_ms()
        self.assertIsInstance(ms, int)
        self.assertGreater(ms, 1_600_000_000_000)


class TestParseRfc3339(unittest.TestCase):
    """Tests for parse_rfc3339."""

    def test_nanosecond_fraction(self):
        """CometBFT nanosecond timestamps are truncated to microseconds."""
        dt = parse_rfc3339("2024-01-01T12:00:00.123456789Z")
        self.assertEqual(dt, datetime(2024, 1, 1, 12, 0, 0, 123456, tzinfo=timezone.utc))

    def test_no_fraction(self):
        dt = parse_rfc3339("2024-01-01T12:00:00Z")
        self.assertEqual(dt.microsecond, 0)
        self.assertEqual(dt.utcoffset(), timedelta(0))

    def test_short_fraction(self):
        dt = parse_rfc3339("2024-01-01T12:00:00.5Z")
        self.assertEqual(dt.microsecond, 500000)

    def test_offset(self):
        """Explicit offsets are honoured."""
        dt = parse_rfc3339("2024-01-01T14:00:00+02:00")
        self.assertEqual(dt, datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))

    def test_compact_offset(self):
        dt = parse_rfc3339("2024-01-01T14:00:00+0200")
        self.assertEqual(dt, datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))

    def test_missing_offset_is_utc(self):
        dt = parse_rfc3339("2024-01-01T12:00:00")
        self.assertEqual(dt.tzinfo, timezone.utc)

    def test_garbage_raises(self):
        """Non-timestamps raise ValueError."""
        for value in ("", "yesterday", "2024-01-01", "12:00:00Z"):
            with self.subTest(value=value):
                with self.assertRaises(ValueError):
                    parse_rfc3339(value)


class TestBlockFreshness(unittest.TestCase):
    """Tests for the freshness rule."""

    def setUp(self):
        self.block_time = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.block_ms = to_ms(self.block_time)

    def test_age(self):
        self.assertEqual(block_age_ms(self.block_time, self.block_ms + 1500), 1500)

    def test_future_block_has_negative_age(self):
        self.assertLess(block_age_ms(self.block_time, self.block_ms - 1000), 0)

    def test_59_seconds_is_fresh(self):
        self.assertTrue(is_block_fresh(self.block_time, 60_000, self.block_ms + 59_000))

    def test_exactly_threshold_is_stale(self):
        """A block exactly threshold_ms old is stale."""
        self.assertFalse(is_block_fresh(self.block_time, 60_000, self.block_ms + 60_000))

    def test_future_block_is_fresh(self):
        self.assertTrue(is_block_fresh(self.block_time, 60_000, self.block_ms - 5_000))

    def test_default_current_time(self):
        """Without current_ms the wall clock is used."""
        self.assertTrue(is_block_fresh(now_utc() - timedelta(seconds=5)))
        self.assertFalse(is_block_fresh(now_utc() - timedelta(minutes=5)))


class TestConversions(unittest.TestCase):

    def test_from_unix_seconds(self):
        dt = from_unix_seconds(1704110400)
        self.assertEqual(dt, datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc))

    def test_to_ms(self):
        dt = datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
        self.assertEqual(to_ms(dt), 1000)


if __name__ == "__main__":
    unittest.main()
