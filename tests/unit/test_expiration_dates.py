"""
Unit tests for valid_until parsing and the expiry comparison.
"""

import pytest
from datetime import date, datetime, timezone, timedelta

from quoteflow.services.expiration_service import parse_valid_until, is_quote_expired, today_midnight


class TestParseValidUntil:
    """Tests for parse_valid_until."""

    def test_bare_date_string_is_local_midnight(self):
        """'YYYY-MM-DD' means that calendar day at 00:00 local time."""
        assert parse_valid_until('2024-01-01') == datetime(2024, 1, 1, 0, 0)

    def test_date_object(self):
        assert parse_valid_until(date(2024, 3, 15)) == datetime(2024, 3, 15)

    def test_naive_timestamp_kept(self):
        assert parse_valid_until('2024-01-01T14:30:00') == datetime(2024, 1, 1, 14, 30)

    def test_zulu_timestamp_converted_to_local(self):
        """An aware timestamp comes back as naive local time of the same instant."""
        parsed = parse_valid_until('2024-01-01T12:00:00Z')
        expected = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc).astimezone().replace(tzinfo=None)
        assert parsed == expected
        assert parsed.tzinfo is None

    def test_empty_values(self):
        assert parse_valid_until(None) is None
        assert parse_valid_until('') is None

    def test_garbage_raises(self):
        with pytest.raises(ValueError):
            parse_valid_until('not-a-date')


class TestIsQuoteExpired:
    """A quote expires strictly before today's local midnight."""

    def test_yesterday_is_expired(self):
        today = date(2024, 6, 1)
        assert is_quote_expired(date(2024, 5, 31), today) is True

    def test_today_is_not_expired(self):
        today = date(2024, 6, 1)
        assert is_quote_expired('2024-06-01', today) is False

    def test_future_is_not_expired(self):
        today = date(2024, 6, 1)
        assert is_quote_expired(today + timedelta(days=10), today) is False

    def test_timestamp_late_yesterday_is_expired(self):
        today = date(2024, 6, 1)
        assert is_quote_expired(datetime(2024, 5, 31, 23, 59), today) is True

    def test_no_deadline_never_expires(self):
        assert is_quote_expired(None, date(2030, 1, 1)) is False

    def test_today_midnight(self):
        assert today_midnight(date(2024, 6, 1)) == datetime(2024, 6, 1, 0, 0)
