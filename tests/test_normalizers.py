"""Tests for the size, duration and timestamp normalizers.

Testing Philosophy:
    Normalizers sit at the end of filter pipelines where input is often
    empty or junk. Besides the happy paths, every function must stay total.
"""

from datetime import UTC, datetime, timezone, timedelta

import pytest
from hypothesis import given, strategies as st

from ptscraper.normalizers import (
    canonicalize_date_units,
    cf_decode_email,
    find_then_parse_number,
    find_then_parse_size,
    parse_relative_duration,
    parse_size,
    parse_utc_offset,
    parse_zoned_time,
)

NOW = datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


class TestParseSize:
    """Test suite for byte-size parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("1.5 GiB", 1.5 * 1024**3),
            ("12.3 GiB", 12.3 * 1024**3),
            ("512.00 MiB", 512 * 1024**2),
            ("700 MB", 700 * 1024**2),
            ("1 KB", 1024),
            ("2K", 2048),
            ("1.2 TB", 1.2 * 1024**4),
            ("3 PiB", 3 * 1024**5),
            ("1 EB", 1024**6),
            ("1 ZiB", 1024**7),
            ("10 GBs", 10 * 1024**3),
            ("4.7gb", 4.7 * 1024**3),
            ("1,024.5 MB", 1024.5 * 1024**2),
            ("10", 10),
            ("10 B", 10),
            (" 3 GiB ", 3 * 1024**3),
        ],
    )
    def test_valid_sizes(self, text: str, expected: float) -> None:
        assert parse_size(text) == pytest.approx(expected)

    @pytest.mark.parametrize("text", ["bogus", "", "GiB", "1.5 XB", "-", "N/A"])
    def test_unmatched_text_is_zero(self, text: str) -> None:
        assert parse_size(text) == 0

    def test_numeric_input_is_accepted(self) -> None:
        assert parse_size(2048) == 2048

    @given(st.text(max_size=40))
    def test_never_raises(self, text: str) -> None:
        assert parse_size(text) >= 0


class TestFindThenParse:
    """Test suite for sizes and numbers embedded in longer text."""

    def test_size_inside_text(self) -> None:
        assert find_then_parse_size("12.3 GiB (13,207,024,435 bytes)") == pytest.approx(
            12.3 * 1024**3
        )

    def test_size_missing(self) -> None:
        assert find_then_parse_size("no size here") == 0
        assert find_then_parse_size("") == 0

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Inbox (3)", 3),
            ("1,234 points", 1234),
            ("Bonus: 98,765.43", 98765.43),
            ("-5 warnings", -5),
            ("none", 0),
            ("", 0),
        ],
    )
    def test_number_inside_text(self, text: str, expected: float) -> None:
        assert find_then_parse_number(text) == pytest.approx(expected)


class TestRelativeDuration:
    """Test suite for relative-duration parsing."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("3 days", NOW - timedelta(days=3)),
            ("2 hours 30 minutes", NOW - timedelta(hours=2, minutes=30)),
            ("1 week", NOW - timedelta(weeks=1)),
            ("45 sec", NOW - timedelta(seconds=45)),
            ("5 min", NOW - timedelta(minutes=5)),
            ("1 hr", NOW - timedelta(hours=1)),
            ("1天2小时", NOW - timedelta(days=1, hours=2)),
            ("10分钟", NOW - timedelta(minutes=10)),
            ("1年", datetime(2023, 6, 15, 12, 0, 0, tzinfo=UTC)),
            ("2月", datetime(2024, 4, 15, 12, 0, 0, tzinfo=UTC)),
            ("1 quarter", datetime(2024, 3, 15, 12, 0, 0, tzinfo=UTC)),
        ],
    )
    def test_durations(self, text: str, expected: datetime) -> None:
        assert parse_relative_duration(text, now=NOW) == int(expected.timestamp())

    def test_no_units_returns_now(self) -> None:
        assert parse_relative_duration("just now", now=NOW) == int(NOW.timestamp())

    def test_canonicalization(self) -> None:
        assert canonicalize_date_units("3小时") == "3hour"
        assert canonicalize_date_units("5 mins") == "5 minute"
        assert canonicalize_date_units("5 minutes") == "5 minutes"


class TestZonedTime:
    """Test suite for timezone-qualified timestamps."""

    def test_wall_clock_reinterpreted_at_offset(self) -> None:
        expected = datetime(2020, 1, 1, 0, 0, 1, tzinfo=timezone(timedelta(hours=8)))
        assert parse_zoned_time("2020-01-01 00:00:01", "+0800") == int(expected.timestamp()) * 1000

    def test_offset_with_colon(self) -> None:
        expected = datetime(2020, 1, 1, 12, 0, 0, tzinfo=timezone(timedelta(hours=-5, minutes=-30)))
        assert parse_zoned_time("2020-01-01T12:00:00", "-05:30") == int(expected.timestamp()) * 1000

    def test_aware_value_without_offset(self) -> None:
        expected = datetime(2020, 1, 1, 0, 0, 1, tzinfo=timezone(timedelta(hours=8)))
        assert parse_zoned_time("2020-01-01T00:00:01+0800") == int(expected.timestamp()) * 1000

    def test_epoch_seconds_without_offset(self) -> None:
        assert parse_zoned_time("1600000000") == 1_600_000_000_000

    def test_epoch_millis_number_without_offset(self) -> None:
        assert parse_zoned_time(1_600_000_000_123) == 1_600_000_000_123

    def test_epoch_seconds_with_utc_offset_round_trips_local_wall_clock(self) -> None:
        local = datetime.fromtimestamp(1_600_000_000)
        expected = int(local.replace(tzinfo=UTC).timestamp()) * 1000
        assert parse_zoned_time("1600000000", "+0000") == expected

    @pytest.mark.parametrize("value", [None, "", 0, "not a date"])
    def test_empty_or_invalid_is_zero(self, value: object) -> None:
        assert parse_zoned_time(value, "+0800") == 0

    def test_invalid_offset_raises(self) -> None:
        with pytest.raises(ValueError):
            parse_utc_offset("GMT+8")


class TestCfDecodeEmail:
    def test_decodes(self) -> None:
        key = 0x42
        encoded = f"{key:02x}" + "".join(f"{ord(c) ^ key:02x}" for c in "a@b.io")
        assert cf_decode_email(encoded) == "a@b.io"

    def test_empty(self) -> None:
        assert cf_decode_email("") == ""
