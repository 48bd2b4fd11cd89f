"""Pure string-to-number converters for sizes, durations and timestamps.

Every function here is total over strings: unrecognized input yields a zero
value instead of raising, which lets them sit at the end of a filter
pipeline where the raw value is frequently empty.
"""

import re
from datetime import UTC, datetime, timedelta, timezone
from typing import Any

from dateutil import parser as dateparser
from dateutil.relativedelta import relativedelta

SIZE_PATTERN = re.compile(r"^(\d*\.?\d+)\s*(?:([KMGTPEZ])i?B?|B)?s?$", re.IGNORECASE)
SIZE_IN_TEXT_PATTERN = re.compile(r"(\d[\d,]*(?:\.\d+)?)\s*(?:[KMGTPEZ]i?B|B)(?![a-z])", re.IGNORECASE)
NUMBER_IN_TEXT_PATTERN = re.compile(r"-?\d[\d,]*(?:\.\d+)?")

# Exponent of 1024 for each unit letter.
SIZE_UNITS = {"K": 1, "M": 2, "G": 3, "T": 4, "P": 5, "E": 6, "Z": 7}

DATE_UNITS = ("year", "quarter", "month", "week", "day", "hour", "minute", "second")

# Longer tokens first: 小时 must win over 时, 分钟 over 分.
LOCALIZED_DATE_UNITS = (
    ("小时", "hour"),
    ("分钟", "minute"),
    ("季度", "quarter"),
    ("年", "year"),
    ("月", "month"),
    ("周", "week"),
    ("天", "day"),
    ("时", "hour"),
    ("分", "minute"),
    ("秒", "second"),
)
ABBREVIATED_DATE_UNITS = {"hr": "hour", "min": "minute", "sec": "second"}
_ABBREVIATION_PATTERN = re.compile(r"(?<![a-z])(hr|min|sec)s?(?![a-z])", re.IGNORECASE)

_UTC_OFFSET_PATTERN = re.compile(r"^([+-])(\d{2}):?(\d{2})$")
_EPOCH_SECONDS_PATTERN = re.compile(r"^\d{10}$")
_DIGITS_PATTERN = re.compile(r"^\d+$")


def parse_size(text: Any) -> float:
    """Convert a human-readable size such as ``"1.5 GiB"`` to bytes.

    Units K through Z scale by powers of 1024 whether or not the binary
    ``i`` marker is present. A bare number is taken as bytes.

    Args:
        text: Size string; numbers are accepted and stringified.

    Returns:
        Size in bytes, or 0 when the text is not a size.

    Example:
        >>> parse_size("1.5 GiB") == 1.5 * 1024**3
        True
    """
    matched = SIZE_PATTERN.match(str(text).strip().replace(",", ""))
    if matched is None:
        return 0

    magnitude = float(matched.group(1))
    unit = matched.group(2)
    if unit is None:
        return magnitude
    return magnitude * 1024 ** SIZE_UNITS[unit.upper()]


def find_then_parse_size(text: Any) -> float:
    """Locate the first size inside longer text and convert it to bytes.

    ``"12.3 GiB (13,207,024,435 bytes)"`` yields ``12.3 * 1024**3``.
    """
    matched = SIZE_IN_TEXT_PATTERN.search(str(text))
    if matched is None:
        return 0
    return parse_size(matched.group(0))


def find_then_parse_number(text: Any) -> int | float:
    """Locate the first number inside text, ignoring thousands separators."""
    matched = NUMBER_IN_TEXT_PATTERN.search(str(text))
    if matched is None:
        return 0

    raw = matched.group(0).replace(",", "")
    if "." in raw:
        return float(raw)
    return int(raw)


def canonicalize_date_units(text: str) -> str:
    """Rewrite localized and abbreviated duration units to English names."""
    for token, unit in LOCALIZED_DATE_UNITS:
        text = text.replace(token, unit)
    return _ABBREVIATION_PATTERN.sub(
        lambda m: ABBREVIATED_DATE_UNITS[m.group(1).lower()], text
    )


def parse_relative_duration(text: Any, now: datetime | None = None) -> int:
    """Turn an age such as ``"3 days 4 hours"`` into an epoch timestamp.

    Each unit present in the text is subtracted from ``now`` (largest unit
    first), so the result is the moment the duration started.

    Args:
        text: Duration text, e.g. ``"1年2月"``, ``"5 min"``, ``"2 weeks"``.
        now: Reference instant; defaults to the current UTC time.

    Returns:
        Unix timestamp in seconds.
    """
    moment = now or datetime.now(UTC)
    canonical = canonicalize_date_units(str(text))

    for unit in DATE_UNITS:
        matched = re.search(rf"(\d+) ?{unit}s?", canonical, re.IGNORECASE)
        if matched is None:
            continue
        amount = int(matched.group(1))
        if unit == "quarter":
            moment -= relativedelta(months=3 * amount)
        else:
            moment -= relativedelta(**{f"{unit}s": amount})

    return int(moment.timestamp())


def parse_utc_offset(offset: str) -> timezone:
    """Parse ``"+0800"`` or ``"-05:30"`` into a fixed-offset timezone.

    Raises:
        ValueError: If the offset is not in ``±HHMM``/``±HH:MM`` form.
    """
    matched = _UTC_OFFSET_PATTERN.match(offset.strip())
    if matched is None:
        raise ValueError(f"Invalid UTC offset: {offset!r}")

    sign, hours, minutes = matched.groups()
    delta = timedelta(hours=int(hours), minutes=int(minutes))
    return timezone(-delta if sign == "-" else delta)


def _to_datetime(value: Any) -> datetime | None:
    """Parse a timestamp-ish value; naive results are in local time."""
    text = str(value).strip()
    try:
        if _EPOCH_SECONDS_PATTERN.match(text):
            return datetime.fromtimestamp(int(text))
        if isinstance(value, (int, float)) or _DIGITS_PATTERN.match(text):
            return datetime.fromtimestamp(float(text) / 1000)
        return dateparser.parse(text)
    except (ValueError, OverflowError, OSError):
        return None


def parse_zoned_time(value: Any, offset: str | None = None) -> int:
    """Convert a site timestamp to epoch milliseconds.

    Sites print wall-clock times in their own timezone without saying so.
    When ``offset`` is given, the parsed wall-clock time is re-interpreted in
    that offset. Ten-digit numbers are epoch seconds; other digit strings
    and numbers are epoch milliseconds.

    Args:
        value: Timestamp string or number.
        offset: Site timezone such as ``"+0800"``; None parses as-is.

    Returns:
        Epoch milliseconds, or 0 for empty or unparseable input.
    """
    if value is None or value == "" or value == 0:
        return 0

    if not offset:
        text = str(value).strip()
        if _EPOCH_SECONDS_PATTERN.match(text):
            return int(text) * 1000
        if isinstance(value, (int, float)) or _DIGITS_PATTERN.match(text):
            return int(value) if isinstance(value, (int, float)) else int(text)

    moment = _to_datetime(value)
    if moment is None:
        return 0

    if not offset:
        return int(moment.timestamp() * 1000)

    if moment.tzinfo is not None:
        moment = moment.astimezone()
    wall_clock = moment.replace(tzinfo=None, microsecond=0)
    return int(wall_clock.replace(tzinfo=parse_utc_offset(offset)).timestamp()) * 1000


def cf_decode_email(encoded: Any) -> str:
    """Decode a Cloudflare-obfuscated email (``data-cfemail`` attribute).

    The first hex byte is the XOR key for every following byte.
    """
    encoded = str(encoded).strip()
    if len(encoded) < 2:
        return ""

    key = int(encoded[:2], 16)
    return "".join(
        chr(int(encoded[i : i + 2], 16) ^ key) for i in range(2, len(encoded) - 1, 2)
    )
