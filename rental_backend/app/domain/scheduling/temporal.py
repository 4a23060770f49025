"""
Temporal utilities for the scheduling core.

All calendar math (rental day counts and month windows) goes through the
same timezone normalization: an instant is converted to the business
timezone first and only then reduced to a calendar date. Doing both in the
same zone keeps day counts and month boundaries in agreement across
daylight-saving transitions.

Naive values (no UTC offset) are read as wall-clock time in the business
timezone. Numbers are epoch milliseconds.
"""

import logging
import math
import re
from datetime import MAXYEAR, MINYEAR, date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Asia/Baku"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MS = timedelta(milliseconds=1)

_MONTH_TOKEN = re.compile(r"^(\d{4})-(\d{2})$")

TimezoneLike = Union[str, tzinfo, None]


def resolve_timezone(tz: TimezoneLike = None) -> tzinfo:
    """
    Resolve a timezone name to a tzinfo.

    Unknown names fall back to the default business timezone.
    """
    if isinstance(tz, tzinfo):
        return tz
    name = tz or DEFAULT_TIMEZONE
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to %s", name, DEFAULT_TIMEZONE)
        return ZoneInfo(DEFAULT_TIMEZONE)


def to_datetime(value: Any, tz: TimezoneLike = None) -> Optional[datetime]:
    """
    Parse a date-like value into an aware datetime in ``tz``.

    Returns:
        The instant as an aware datetime, or None if it cannot be parsed
    """
    zone = resolve_timezone(tz)

    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        if not math.isfinite(value):
            return None
        try:
            return (EPOCH + timedelta(milliseconds=value)).astimezone(zone)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=zone)
    try:
        return parsed.astimezone(zone)
    except OverflowError:
        return None


def to_epoch_ms(value: Any, tz: TimezoneLike = None) -> Optional[int]:
    """
    Convert a date-like value to epoch milliseconds.

    Never raises: an unparseable value gives None so callers can skip the
    record instead of failing a whole batch.
    """
    parsed = to_datetime(value, tz)
    if parsed is None:
        return None
    return (parsed - EPOCH) // ONE_MS


def day_count_inclusive(start: Any, end: Any, tz: TimezoneLike = None) -> int:
    """
    Number of rental days between two instants, both ends included.

    Each instant is reduced to its calendar date in ``tz``. The result is
    floored at 1, so a same-day rental is one day.

    Raises:
        ValueError: If either instant cannot be parsed
    """
    start_dt = to_datetime(start, tz)
    end_dt = to_datetime(end, tz)
    if start_dt is None or end_dt is None:
        raise ValueError(f"Cannot count days between {start!r} and {end!r}")
    return max(1, (end_dt.date() - start_dt.date()).days + 1)


def parse_month_token(token: Optional[str]) -> Optional[Tuple[int, int]]:
    """
    ``"2024-06"`` -> ``(2024, 6)``; anything else -> None.

    The first and last representable years are rejected; their month
    windows cannot be shifted across timezones.
    """
    match = _MONTH_TOKEN.match(str(token or "").strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not MINYEAR < year < MAXYEAR or not 1 <= month <= 12:
        return None
    return year, month


def month_window(
    token: Optional[str],
    tz: TimezoneLike = None,
    now: Optional[datetime] = None
) -> Tuple[datetime, datetime]:
    """
    First and last instant of a calendar month in ``tz``.

    Args:
        token: ``YYYY-MM``; missing or malformed means the current month
        tz: Business timezone
        now: Reference instant for "current month" (defaults to the wall clock)

    Returns:
        (start, end) where start is local midnight of the 1st and end is the
        last millisecond of the month
    """
    zone = resolve_timezone(tz)

    year_month = parse_month_token(token)
    if year_month is None:
        if token:
            logger.warning("Malformed month token %r, using current month", token)
        reference = now or datetime.now(timezone.utc)
        if reference.tzinfo is None:
            reference = reference.replace(tzinfo=timezone.utc)
        local_now = reference.astimezone(zone)
        year_month = (local_now.year, local_now.month)

    year, month = year_month
    start = datetime(year, month, 1, tzinfo=zone)
    if month == 12:
        next_start = datetime(year + 1, 1, 1, tzinfo=zone)
    else:
        next_start = datetime(year, month + 1, 1, tzinfo=zone)
    end = next_start - ONE_MS
    return start, end


def format_local(value: Any, tz: TimezoneLike = None, fmt: str = "%Y-%m-%d") -> str:
    """Format an instant in ``tz``; unparseable values format as an empty string."""
    parsed = to_datetime(value, tz)
    return parsed.strftime(fmt) if parsed else ""
