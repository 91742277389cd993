"""Timestamp normalization — raw export text to an absolute UTC instant.

Accepted raw forms:
    15.03.2024 14:23:45 UTC+09:00     (Telegram ``title`` attribute; UTC+09 / UTC+0900 too)
    2024-03-15T14:23:45+09:00         (ISO-like; naive values are read in the caller's tz)

Output format matches ``Date.toISOString``: ``2024-03-15T05:23:45.000Z``.
"""

from __future__ import annotations
import logging
import re
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil import parser as dateutil_parser

LOGGER = logging.getLogger(__name__)

_TELEGRAM_TS = re.compile(
    r"^(\d{1,2})\.(\d{1,2})\.(\d{4})\s+(\d{1,2}):(\d{1,2}):(\d{1,2})"
    r"\s+UTC([+-])(\d{1,2}):?(\d{2})?"
)
_ISO_LIKE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:T|\s)")
_CLOCK_TIME = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")

# Sentinel for fields a separator leaves out; year 1 never appears in an export.
_NO_DATE = datetime(1, 1, 1)


def resolve_timezone(tz: str) -> ZoneInfo | timezone:
    """ZoneInfo for tz; unknown names fall back to UTC."""
    try:
        return ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        LOGGER.warning("Unknown timezone %r, using UTC", tz)
        return timezone.utc


def format_instant(dt: datetime) -> str:
    utc = dt.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_timestamp(raw: str, tz: str = "UTC") -> str | None:
    """Parse a raw timestamp; None when it is empty or unrecognized."""
    s = (raw or "").strip()
    if not s:
        return None

    if _ISO_LIKE.match(s):
        candidate = s[:-1] + "+00:00" if s.endswith(("Z", "z")) else s
        try:
            dt = datetime.fromisoformat(candidate)
        except ValueError:
            return None
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=resolve_timezone(tz))
        return format_instant(dt)

    m = _TELEGRAM_TS.match(s)
    if not m:
        return None
    day, month, year, hour, minute, second, sign, off_h, off_m = m.groups()
    offset = timedelta(hours=int(off_h), minutes=int(off_m or 0))
    if sign == "-":
        offset = -offset
    try:
        dt = datetime(
            int(year), int(month), int(day),
            int(hour), int(minute), int(second),
            tzinfo=timezone(offset),
        )
    except ValueError:
        return None
    return format_instant(dt)


def is_clock_time(text: str) -> bool:
    return _CLOCK_TIME.match((text or "").strip()) is not None


def build_raw_timestamp(date_text: str, time_text: str, tz: str = "UTC") -> str | None:
    """Rebuild a fully-qualified Telegram-style timestamp from a date
    separator ("15 March 2024") and a rendered clock time ("14:23").

    The offset is tz's UTC offset at that local wall-clock time.  A separator
    without a year gives None; missing fields never come from the current date.
    """
    m = _CLOCK_TIME.match((time_text or "").strip())
    if not m or not (date_text or "").strip():
        return None
    try:
        day = dateutil_parser.parse(date_text.strip(), dayfirst=True, default=_NO_DATE)
    except (ValueError, OverflowError):
        return None
    if day.year == _NO_DATE.year:
        return None
    hour, minute, second = int(m.group(1)), int(m.group(2)), int(m.group(3) or 0)
    try:
        local = datetime(day.year, day.month, day.day, hour, minute, second,
                         tzinfo=resolve_timezone(tz))
    except ValueError:
        return None
    offset = local.utcoffset() or timedelta(0)
    total_minutes = int(offset.total_seconds() // 60)
    sign = "+" if total_minutes >= 0 else "-"
    off_h, off_m = divmod(abs(total_minutes), 60)
    return (
        f"{local.day:02d}.{local.month:02d}.{local.year:04d} "
        f"{hour:02d}:{minute:02d}:{second:02d} UTC{sign}{off_h:02d}:{off_m:02d}"
    )
