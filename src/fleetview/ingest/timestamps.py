"""Legacy timestamp normalization.

Older JSON serializers (ConvertTo-Json on Windows PowerShell 5 among them)
emit dates as ``/Date(1704067200000)/`` or ``/Date(1704067200000+0100)/``:
milliseconds since the Unix epoch wrapped in a marker. Those are turned into
display strings; anything else is returned untouched.
"""

import logging
import re
from datetime import datetime

logger = logging.getLogger(__name__)

LEGACY_DATE_RE = re.compile(r"/?Date\((\d+)(?:[+-]\d{4})?\)/?")
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\ufeff]")


def format_display_datetime(value: datetime) -> str:
    """Render ``value`` like a default en-US locale string, e.g. ``1/1/2024, 1:05:09 PM``."""
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return (
        f"{value.month}/{value.day}/{value.year}, "
        f"{hour}:{value.minute:02d}:{value.second:02d} {meridiem}"
    )


def normalize_legacy_date(raw: str) -> str:
    """Convert a ``/Date(<ms>)/`` string to a local display string.

    The embedded offset is ignored: the millisecond value already identifies
    the instant. Non-matching input is returned unchanged, empty input gives
    an empty string.
    """
    if not raw:
        return ""
    if not isinstance(raw, str):
        return raw

    cleaned = _CONTROL_CHARS_RE.sub("", raw).strip()
    match = LEGACY_DATE_RE.search(cleaned)
    if not match:
        return raw

    try:
        instant = datetime.fromtimestamp(int(match.group(1)) / 1000)
    except (OverflowError, OSError, ValueError) as e:
        logger.debug(f"Legacy date out of range, keeping raw value {raw!r}: {e}")
        return raw
    return format_display_datetime(instant)
