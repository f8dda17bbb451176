"""Parse the timestamps Facebook shows in post tooltips."""

import re
from datetime import datetime, timezone
from typing import Optional

# E.g. "Monday, June 24, 2013 at 5:20 PM"
FB_TIMESTAMP_REGEX = re.compile(
    r"^\s*\w+,\s+(?P<month>[^\W\d_]+)\s+(?P<dayOfMonth>\d{1,2}),\s+(?P<year>\d{4})"
    r"\s+at\s+(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<timeOfDay>[AaPp]\.?[Mm]\.?)\s*$"
)

MONTHS = {
    "en": [
        "january", "february", "march", "april", "may", "june",
        "july", "august", "september", "october", "november", "december",
    ],
}


def month_to_number(month_name: str, locale: str = "en") -> Optional[str]:
    """Map a month name (full or 3-letter) to a two-digit month number."""
    name = month_name.strip().lower()
    for i, full_name in enumerate(MONTHS.get(locale, MONTHS["en"]), 1):
        if name == full_name or (len(name) >= 3 and full_name.startswith(name)):
            return f"{i:02d}"
    return None


def parse_fb_timestamp(timestamp: str, locale: str = "en") -> Optional[str]:
    """Convert e.g. "Monday, June 24, 2013 at 5:20 PM" to "2013-06-24T17:20:00Z".

    Fields are substituted literally: the source has no timezone, so the
    result is marked UTC without any conversion. The hour is written as
    given (unpadded for single digits) and "pm" always adds 12, so
    "12:30 PM" becomes hour 24 and "12:30 AM" stays 12.
    """
    match = FB_TIMESTAMP_REGEX.match(timestamp or "")
    if not match:
        return None

    month = month_to_number(match.group("month"), locale)
    if month is None:
        return None

    day = f"{int(match.group('dayOfMonth')):02d}"
    hour = int(match.group("hour"))
    if "pm" in match.group("timeOfDay").lower().replace(".", ""):
        hour += 12

    return f"{match.group('year')}-{month}-{day}T{hour}:{match.group('minute')}:00Z"


def epoch_to_iso(value) -> Optional[str]:
    """Unix seconds (as found in payloads, e.g. `created_time`) to ISO-8601 UTC."""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    if seconds <= 0:
        return None
    return datetime.fromtimestamp(seconds, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
