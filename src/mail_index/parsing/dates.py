"""Date header normalization.

Legacy corpora carry a zoo of Date header styles. We try a fixed, ordered list
of formats and render the first match as a UTC timestamp.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

from mail_index.exceptions import DateParseError

CANONICAL_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Tried in order; the first one that parses wins.
DATE_FORMATS: tuple[str, ...] = (
    "%a, %d %b %Y %H:%M:%S %z",  # RFC 1123, numeric zone
    "%a, %d %b %Y %H:%M %z",  # RFC 1123 without seconds
    "%d %b %Y %H:%M:%S %z",  # RFC 2822 without weekday
    "%d %b %y %H:%M %z",  # RFC 822, numeric zone
    "%A, %d-%b-%y %H:%M:%S %z",  # RFC 850
    "%a %b %d %H:%M:%S %Y",  # ANSI C asctime, no zone
)

# RFC 822 section 5.1 named zones.
_NAMED_ZONES: dict[str, str] = {
    "UT": "+0000",
    "UTC": "+0000",
    "GMT": "+0000",
    "Z": "+0000",
    "EST": "-0500",
    "EDT": "-0400",
    "CST": "-0600",
    "CDT": "-0500",
    "MST": "-0700",
    "MDT": "-0600",
    "PST": "-0800",
    "PDT": "-0700",
}

_ZONE_COMMENT = re.compile(r"\s*\([^()]*\)\s*$")
_TRAILING_NAMED_ZONE = re.compile(r"\s([A-Za-z]{1,3})$")


def _prepare(value: str) -> str:
    text = _ZONE_COMMENT.sub("", value.strip())
    match = _TRAILING_NAMED_ZONE.search(text)
    if match:
        offset = _NAMED_ZONES.get(match.group(1).upper())
        if offset is not None:
            text = f"{text[: match.start(1)]}{offset}"
    return text


def _to_canonical(parsed: datetime) -> str:
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime(CANONICAL_DATE_FORMAT)


def normalize_date(value: str) -> str:
    """Normalize a Date header value to ``YYYY-MM-DDTHH:MM:SSZ`` in UTC.

    Args:
        value: Raw (unfolded) Date header value.

    Returns:
        The canonical UTC timestamp.

    Raises:
        DateParseError: If no known format matches.
    """

    text = _prepare(value)
    if not text:
        raise DateParseError(f"unable to parse date: {value!r}")

    for fmt in DATE_FORMATS:
        try:
            return _to_canonical(datetime.strptime(text, fmt))
        except ValueError:
            continue

    # Last resort for RFC 2822 variants the list above does not spell out.
    try:
        return _to_canonical(parsedate_to_datetime(value))
    except (TypeError, ValueError, OverflowError, IndexError):
        pass

    raise DateParseError(f"unable to parse date: {value!r}")
