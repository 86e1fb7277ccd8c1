"""Parse raw email files into :class:`EmailRecord` instances.

Headers are read line by line with folded continuation lines joined. Only the
headers stored on a record are interpreted and everything else is skipped. The
body is everything after the first blank line, truncated to a character limit.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from mail_index.exceptions import (
    DateParseError,
    MalformedMessageError,
    MissingRequiredHeadersError,
)
from mail_index.models import EmailRecord
from mail_index.parsing.dates import normalize_date

logger = structlog.get_logger()

MAX_CONTENT_LENGTH = 50000
TRUNCATION_MARKER = "..."

_HEADER_SEPARATORS = ("\r\n\r\n", "\n\n")


def extract_address(value: str) -> str:
    """Return the address inside the last ``<...>`` pair, or the trimmed value."""

    start = value.rfind("<")
    if start != -1:
        end = value.rfind(">")
        if end > start:
            return value[start + 1 : end]
    return value.strip()


def _find_header_end(content: str) -> int:
    positions = [idx for idx in (content.find(sep) for sep in _HEADER_SEPARATORS) if idx != -1]
    return min(positions) if positions else -1


def _iter_headers(header_section: str):
    """Yield ``(name, value)`` pairs, joining folded continuation lines."""

    name: str | None = None
    value = ""

    for line in header_section.split("\n"):
        line = line.rstrip("\r")

        if line.startswith((" ", "\t")):
            if name is None:
                continue
            folded = line.strip()
            value = f"{value} {folded}" if value else folded
            continue

        if name is not None:
            yield name, value
            name = None

        if ":" in line:
            raw_name, _, raw_value = line.partition(":")
            name = raw_name.strip()
            value = raw_value.strip()

    if name is not None:
        yield name, value


def parse_email(
    path: str,
    raw: bytes,
    *,
    max_content_length: int = MAX_CONTENT_LENGTH,
) -> EmailRecord | None:
    """Parse the raw bytes of one email file.

    Args:
        path: Path the bytes were read from; stored on the record.
        raw: File contents.
        max_content_length: Body characters to keep before truncating.

    Returns:
        The parsed record, or ``None`` when the file is a known non-email
        artifact (a file name ending in a bare dot).

    Raises:
        MalformedMessageError: If there is no blank line between headers and body.
        MissingRequiredHeadersError: If Message-ID, Date or From is missing.
    """

    if Path(path).name.endswith("."):
        return None

    content = raw.decode("utf-8", errors="replace")
    header_end = _find_header_end(content)
    if header_end == -1:
        raise MalformedMessageError("invalid email format in file", path)

    body = content[header_end:].lstrip("\r\n")
    if len(body) > max_content_length:
        body = body[:max_content_length] + TRUNCATION_MARKER

    fields = {"message_id": "", "date": "", "sender": "", "recipient": "", "subject": ""}

    for name, value in _iter_headers(content[:header_end]):
        key = name.lower()
        if key == "message-id":
            fields["message_id"] = value.strip("<>")
        elif key == "date":
            try:
                fields["date"] = normalize_date(value)
            except DateParseError as exc:
                logger.warning("email_date_unparseable", date=value, path=path, error=str(exc))
                fields["date"] = value
        elif key == "from":
            fields["sender"] = extract_address(value)
        elif key == "to":
            fields["recipient"] = extract_address(value)
        elif key == "subject":
            fields["subject"] = value

    if not (fields["message_id"] and fields["date"] and fields["sender"]):
        raise MissingRequiredHeadersError("missing required headers in file", path)

    return EmailRecord(content=body, filepath=path, **fields)


def read_email_file(path: str, *, max_content_length: int = MAX_CONTENT_LENGTH) -> EmailRecord | None:
    """Read ``path`` from disk and parse it with :func:`parse_email`.

    Raises:
        OSError: If the file cannot be read.
    """

    if Path(path).name.endswith("."):
        return None
    return parse_email(path, Path(path).read_bytes(), max_content_length=max_content_length)
