"""Email file parsing."""

from .dates import CANONICAL_DATE_FORMAT, DATE_FORMATS, normalize_date
from .message import (
    MAX_CONTENT_LENGTH,
    TRUNCATION_MARKER,
    extract_address,
    parse_email,
    read_email_file,
)

__all__ = [
    "CANONICAL_DATE_FORMAT",
    "DATE_FORMATS",
    "MAX_CONTENT_LENGTH",
    "TRUNCATION_MARKER",
    "extract_address",
    "normalize_date",
    "parse_email",
    "read_email_file",
]
