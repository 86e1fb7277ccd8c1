"""Custom exceptions for mail-index."""


class MailIndexError(Exception):
    """Base exception for all mail-index errors."""


class ConfigurationError(MailIndexError):
    """Exception raised for configuration related errors."""


class ParseError(MailIndexError):
    """Exception raised when an email file cannot be turned into a record."""

    def __init__(self, message: str, path: str) -> None:
        super().__init__(f"{message}: {path}")
        self.path = path


class MalformedMessageError(ParseError):
    """Exception raised when no header/body boundary is found."""


class MissingRequiredHeadersError(ParseError):
    """Exception raised when Message-ID, Date or From is absent."""


class DateParseError(MailIndexError):
    """Exception raised when a Date header matches none of the known formats."""


class IndexingError(MailIndexError):
    """Exception raised when a batch could not be indexed."""


class IndexingTransportError(IndexingError):
    """Exception raised when the index service could not be reached."""


class IndexingRemoteError(IndexingError):
    """Exception raised when the index service answered with an error status."""

    def __init__(self, status: int, category: str, message: str) -> None:
        super().__init__(f"zinc error: {status} - {message}")
        self.status = status
        self.category = category
        self.message = message
