"""
Exception hierarchy for BidWatch.

Row-level and field-level errors (ParseError, FieldFormatError) are
tolerated where they occur. Run-level errors (UnsupportedPortalError,
FetchError before any row is read) end a collection run with
success=False.
"""

from __future__ import annotations


class BidWatchError(Exception):
    """Base exception for all BidWatch errors."""
    pass


class FetchError(BidWatchError):
    """Network, timeout or non-2xx failure while fetching a URL."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class ParseError(BidWatchError):
    """HTML did not match the structure an extractor expects."""
    pass


class FieldFormatError(BidWatchError):
    """A date or currency field could not be parsed."""

    def __init__(self, message: str, value: str | None = None):
        super().__init__(message)
        self.value = value


class PersistenceError(BidWatchError):
    """A database write failed while reconciling a record."""

    def __init__(self, message: str, notice_number: str | None = None, cause: Exception | None = None):
        super().__init__(message)
        self.notice_number = notice_number
        self.cause = cause


class UnsupportedPortalError(BidWatchError):
    """No adapter is registered for the requested portal identifier."""

    def __init__(self, portal_id: str):
        super().__init__(f"Unsupported portal: '{portal_id}'")
        self.portal_id = portal_id


class PortalNotImplementedError(BidWatchError):
    """The portal is known but its adapter has not been written yet."""

    def __init__(self, portal_id: str):
        super().__init__(f"Portal '{portal_id}' is not yet implemented")
        self.portal_id = portal_id


class NoticeNotFoundError(BidWatchError):
    """No stored notice has the requested notice number."""

    def __init__(self, notice_number: str):
        super().__init__(f"Notice not found: '{notice_number}'")
        self.notice_number = notice_number
