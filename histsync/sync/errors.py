"""Errors raised by the sync components.

Storage failures are not wrapped: asyncpg exceptions reach the caller as-is.
"""


class SyncError(Exception):
    """Base class for request-level problems the caller can fix."""


class InvalidTimezoneError(SyncError, ValueError):
    """Raised when a calendar ``tz`` is neither an IANA name nor an offset."""


class InvalidCalendarQueryError(SyncError, ValueError):
    """Raised for an unknown focus or an out-of-range year/month."""


class InvalidTimestampError(SyncError, ValueError):
    """Raised for a timestamp that cannot be represented in UTC."""
