"""Project-native typed exceptions for station API record fetch failures."""

from __future__ import annotations


class StationApiError(Exception):
    """Base exception for station API adapter failures.

    Attributes:
        status_code: Optional HTTP status code returned by the backend.
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StationApiConnectionError(StationApiError, ConnectionError):
    """Transport failure or retryable status that persisted through all attempts."""


class StationApiTimeoutError(StationApiError, TimeoutError):
    """Request timed out on every attempt."""


class StationApiResponseError(StationApiError, ValueError):
    """Backend rejected the request or returned a payload that is not a record list."""


class StationApiAuthError(StationApiResponseError):
    """Backend rejected the credentials (`401`/`403`)."""
