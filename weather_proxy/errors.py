"""
Error taxonomy returned by the weather gateway.

Every failure a caller can observe is a ``GatewayError`` subclass carrying the
HTTP status the web layer responds with.
"""

from typing import Optional


class ConfigurationError(Exception):
    """Raised when the service cannot start with the supplied configuration."""


class GatewayError(Exception):
    """Base exception for gateway failures."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    @property
    def error(self) -> str:
        """Stable error name used in response bodies."""
        return type(self).__name__


class InvalidInput(GatewayError):
    """City or country missing from the request."""

    status_code = 400


class Unauthorized(GatewayError):
    """Caller key absent or not allowed."""

    status_code = 401


class TooManyRequests(GatewayError):
    """Caller exhausted its quota for the current window."""

    status_code = 429

    def __init__(
        self, message: str, retry_after: int = 0, limit: int = 0, reset_at: int = 0
    ):
        self.retry_after = retry_after
        self.limit = limit
        self.reset_at = reset_at
        super().__init__(message)


class UpstreamError(GatewayError):
    """Base exception for weather provider failures."""

    status_code = 502


class UpstreamAuthError(UpstreamError):
    """Weather provider rejected the configured credential."""

    status_code = 401


class UpstreamUnavailable(UpstreamError):
    """Weather provider returned an error status or could not be reached."""

    def __init__(
        self,
        message: str,
        upstream_status: Optional[int] = None,
        timed_out: bool = False,
    ):
        self.upstream_status = upstream_status
        self.timed_out = timed_out
        super().__init__(message, status_code=504 if timed_out else 502)


class UpstreamMalformedResponse(UpstreamError):
    """Weather provider body did not match the expected shape."""
