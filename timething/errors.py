"""
Error types shared across timething.
"""

from typing import Optional


class TimethingError(Exception):
    """Base class for every error raised by timething."""


class ConfigurationError(TimethingError):
    """Credentials are missing or rejected by one of the services."""


class FetchError(TimethingError):
    """
    A remote call failed.

    kind is one of:
    - "transport" → the request itself raised (connection, timeout, TLS)
    - "http"      → the service answered with a non-2xx status
    - "decode"    → the body was not JSON
    - "shape"     → the JSON lacks the expected field
    """

    TRANSPORT = "transport"
    HTTP = "http"
    DECODE = "decode"
    SHAPE = "shape"

    def __init__(
        self,
        kind: str,
        message: str,
        url: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.url = url
        self.status = status

    def __str__(self) -> str:
        base = super().__str__()
        if self.url:
            return f"{self.kind} error for {self.url}: {base}"
        return f"{self.kind} error: {base}"


class ReconciliationError(TimethingError):
    """An assignment or time entry points at a project missing from the skeleton."""

    def __init__(self, message: str, key=None):
        super().__init__(message)
        self.key = key
