"""Exceptions raised by pydrivemirror."""

from pathlib import Path
from typing import Optional


class MirrorError(Exception):
    """Base exception for all mirror errors."""


class ConfigurationError(MirrorError):
    """Raised when configuration is missing or invalid."""


class AuthError(MirrorError):
    """Raised when an access token cannot be obtained."""

    def __init__(
        self, message: str, status_code: Optional[int] = None, body: str = ""
    ):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TokenExpiredError(AuthError):
    """Raised after a 401 response once the token has been refreshed.

    The refreshed token is already stored; the failed call itself is not
    repeated and the caller decides whether to try again.
    """


class RemoteApiError(MirrorError):
    """Raised when the storage API answers with an unexpected status."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        if status_code is not None:
            message = f"{message} (status {status_code})"
        if body:
            message = f"{message}: {body}"
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class MalformedResponse(MirrorError):
    """Raised when a successful response lacks an expected field."""


class LocalIoError(MirrorError):
    """Raised when a local file or directory cannot be read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class OversizeSkipped(MirrorError):
    """Record of a file skipped because it exceeds the size limit."""

    def __init__(self, path: Path, size: int, limit: int):
        super().__init__(f"{path}: {size} bytes exceeds limit of {limit} bytes")
        self.path = path
        self.size = size
        self.limit = limit


class QueueClosedError(MirrorError):
    """Raised when a job is put on a queue that has been closed."""
