"""PyDriveMirror - mirror a local directory tree into Google Drive."""

from .api import DriveClient
from .auth import CredentialStore, TokenRefresher
from .config import MirrorConfig, load_config
from .exceptions import (
    AuthError,
    ConfigurationError,
    LocalIoError,
    MalformedResponse,
    MirrorError,
    OversizeSkipped,
    QueueClosedError,
    RemoteApiError,
    TokenExpiredError,
)
from .mirror import MirrorEngine, MirrorStats

__version__ = "0.1.0"

__all__ = [
    "DriveClient",
    "CredentialStore",
    "TokenRefresher",
    "MirrorConfig",
    "load_config",
    "MirrorEngine",
    "MirrorStats",
    "MirrorError",
    "AuthError",
    "ConfigurationError",
    "LocalIoError",
    "MalformedResponse",
    "OversizeSkipped",
    "QueueClosedError",
    "RemoteApiError",
    "TokenExpiredError",
]
