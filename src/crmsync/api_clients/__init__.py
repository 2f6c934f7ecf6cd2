"""Remote tree sources."""

from .base import (
    BaseTreeSource,
    DriveItem,
    RateLimitError,
    AuthenticationError,
    APIConnectionError
)

from .google_drive import GoogleDriveClient

__all__ = [
    # Base classes and exceptions
    "BaseTreeSource",
    "DriveItem",
    "RateLimitError",
    "AuthenticationError",
    "APIConnectionError",

    # Client implementations
    "GoogleDriveClient"
]
