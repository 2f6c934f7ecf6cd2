"""Base remote tree source interface and common functionality."""

from abc import ABC, abstractmethod
from typing import List, Dict, Any, Optional
from dataclasses import dataclass

from ..utils.logging import get_logger


@dataclass(frozen=True)
class DriveItem:
    """A single child entry returned by a folder listing."""

    id: str
    name: str
    mime_type: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DriveItem":
        """Build from a Drive API ``files`` resource."""
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", "")
        )


class BaseTreeSource(ABC):
    """Abstract base class for remote folder hierarchies.

    A tree source lists the immediate child folders and the immediate child
    files of a folder. Both listings return complete results, following any
    pagination the service uses.
    """

    def __init__(self, **kwargs):
        self.logger = get_logger(self.__class__.__name__)
        self._authenticated = False

    @abstractmethod
    async def authenticate(self) -> bool:
        """Authenticate with the remote service.

        Returns:
            True if authentication successful

        Raises:
            AuthenticationError: If the credentials are missing or rejected
        """
        pass

    @abstractmethod
    async def list_folders(
        self,
        parent_id: Optional[str],
        drive_id: Optional[str] = None
    ) -> List[DriveItem]:
        """List the child folders of ``parent_id``.

        Args:
            parent_id: Folder to list, None for the drive root
            drive_id: Shared drive holding the folder, if any

        Returns:
            Child folders in listing order
        """
        pass

    @abstractmethod
    async def list_files(
        self,
        folder_id: Optional[str],
        drive_id: Optional[str] = None
    ) -> List[DriveItem]:
        """List the child files (non-folders) of ``folder_id``."""
        pass


class RateLimitError(Exception):
    """Raised when API rate limit is exceeded."""

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthenticationError(Exception):
    """Raised when API authentication fails."""
    pass


class APIConnectionError(Exception):
    """Raised when API connection fails."""
    pass
