"""Google Drive API client implementation."""

import asyncio
import json
import os
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Dict, Any, Optional

import google.auth.exceptions
import google_auth_httplib2
import httplib2
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials as UserCredentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .base import BaseTreeSource, DriveItem, RateLimitError, AuthenticationError, APIConnectionError
from ..utils.logging import log_async_execution_time
from ..utils.media import FOLDER_MIME_TYPE


LIST_FIELDS = "nextPageToken, files(id, name, mimeType)"
DEFAULT_RETRY_AFTER = 60


def parse_retry_after(value: Optional[str]) -> int:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if value is None:
        return DEFAULT_RETRY_AFTER
    try:
        return max(0, int(value))
    except ValueError:
        pass
    try:
        retry_at = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER
    if retry_at.tzinfo is None:
        retry_at = retry_at.replace(tzinfo=timezone.utc)
    return max(0, round((retry_at - datetime.now(timezone.utc)).total_seconds()))


class GoogleDriveClient(BaseTreeSource):
    """Google Drive API client listing folder hierarchies."""

    def __init__(
        self,
        credentials_path: Optional[str] = None,
        access_token: Optional[str] = None,
        page_size: int = 1000,
        **kwargs
    ):
        """Initialize Google Drive client.

        Args:
            credentials_path: Path to service account credentials JSON file
            access_token: OAuth access token of the end user, used instead of
                the service account when given
            page_size: Items requested per listing page (max 1000)
        """
        super().__init__(**kwargs)
        self.credentials_path = credentials_path
        self.access_token = access_token
        self.page_size = min(page_size, 1000)
        self.service = None
        self.credentials = None

        self.scopes = ["https://www.googleapis.com/auth/drive.readonly"]
        self.api_version = "v3"

        self.logger.info(
            "Google Drive client initialized",
            auth_mode="user_token" if access_token else "service_account",
            page_size=self.page_size
        )

    @log_async_execution_time
    async def authenticate(self) -> bool:
        """Authenticate with Google Drive API."""
        try:
            if self.access_token:
                self.credentials = UserCredentials(token=self.access_token, scopes=self.scopes)
            else:
                if not self.credentials_path or not os.path.exists(self.credentials_path):
                    self.logger.error(
                        "Google Drive credentials file not found",
                        path=self.credentials_path
                    )
                    raise AuthenticationError(f"Credentials file not found: {self.credentials_path}")

                self.credentials = service_account.Credentials.from_service_account_file(
                    self.credentials_path,
                    scopes=self.scopes
                )

            self.service = build(
                "drive",
                self.api_version,
                credentials=self.credentials,
                cache_discovery=False
            )

            self._authenticated = True
            self.logger.info("Google Drive authentication successful")
            return True

        except AuthenticationError:
            raise

        except json.JSONDecodeError as e:
            error_msg = f"Invalid credentials file format: {e}"
            self.logger.error("Google Drive authentication failed", error=error_msg)
            raise AuthenticationError(error_msg)

        except (google.auth.exceptions.GoogleAuthError, ValueError) as e:
            error_msg = f"Invalid credentials: {e}"
            self.logger.error("Google Drive authentication failed", error=error_msg)
            raise AuthenticationError(error_msg)

    async def list_folders(
        self,
        parent_id: Optional[str],
        drive_id: Optional[str] = None
    ) -> List[DriveItem]:
        """List the child folders of a Drive folder."""
        query = self._build_query(parent_id, drive_id, folders=True)
        return await self._list_all(query, drive_id)

    async def list_files(
        self,
        folder_id: Optional[str],
        drive_id: Optional[str] = None
    ) -> List[DriveItem]:
        """List the child files of a Drive folder."""
        query = self._build_query(folder_id, drive_id, folders=False)
        return await self._list_all(query, drive_id)

    async def _list_all(self, query: str, drive_id: Optional[str]) -> List[DriveItem]:
        """Run a ``files.list`` query, following every page token."""
        if not self._authenticated:
            await self.authenticate()

        items: List[DriveItem] = []
        page_token = None
        loop = asyncio.get_running_loop()

        try:
            while True:
                request = self.service.files().list(**self._list_params(query, drive_id, page_token))

                # googleapiclient is blocking; keep it off the event loop
                result = await loop.run_in_executor(None, self._execute_request, request)

                files = result.get("files", [])
                items.extend(DriveItem.from_api(f) for f in files)
                page_token = result.get("nextPageToken")

                self.logger.debug(
                    "Retrieved Google Drive listing page",
                    files_count=len(files),
                    has_next_page=bool(page_token)
                )

                if not page_token:
                    break

        except HttpError as e:
            if e.resp.status == 429:
                retry_after = parse_retry_after(e.resp.get("retry-after"))
                raise RateLimitError("Google Drive rate limit exceeded", retry_after)
            raise APIConnectionError(f"Google Drive API error: {e}")

        return items

    def _list_params(
        self,
        query: str,
        drive_id: Optional[str],
        page_token: Optional[str]
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "q": query,
            "fields": LIST_FIELDS,
            "pageSize": self.page_size,
            "orderBy": "name",
            "supportsAllDrives": True,
            "includeItemsFromAllDrives": True,
        }
        if drive_id:
            params["driveId"] = drive_id
            params["corpora"] = "drive"
        if page_token:
            params["pageToken"] = page_token
        return params

    def _build_query(self, parent_id: Optional[str], drive_id: Optional[str], folders: bool) -> str:
        """Build a Drive query for the direct children of a folder."""
        parent = parent_id or drive_id or "root"
        parent = parent.replace("\\", "\\\\").replace("'", "\\'")
        operator = "=" if folders else "!="

        query = " and ".join([
            f"'{parent}' in parents",
            f"mimeType {operator} '{FOLDER_MIME_TYPE}'",
            "trashed = false",
        ])
        self.logger.debug("Built Google Drive query", query=query)
        return query

    def _execute_request(self, request):
        """Execute a request on a private HTTP object (run in thread pool)."""
        http = google_auth_httplib2.AuthorizedHttp(self.credentials, http=httplib2.Http())
        return request.execute(http=http)
