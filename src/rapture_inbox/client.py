"""
Async Google Drive API client using aiohttp
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

import aiohttp
from tenacity import AsyncRetrying, before_sleep_log, retry_if_exception_type, stop_after_attempt

from .auth import CredentialManager, UnauthorizedError
from .constants import (
    AUTH_RETRY_ATTEMPTS,
    DEFAULT_TIMEOUT,
    DRIVE_API_BASE,
    FOLDER_MIME_TYPE,
    INBOX_CHILD_FOLDER,
    INBOX_PARENT_FOLDER,
    NOTE_MIME_TYPE,
)

logger = logging.getLogger(__name__)

LIST_PAGE_SIZE = 100


class DriveError(Exception):
    """Base exception for Google Drive operations."""

    pass


class DriveFileNotFoundError(DriveError):
    """Raised when a file is already gone from Drive (404)."""

    pass


class ListFilesError(DriveError):
    """Raised when listing the inbox folder fails."""

    pass


class DownloadError(DriveError):
    """Raised when a file's content cannot be downloaded."""

    pass


@dataclass(frozen=True)
class DriveFile:
    """A file listed from the inbox folder."""

    id: str
    name: str
    mime_type: str
    modified_time: str

    @classmethod
    def from_api_response(cls, data: dict) -> "DriveFile":
        return cls(
            id=data["id"],
            name=data["name"],
            mime_type=data.get("mimeType", ""),
            modified_time=data.get("modifiedTime", ""),
        )


@dataclass(frozen=True)
class DriveResponse:
    status: int
    body: str

    def json(self) -> Any:
        return json.loads(self.body) if self.body else {}


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _quote(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """Async client for the Drive operations the inbox needs: find, list, download, delete."""

    def __init__(
        self,
        credentials: CredentialManager,
        base_url: str = DRIVE_API_BASE,
        timeout: int = DEFAULT_TIMEOUT,
        max_auth_attempts: int = AUTH_RETRY_ATTEMPTS,
    ):
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_auth_attempts = max_auth_attempts

        # Session will be created lazily when first needed
        self.session: aiohttp.ClientSession | None = None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists, creating it if necessary."""
        if self.session is None:
            timeout_config = aiohttp.ClientTimeout(total=self.timeout, connect=10, sock_read=30)
            self.session = aiohttp.ClientSession(timeout=timeout_config)
        return self.session

    async def close(self):
        """Close the session. Must be called when done with client."""
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def _send(self, method: str, path: str, params: dict[str, Any] | None = None) -> DriveResponse:
        """Send one request with the current bearer token. 401 raises UnauthorizedError."""
        token = await self.credentials.get_access_token()
        session = await self._ensure_session()

        response = await session.request(
            method,
            f"{self.base_url}/{path}",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
        )
        body = await response.text()

        if response.status == 401:
            raise UnauthorizedError(f"Drive rejected credentials (401) for {method} {path}")

        return DriveResponse(status=response.status, body=body)

    async def request(self, method: str, path: str, params: dict[str, Any] | None = None) -> DriveResponse:
        """
        Make an authenticated Drive request.

        On a 401 the access token is refreshed and the request replayed, up to
        max_auth_attempts in total. A 401 on the last attempt propagates as
        UnauthorizedError; a failed refresh propagates as TokenRefreshError.
        """
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_auth_attempts),
            retry=retry_if_exception_type(UnauthorizedError),
            before_sleep=before_sleep_log(logger, logging.INFO),
            reraise=True,
        ):
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.debug("Refreshing access token before replaying request")
                    await self.credentials.refresh_access_token()
                return await self._send(method, path, params)

        # Unreachable: stop_after_attempt always allows a first attempt, and reraise=True re-raises the last error
        raise AssertionError(f"Retry loop for {method} {path} ended without a result")

    async def _find_folder(self, name: str, parent_id: str | None = None) -> str | None:
        """Return the id of the first folder with this exact name, optionally inside a parent."""
        clauses = [f"name = '{_quote(name)}'"]
        if parent_id:
            clauses.append(f"'{_quote(parent_id)}' in parents")
        clauses += [f"mimeType = '{FOLDER_MIME_TYPE}'", "trashed = false"]
        query = " and ".join(clauses)

        response = await self.request("GET", "files", params={"q": query, "fields": "files(id,name)"})
        if not _is_success(response.status):
            raise DriveError(f"Failed to find {name} folder: {response.status}")

        folders = response.json().get("files") or []
        if not folders:
            return None
        return folders[0]["id"]

    async def find_inbox_folder(self) -> str | None:
        """
        Locate the inbox folder (Rapture/Obsidian).

        Returns:
            str | None: Folder id, or None when either folder is missing. Errors are
            logged and also reported as None.
        """
        try:
            parent_id = await self._find_folder(INBOX_PARENT_FOLDER)
            if parent_id is None:
                logger.info(f"No {INBOX_PARENT_FOLDER} folder in Drive")
                return None

            folder_id = await self._find_folder(INBOX_CHILD_FOLDER, parent_id)
            if folder_id is None:
                logger.info(f"No {INBOX_PARENT_FOLDER}/{INBOX_CHILD_FOLDER} folder in Drive")
            return folder_id
        except Exception as e:
            logger.error(f"Error finding inbox folder: {e}")
            return None

    async def list_files(self, folder_id: str) -> list[DriveFile]:
        """
        List the notes in a folder, newest modified first.

        Raises:
            ListFilesError: On a non-2xx response
        """
        query = f"'{_quote(folder_id)}' in parents and mimeType = '{NOTE_MIME_TYPE}' and trashed = false"
        params: dict[str, Any] = {
            "q": query,
            "fields": "nextPageToken,files(id,name,mimeType,modifiedTime)",
            "orderBy": "modifiedTime desc",
            "pageSize": LIST_PAGE_SIZE,
        }

        files: list[DriveFile] = []
        while True:
            response = await self.request("GET", "files", params=params)
            if not _is_success(response.status):
                raise ListFilesError(f"Failed to list files: {response.status}")

            data = response.json()
            files.extend(DriveFile.from_api_response(item) for item in data.get("files") or [])

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params = {**params, "pageToken": page_token}

        logger.debug(f"Listed {len(files)} files in folder {folder_id}")
        return files

    async def download_file(self, file_id: str) -> str:
        """
        Download a file's text content.

        Raises:
            DriveFileNotFoundError: On 404
            DownloadError: On any other non-2xx response
        """
        response = await self.request("GET", f"files/{file_id}", params={"alt": "media"})

        if response.status == 404:
            raise DriveFileNotFoundError("File not found")

        if not _is_success(response.status):
            raise DownloadError(f"Failed to download file: {response.status}")

        return response.body

    async def delete_file(self, file_id: str) -> bool:
        """
        Delete a file from Drive.

        Returns:
            bool: True when deleted or already gone, False on any other outcome. Never raises.
        """
        try:
            response = await self.request("DELETE", f"files/{file_id}")
        except Exception as e:
            logger.error(f"Error deleting file {file_id}: {e}")
            return False

        if response.status == 404:
            # File already deleted, consider success
            return True

        # DELETE returns 204 No Content on success
        if _is_success(response.status):
            return True

        logger.warning(f"Delete of file {file_id} returned status {response.status}")
        return False
