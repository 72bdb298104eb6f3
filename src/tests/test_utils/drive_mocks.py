"""
Mock factories for rapture-inbox tests.

HTTP is mocked at the aiohttp.ClientSession boundary: clients call
``await session.request(...)`` / ``await session.post(...)`` and then
``await response.text()``, so responses only need ``status`` and ``text``.
"""

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

from rapture_inbox.auth import CredentialManager
from rapture_inbox.client import DriveClient, DriveFile


def create_aiohttp_response(status: int = 200, json_data: Any = None, body: str = "") -> MagicMock:
    """
    Create a mock aiohttp response.

    Args:
        status: HTTP status code
        json_data: Response body to serialize as JSON (takes precedence over body)
        body: Raw response body

    Example:
        response = create_aiohttp_response(json_data={"files": []})
        response = create_aiohttp_response(status=401)
    """
    response = MagicMock()
    response.status = status
    response.text = AsyncMock(return_value=json.dumps(json_data) if json_data is not None else body)
    return response


def create_mock_session(*responses: Any) -> MagicMock:
    """Create a mock ClientSession whose request() and post() return responses in order.

    Exceptions in ``responses`` are raised instead of returned.
    """
    session = MagicMock()
    session.request = AsyncMock(side_effect=list(responses))
    session.post = AsyncMock(side_effect=list(responses))
    session.close = AsyncMock()
    return session


def folder_listing(*folder_ids: str) -> MagicMock:
    """Response to a folder lookup query."""
    return create_aiohttp_response(json_data={"files": [{"id": fid, "name": fid} for fid in folder_ids]})


def file_listing(*files: DriveFile, next_page_token: str | None = None) -> MagicMock:
    """Response to a file listing query."""
    data: dict[str, Any] = {
        "files": [
            {"id": f.id, "name": f.name, "mimeType": f.mime_type, "modifiedTime": f.modified_time} for f in files
        ]
    }
    if next_page_token:
        data["nextPageToken"] = next_page_token
    return create_aiohttp_response(json_data=data)


def token_response(
    access_token: str = "new-access", expires_in: int = 3600, refresh_token: str | None = None, email: str | None = None
) -> MagicMock:
    """Successful response from the token service."""
    data: dict[str, Any] = {"access_token": access_token, "expires_in": expires_in}
    if refresh_token is not None:
        data["refresh_token"] = refresh_token
    if email is not None:
        data["email"] = email
    return create_aiohttp_response(json_data=data)


def make_drive_file(file_id: str = "file1", name: str = "2024-12-24-120000-test-note.md") -> DriveFile:
    return DriveFile(id=file_id, name=name, mime_type="text/markdown", modified_time="2024-12-24T12:00:00Z")


def create_credentials_mock(tokens: list[str] | None = None) -> MagicMock:
    """Mock CredentialManager handing out tokens in order (or "token-1" forever)."""
    credentials = MagicMock(spec=CredentialManager)
    if tokens:
        credentials.get_access_token = AsyncMock(side_effect=list(tokens))
    else:
        credentials.get_access_token = AsyncMock(return_value="token-1")
    credentials.refresh_access_token = AsyncMock()
    credentials.is_authenticated.return_value = True
    return credentials


def create_drive_client_mock(
    folder_id: str | None = "folder_id",
    files: list[DriveFile] | None = None,
    content: str | Exception = "content",
    deleted: bool = True,
) -> MagicMock:
    """Mock DriveClient for engine tests."""
    drive = MagicMock(spec=DriveClient)
    drive.find_inbox_folder = AsyncMock(return_value=folder_id)
    drive.list_files = AsyncMock(return_value=files or [])
    if isinstance(content, Exception):
        drive.download_file = AsyncMock(side_effect=content)
    else:
        drive.download_file = AsyncMock(return_value=content)
    drive.delete_file = AsyncMock(return_value=deleted)
    return drive
