"""
Local Storage

Folder-and-file tree rooted at the vault directory. Paths handed to LocalStore
are vault-relative and use forward slashes.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Any

import aiofiles
import fsspec

logger = logging.getLogger(__name__)


class StorageExistsError(Exception):
    """Raised when creating a file at a path that is already taken."""

    pass


def normalize_path(path: str) -> str:
    """Normalize a vault-relative path.

    Backslashes become slashes, repeated slashes collapse, and leading/trailing
    slashes are stripped. An empty result means the vault root and is returned as "/".
    """
    path = path.replace("\\", "/").replace("\u00a0", " ")
    path = re.sub(r"/+", "/", path).strip("/")
    return path or "/"


class LocalStore:
    """
    Async local filesystem store.

    Existence checks and folder creation go through fsspec in the default executor;
    file content is written with aiofiles.
    """

    def __init__(self, base_path: Path | str):
        if not base_path:
            raise ValueError("Local storage requires explicit base_path")
        self.base_path = Path(base_path).expanduser().resolve()
        self._fs = None

    def _get_fs(self) -> Any:
        """Get filesystem instance (lazy initialization)."""
        if self._fs is None:
            self._fs = fsspec.filesystem("file")
        return self._fs

    def _resolve(self, path: str) -> Path:
        """Map a vault-relative path to an absolute path inside the vault."""
        normalized_path = normalize_path(path)
        if normalized_path == "/":
            return self.base_path

        resolved = (self.base_path / normalized_path).resolve()
        if resolved != self.base_path and self.base_path not in resolved.parents:
            raise ValueError(f"Path escapes vault: {path}")
        return resolved

    def get_display_path(self, path: str) -> str:
        return str(self._resolve(path))

    async def exists(self, path: str) -> bool:
        """Check if a file or folder exists at path."""
        loop = asyncio.get_event_loop()
        fs = self._get_fs()
        return await loop.run_in_executor(None, fs.exists, str(self._resolve(path)))

    async def create_folder(self, path: str) -> None:
        """Create a folder and any missing parents."""
        loop = asyncio.get_event_loop()
        fs = self._get_fs()
        resolved = str(self._resolve(path))

        await loop.run_in_executor(None, lambda: fs.makedirs(resolved, exist_ok=True))
        logger.debug(f"Created folder {resolved}")

    async def create(self, path: str, content: str, encoding: str = "utf-8") -> str:
        """
        Create a new file holding content.

        Creation is exclusive: an existing entry at path is never overwritten.
        Content is written unchanged, without newline translation.

        Returns:
            str: The normalized vault-relative path that was written

        Raises:
            StorageExistsError: If something already exists at path
        """
        normalized_path = normalize_path(path)
        resolved = self._resolve(normalized_path)

        try:
            async with aiofiles.open(resolved, "x", encoding=encoding, newline="") as f:
                await f.write(content)
        except FileExistsError:
            raise StorageExistsError(f"File already exists: {normalized_path}") from None

        logger.debug(f"Wrote {len(content)} characters to {resolved}")
        return normalized_path
