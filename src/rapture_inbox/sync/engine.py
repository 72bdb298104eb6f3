#!/usr/bin/env python3
"""
Sync Engine

Drains the Drive inbox folder into the local destination folder. Each note is
downloaded, written as a new local file, then deleted from Drive, so every
note is delivered once across all clients.
"""

import logging
import time

from rapture_inbox.client import DriveClient, DriveFile
from rapture_inbox.constants import SYNC_IN_PROGRESS_MESSAGE
from rapture_inbox.settings import Settings
from rapture_inbox.storage import LocalStore, normalize_path
from rapture_inbox.sync.models import SyncResult, SyncStatus

logger = logging.getLogger(__name__)


def add_timestamp_suffix(path: str, timestamp_ms: int) -> str:
    """Insert -<timestamp_ms> before the file extension (note.md -> note-1735020000000.md).

    Only the final path segment is considered; a name without an extension gets the suffix appended.
    """
    folder, _, name = path.rpartition("/")
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        new_name = f"{name}-{timestamp_ms}"
    else:
        new_name = f"{stem}-{timestamp_ms}.{ext}"
    return f"{folder}/{new_name}" if folder else new_name


def _check_file_name(name: str) -> None:
    """Reject remote names that would place the note outside the destination folder."""
    if "/" in name or "\\" in name or name.strip() in ("", ".", ".."):
        raise ValueError(f"Invalid file name: {name!r}")


class SyncEngine:
    """Single-flight inbox sync between a DriveClient and a LocalStore."""

    def __init__(self, drive: DriveClient, store: LocalStore, settings: Settings):
        self.drive = drive
        self.store = store
        self.settings = settings
        self._status = SyncStatus.IDLE

    @property
    def status(self) -> SyncStatus:
        return self._status

    def update_settings(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def destination_folder(self) -> str:
        return normalize_path(self.settings.destination_folder)

    async def sync_now(self) -> SyncResult:
        """
        Run one sync of the inbox folder.

        A missing inbox folder or an empty folder is a successful run with nothing
        downloaded. Per-file failures are recorded in the result without stopping
        the run; a run with errors still counts as successful if at least one file
        was rescued. Anything else that goes wrong fails the run and leaves the
        engine in the ERROR state.

        Returns:
            SyncResult: Outcome of this run, or an immediate failure if a run is already in flight
        """
        # Check-and-set happens before the first await, so overlapping calls cannot both start
        if self._status is SyncStatus.SYNCING:
            logger.info("Sync requested while another sync is running")
            return SyncResult(success=False, files_downloaded=0, errors=[SYNC_IN_PROGRESS_MESSAGE])

        self._status = SyncStatus.SYNCING
        result = SyncResult()

        try:
            folder_id = await self.drive.find_inbox_folder()
            if not folder_id:
                # Not an error, the inbox just hasn't been created yet
                logger.info("No inbox folder found, nothing to sync")
                self._status = SyncStatus.IDLE
                return result

            files = await self.drive.list_files(folder_id)
            if not files:
                logger.info("Inbox is empty")
                self._status = SyncStatus.IDLE
                return result

            logger.info(f"Found {len(files)} notes in inbox")
            await self._ensure_destination_folder()

            for drive_file in files:
                await self._transfer_file(drive_file, result)

            if result.errors:
                result.success = result.files_downloaded > 0

        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True)
            result.success = False
            result.errors.append(f"Sync failed: {e}")
            self._status = SyncStatus.ERROR
            return result

        logger.info(f"Sync finished: {result.files_downloaded} downloaded, {len(result.errors)} errors")
        self._status = SyncStatus.IDLE
        return result

    async def _ensure_destination_folder(self) -> None:
        folder_path = self.destination_folder
        if folder_path == "/":
            return

        if not await self.store.exists(folder_path):
            logger.info(f"Creating destination folder {folder_path}")
            await self.store.create_folder(folder_path)

    async def _transfer_file(self, drive_file: DriveFile, result: SyncResult) -> None:
        """Download one note, save it locally, then remove it from Drive."""
        try:
            _check_file_name(drive_file.name)
            content = await self.drive.download_file(drive_file.id)
            file_path = await self._resolve_file_path(drive_file.name)
            await self.store.create(file_path, content)
        except Exception as e:
            logger.error(f"Error downloading file {drive_file.name}: {e}")
            result.errors.append(f"Failed to process {drive_file.name}: {e}")
            return

        logger.debug(f"Saved {drive_file.name} to {file_path}")

        # The local copy is kept even when the delete fails; the note may come back next run
        if await self.drive.delete_file(drive_file.id):
            result.files_downloaded += 1
        else:
            result.errors.append(f"Failed to delete {drive_file.name} from Drive")

    async def _resolve_file_path(self, file_name: str) -> str:
        """Destination path for a note, with a millisecond timestamp suffix when the name is taken."""
        folder_path = self.destination_folder
        original_path = normalize_path(f"{folder_path}/{file_name}" if folder_path != "/" else file_name)

        if not await self.store.exists(original_path):
            return original_path

        resolved_path = add_timestamp_suffix(original_path, int(time.time() * 1000))
        logger.info(f"{original_path} already exists, saving as {resolved_path}")
        return resolved_path
