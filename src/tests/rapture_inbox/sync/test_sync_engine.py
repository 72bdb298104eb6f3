"""
Tests for the inbox sync engine.

Drive is mocked; notes are written into a real temporary vault.
"""

import asyncio
import re

import pytest

from rapture_inbox.client import DownloadError, DriveFileNotFoundError, ListFilesError
from rapture_inbox.settings import Settings
from rapture_inbox.storage import LocalStore
from rapture_inbox.sync import SyncEngine, SyncStatus, add_timestamp_suffix
from tests.test_utils.drive_mocks import create_drive_client_mock, make_drive_file

NOTE_CONTENT = "---\ntitle: Test Note\n---\n\nThis is test content."


def make_engine(vault: LocalStore, drive, destination_folder: str = "Rapture/") -> SyncEngine:
    return SyncEngine(drive, vault, Settings(destination_folder=destination_folder))


def read_note(vault: LocalStore, path: str) -> str:
    return (vault.base_path / path).read_bytes().decode("utf-8")


class TestAddTimestampSuffix:
    def test_suffix_before_extension(self):
        assert add_timestamp_suffix("Rapture/note.md", 1735020000000) == "Rapture/note-1735020000000.md"

    def test_only_last_dot_is_the_extension(self):
        assert add_timestamp_suffix("Rapture/my.note.md", 42) == "Rapture/my.note-42.md"

    def test_dots_in_folder_are_ignored(self):
        assert add_timestamp_suffix("v1.2/README", 42) == "v1.2/README-42"

    def test_no_extension(self):
        assert add_timestamp_suffix("note", 42) == "note-42"

    def test_dotfile_keeps_its_name(self):
        assert add_timestamp_suffix("Rapture/.hidden", 42) == "Rapture/.hidden-42"


class TestSyncNow:
    @pytest.mark.asyncio
    async def test_downloads_and_deletes_note(self, vault):
        drive_file = make_drive_file("file1", "2024-12-24-120000-test-note.md")
        drive = create_drive_client_mock(files=[drive_file], content=NOTE_CONTENT)
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.success is True
        assert result.files_downloaded == 1
        assert result.errors == []
        assert read_note(vault, "Rapture/2024-12-24-120000-test-note.md") == NOTE_CONTENT
        drive.list_files.assert_awaited_once_with("folder_id")
        drive.download_file.assert_awaited_once_with("file1")
        drive.delete_file.assert_awaited_once_with("file1")
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_missing_inbox_folder_is_not_an_error(self, vault):
        drive = create_drive_client_mock(folder_id=None)
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert (result.success, result.files_downloaded, result.errors) == (True, 0, [])
        drive.list_files.assert_not_called()
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_empty_inbox_does_not_touch_vault(self, vault):
        drive = create_drive_client_mock(files=[])
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert (result.success, result.files_downloaded, result.errors) == (True, 0, [])
        assert not (vault.base_path / "Rapture").exists()

    @pytest.mark.asyncio
    async def test_creates_nested_destination_folder(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])
        engine = make_engine(vault, drive, destination_folder="Inbox/Rapture/")

        await engine.sync_now()

        assert (vault.base_path / "Inbox" / "Rapture").is_dir()
        assert (vault.base_path / "Inbox" / "Rapture" / "note.md").is_file()

    @pytest.mark.asyncio
    async def test_vault_root_destination(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])
        engine = make_engine(vault, drive, destination_folder="/")

        result = await engine.sync_now()

        assert result.files_downloaded == 1
        assert (vault.base_path / "note.md").is_file()

    @pytest.mark.asyncio
    async def test_destination_path_is_normalized(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])
        engine = make_engine(vault, drive, destination_folder="\\Inbox//Notes\\")

        await engine.sync_now()

        assert (vault.base_path / "Inbox" / "Notes" / "note.md").is_file()

    @pytest.mark.asyncio
    async def test_name_collision_gets_timestamp_suffix(self, vault):
        await vault.create_folder("Rapture")
        await vault.create("Rapture/note.md", "existing")
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")], content=NOTE_CONTENT)
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.files_downloaded == 1
        assert read_note(vault, "Rapture/note.md") == "existing"
        names = sorted(p.name for p in (vault.base_path / "Rapture").iterdir())
        assert len(names) == 2
        renamed = next(name for name in names if name != "note.md")
        assert re.fullmatch(r"note-\d+\.md", renamed)
        assert read_note(vault, f"Rapture/{renamed}") == NOTE_CONTENT

    @pytest.mark.asyncio
    async def test_content_written_byte_for_byte(self, vault):
        content = "line one\r\nline two\n\ttabbed ünïcödé\n"
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")], content=content)
        engine = make_engine(vault, drive)

        await engine.sync_now()

        assert (vault.base_path / "Rapture" / "note.md").read_bytes() == content.encode("utf-8")

    @pytest.mark.asyncio
    async def test_partial_failure_is_still_success(self, vault):
        files = [make_drive_file("file1", "first.md"), make_drive_file("file2", "second.md")]
        drive = create_drive_client_mock(files=files)
        drive.download_file.side_effect = ["first content", DownloadError("Failed to download file: 500")]
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.success is True
        assert result.files_downloaded == 1
        assert result.errors == ["Failed to process second.md: Failed to download file: 500"]
        drive.delete_file.assert_awaited_once_with("file1")
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_all_files_failing_is_failure(self, vault):
        files = [make_drive_file("file1", "first.md"), make_drive_file("file2", "second.md")]
        drive = create_drive_client_mock(files=files, content=DriveFileNotFoundError("File not found"))
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.success is False
        assert result.files_downloaded == 0
        assert result.errors == [
            "Failed to process first.md: File not found",
            "Failed to process second.md: File not found",
        ]
        drive.delete_file.assert_not_called()
        # Per-file failures do not put the engine into the error state
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_failed_delete_keeps_local_copy(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")], content=NOTE_CONTENT, deleted=False)
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.files_downloaded == 0
        assert result.errors == ["Failed to delete note.md from Drive"]
        assert result.success is False
        assert read_note(vault, "Rapture/note.md") == NOTE_CONTENT

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["../Escaped.md", "sub/note.md", "..\\Escaped.md", ".."])
    async def test_names_leaving_destination_folder_are_rejected(self, vault, name):
        files = [make_drive_file("bad", name), make_drive_file("good", "note.md")]
        drive = create_drive_client_mock(files=files)
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.success is True
        assert result.files_downloaded == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith(f"Failed to process {name}: Invalid file name")
        assert sorted(p.name for p in vault.base_path.iterdir()) == ["Rapture"]
        assert [p.name for p in (vault.base_path / "Rapture").iterdir()] == ["note.md"]
        drive.download_file.assert_awaited_once_with("good")
        drive.delete_file.assert_awaited_once_with("good")

    @pytest.mark.asyncio
    async def test_listing_failure_puts_engine_in_error_state(self, vault):
        drive = create_drive_client_mock()
        drive.list_files.side_effect = ListFilesError("Failed to list files: 500")
        engine = make_engine(vault, drive)

        result = await engine.sync_now()

        assert result.success is False
        assert result.files_downloaded == 0
        assert result.errors == ["Sync failed: Failed to list files: 500"]
        assert engine.status is SyncStatus.ERROR

    @pytest.mark.asyncio
    async def test_recovers_after_error(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])
        drive.list_files.side_effect = [ListFilesError("Failed to list files: 500"), [make_drive_file(name="note.md")]]
        engine = make_engine(vault, drive)

        await engine.sync_now()
        assert engine.status is SyncStatus.ERROR

        result = await engine.sync_now()

        assert result.success is True
        assert result.files_downloaded == 1
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_second_run_after_drain_finds_nothing(self, vault):
        drive = create_drive_client_mock()
        drive.list_files.side_effect = [[make_drive_file(name="note.md")], []]
        engine = make_engine(vault, drive)

        first = await engine.sync_now()
        second = await engine.sync_now()

        assert first.files_downloaded == 1
        assert (second.success, second.files_downloaded) == (True, 0)
        assert drive.download_file.await_count == 1

    @pytest.mark.asyncio
    async def test_settings_update_changes_destination(self, vault):
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])
        engine = make_engine(vault, drive)

        engine.update_settings(Settings(destination_folder="Elsewhere"))
        await engine.sync_now()

        assert (vault.base_path / "Elsewhere" / "note.md").is_file()


class TestSingleFlight:
    @pytest.mark.asyncio
    async def test_overlapping_run_is_rejected(self, vault):
        release = asyncio.Event()
        entered = asyncio.Event()
        drive = create_drive_client_mock(files=[make_drive_file(name="note.md")])

        async def slow_find_inbox_folder():
            entered.set()
            await release.wait()
            return "folder_id"

        drive.find_inbox_folder.side_effect = slow_find_inbox_folder
        engine = make_engine(vault, drive)

        first_run = asyncio.create_task(engine.sync_now())
        await entered.wait()
        assert engine.status is SyncStatus.SYNCING

        rejected = await engine.sync_now()

        assert rejected.success is False
        assert rejected.files_downloaded == 0
        assert rejected.errors == ["Sync already in progress"]

        release.set()
        first = await first_run

        assert first.files_downloaded == 1
        assert drive.find_inbox_folder.await_count == 1
        assert engine.status is SyncStatus.IDLE

    @pytest.mark.asyncio
    async def test_sync_allowed_again_after_run_completes(self, vault):
        drive = create_drive_client_mock(files=[])
        engine = make_engine(vault, drive)

        await engine.sync_now()
        result = await engine.sync_now()

        assert result.success is True
        assert drive.find_inbox_folder.await_count == 2
