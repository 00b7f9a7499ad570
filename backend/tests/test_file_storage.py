"""Unit tests for the file storage backend."""
import json
from unittest.mock import patch

import pytest

from mcp_prompts.errors import (
    BackupNotFoundError,
    InvalidPromptIdError,
    PromptNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from mcp_prompts.services.storage import FileStorageAdapter


class TestFileLayout:
    """Test cases for on-disk representation."""

    @pytest.mark.asyncio
    async def test_one_pretty_json_file_per_prompt(self, file_storage, code_review_data):
        """Test each prompt is written to {id}.json with camelCase keys."""
        prompt = await file_storage.save_prompt(code_review_data)
        path = file_storage.prompts_dir / f"{prompt.id}.json"

        assert path.exists()
        text = path.read_text(encoding="utf-8")
        assert text.startswith("{\n  ")
        data = json.loads(text)
        assert data["id"] == prompt.id
        assert data["isTemplate"] is True
        assert data["version"] == 1

    @pytest.mark.asyncio
    async def test_no_temp_files_left(self, file_storage, code_review_data):
        """Test atomic writes leave only the final files behind."""
        prompt = await file_storage.save_prompt(code_review_data)
        await file_storage.update_prompt(prompt.id, {"name": "Renamed"})

        names = sorted(p.name for p in file_storage.prompts_dir.iterdir())
        assert names == [f"{prompt.id}.json"]

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, file_storage, code_review_data):
        """Test delete unlinks the record file."""
        prompt = await file_storage.save_prompt(code_review_data)
        await file_storage.delete_prompt(prompt.id)
        assert not (file_storage.prompts_dir / f"{prompt.id}.json").exists()

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path, code_review_data):
        """Test a new adapter over the same directory sees earlier writes."""
        first = FileStorageAdapter(tmp_path / "prompts")
        await first.connect()
        prompt = await first.save_prompt(code_review_data)
        await first.disconnect()

        second = FileStorageAdapter(tmp_path / "prompts")
        await second.connect()
        assert await second.get_prompt(prompt.id) == prompt

    @pytest.mark.asyncio
    async def test_default_backups_dir(self, tmp_path):
        """Test backups default to a sibling of the prompts directory."""
        adapter = FileStorageAdapter(tmp_path / "prompts")
        assert adapter.backups.backups_dir == tmp_path / "backups"


class TestFileErrors:
    """Test cases for unreadable data and unusable paths."""

    @pytest.mark.asyncio
    async def test_corrupt_file_skipped_in_list(self, file_storage, code_review_data):
        """Test list_prompts skips files that do not parse."""
        prompt = await file_storage.save_prompt(code_review_data)
        (file_storage.prompts_dir / "broken.json").write_text("{ not json", encoding="utf-8")
        (file_storage.prompts_dir / "wrong-shape.json").write_text('{"id": "x"}', encoding="utf-8")

        result = await file_storage.list_prompts()
        assert [p.id for p in result] == [prompt.id]

    @pytest.mark.asyncio
    async def test_corrupt_file_get_raises(self, file_storage):
        """Test get_prompt on a corrupt file raises StorageError."""
        (file_storage.prompts_dir / "broken.json").write_text("{ not json", encoding="utf-8")
        with pytest.raises(StorageError):
            await file_storage.get_prompt("broken")

    @pytest.mark.asyncio
    async def test_non_json_files_ignored(self, file_storage):
        """Test stray files in the directory are not listed."""
        (file_storage.prompts_dir / "notes.txt").write_text("hello", encoding="utf-8")
        assert await file_storage.list_prompts() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bad_id", ["../escape", ".hidden", "a/b", ""])
    async def test_unsafe_ids_not_found(self, file_storage, bad_id):
        """Test ids that cannot name a file inside the directory are misses."""
        with pytest.raises(PromptNotFoundError):
            await file_storage.get_prompt(bad_id)

    @pytest.mark.asyncio
    async def test_unsafe_id_rejected_on_save(self, file_storage):
        """Test saving with a path-like id is refused."""
        with pytest.raises(InvalidPromptIdError, match="Invalid prompt id"):
            await file_storage.save_prompt({"id": "../escape", "name": "n", "content": "c"})
        assert not (file_storage.prompts_dir.parent / "escape.json").exists()

    @pytest.mark.asyncio
    async def test_connect_failure(self, tmp_path):
        """Test an unusable directory raises StorageUnavailableError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        adapter = FileStorageAdapter(blocker / "prompts")

        with pytest.raises(StorageUnavailableError):
            await adapter.connect()
        assert adapter.is_connected is False

    @pytest.mark.asyncio
    async def test_write_failure_wrapped(self, file_storage, code_review_data):
        """Test OS errors during writes surface as StorageError."""
        with patch(
            "mcp_prompts.services.storage.file.atomic_write_json",
            side_effect=PermissionError("read-only"),
        ):
            with pytest.raises(StorageError, match="read-only"):
                await file_storage.save_prompt(code_review_data)


class TestFileBackups:
    """Test cases for snapshot backup and restore."""

    @pytest.mark.asyncio
    async def test_backup_restore_round_trip(self, file_storage, code_review_data):
        """Test restore brings back the exact snapshot contents."""
        kept = await file_storage.save_prompt(code_review_data)
        kept = await file_storage.update_prompt(kept.id, {"tags": ["v2"]})
        backup_id = await file_storage.backup()

        await file_storage.delete_prompt(kept.id)
        added_later = await file_storage.save_prompt({"name": "Later", "content": "x"})

        await file_storage.restore(backup_id)

        assert await file_storage.get_prompt(kept.id) == kept
        with pytest.raises(PromptNotFoundError):
            await file_storage.get_prompt(added_later.id)

    @pytest.mark.asyncio
    async def test_backup_file_written(self, file_storage, code_review_data):
        """Test a backup is a JSON snapshot in the backups directory."""
        await file_storage.save_prompt(code_review_data)
        backup_id = await file_storage.backup()

        snapshot = json.loads((file_storage.backups.backups_dir / f"{backup_id}.json").read_text(encoding="utf-8"))
        assert snapshot["backupId"] == backup_id
        assert len(snapshot["prompts"]) == 1

    @pytest.mark.asyncio
    async def test_list_backups_empty(self, file_storage):
        """Test no backups directory means no backups."""
        assert await file_storage.list_backups() == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("backup_id", ["file_backup_missing", "../../etc/passwd"])
    async def test_restore_unknown(self, file_storage, backup_id):
        """Test restoring an unknown or unsafe id raises BackupNotFoundError."""
        with pytest.raises(BackupNotFoundError):
            await file_storage.restore(backup_id)
