"""JSON snapshot backups for the file and postgres backends."""
import logging
import re
from pathlib import Path

import aiofiles.os

from mcp_prompts.errors import BackupNotFoundError, StorageError, StorageUnavailableError
from mcp_prompts.schemas.prompt import Prompt, utcnow
from mcp_prompts.services.storage.base import new_backup_id
from mcp_prompts.services.storage.fileio import atomic_write_json, list_json_files, read_json

logger = logging.getLogger(__name__)

_SAFE_BACKUP_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


class JsonBackupStore:
    """One `<backup_id>.json` file per snapshot of the full record set."""

    def __init__(self, backups_dir: Path, prefix: str):
        self.backups_dir = Path(backups_dir)
        self.prefix = prefix

    async def ensure_dir(self) -> None:
        try:
            await aiofiles.os.makedirs(self.backups_dir, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Cannot create backups directory {self.backups_dir}: {e}"
            ) from e

    def _path(self, backup_id: str) -> Path:
        if not _SAFE_BACKUP_ID.match(backup_id):
            raise BackupNotFoundError(backup_id)
        return self.backups_dir / f"{backup_id}.json"

    async def write(self, prompts: list[Prompt]) -> str:
        """Snapshot `prompts` and return the new backup id."""
        await self.ensure_dir()
        backup_id = new_backup_id(self.prefix)
        await atomic_write_json(self._path(backup_id), {
            "backupId": backup_id,
            "createdAt": utcnow().isoformat(),
            "prompts": [p.model_dump(mode="json", by_alias=True) for p in prompts],
        })
        logger.info(f"Created {self.prefix} backup {backup_id} ({len(prompts)} prompts)")
        return backup_id

    async def read(self, backup_id: str) -> list[Prompt]:
        path = self._path(backup_id)
        try:
            snapshot = await read_json(path)
            return [Prompt.model_validate(item) for item in snapshot.get("prompts", [])]
        except FileNotFoundError as e:
            raise BackupNotFoundError(backup_id) from e
        except (OSError, ValueError, AttributeError) as e:
            raise StorageError(f"Unreadable backup {backup_id}: {e}") from e

    async def list_ids(self) -> list[str]:
        if not await aiofiles.os.path.isdir(self.backups_dir):
            return []
        return [path.stem for path in await list_json_files(self.backups_dir)]
