"""Filesystem storage backend: one pretty-printed `{id}.json` file per prompt.

There is no secondary index; list_prompts() reads every file on each call and
skips (with a warning) any file that cannot be read or parsed.
"""
import logging
from pathlib import Path
from typing import Optional, Union

import aiofiles.os

from mcp_prompts.errors import (
    InvalidPromptIdError,
    PromptNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from mcp_prompts.schemas.prompt import ListPromptsOptions, Prompt, PromptCreate, PromptUpdate
from mcp_prompts.services.storage.backups import JsonBackupStore
from mcp_prompts.services.storage.base import StorageAdapter, build_prompt
from mcp_prompts.services.storage.fileio import atomic_write_json, list_json_files, read_json
from mcp_prompts.services.storage.query import apply_list_options

logger = logging.getLogger(__name__)


class FileStorageAdapter(StorageAdapter):
    """Handles prompt read/write to a local directory."""

    backend_name = "file"

    def __init__(self, prompts_dir: Union[str, Path], backups_dir: Union[str, Path, None] = None):
        super().__init__()
        self.prompts_dir = Path(prompts_dir)
        self.backups = JsonBackupStore(
            Path(backups_dir) if backups_dir else self.prompts_dir.parent / "backups",
            prefix=self.backend_name,
        )

    async def connect(self) -> None:
        try:
            await aiofiles.os.makedirs(self.prompts_dir, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(
                f"Failed to connect to file storage at {self.prompts_dir}: {e}"
            ) from e
        self._connected = True
        logger.info(f"File storage connected: {self.prompts_dir}")

    async def disconnect(self) -> None:
        self._connected = False
        logger.info("File storage disconnected")

    def _path_for(self, prompt_id: str) -> Optional[Path]:
        """File path for an id, or None if the id cannot name a file in prompts_dir."""
        if not prompt_id or prompt_id in (".", "..") or prompt_id.startswith("."):
            return None
        if "/" in prompt_id or "\\" in prompt_id or "\x00" in prompt_id:
            return None
        return self.prompts_dir / f"{prompt_id}.json"

    async def _write(self, prompt: Prompt) -> None:
        path = self._path_for(prompt.id)
        if path is None:
            raise InvalidPromptIdError(prompt.id)
        try:
            await atomic_write_json(path, prompt.model_dump(mode="json", by_alias=True))
        except OSError as e:
            raise StorageError(f"Failed to write prompt {prompt.id}: {e}") from e

    async def _read(self, prompt_id: str) -> Prompt:
        path = self._path_for(prompt_id)
        if path is None:
            raise PromptNotFoundError(prompt_id)
        try:
            return Prompt.model_validate(await read_json(path))
        except FileNotFoundError as e:
            raise PromptNotFoundError(prompt_id) from e
        except (OSError, ValueError) as e:
            raise StorageError(f"Corrupt prompt file for {prompt_id}: {e}") from e

    async def save_prompt(self, data: Union[PromptCreate, Prompt, dict]) -> Prompt:
        self._require_connected()
        prompt = build_prompt(data)
        async with self._lock_for(prompt.id):
            await self._write(prompt)
        return prompt

    async def get_prompt(self, prompt_id: str) -> Prompt:
        self._require_connected()
        return await self._read(prompt_id)

    async def update_prompt(self, prompt_id: str, changes: Union[PromptUpdate, dict]) -> Prompt:
        self._require_connected()
        async with self._lock_for(prompt_id):
            existing = await self._read(prompt_id)
            updated = existing.create_version(changes)
            await self._write(updated)
            return updated

    async def delete_prompt(self, prompt_id: str) -> None:
        self._require_connected()
        path = self._path_for(prompt_id)
        if path is None:
            return
        async with self._lock_for(prompt_id):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                pass
            except OSError as e:
                raise StorageError(f"Failed to delete prompt {prompt_id}: {e}") from e

    async def _load_all(self) -> list[Prompt]:
        try:
            paths = await list_json_files(self.prompts_dir)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {self.prompts_dir}: {e}") from e

        prompts = []
        for path in paths:
            try:
                prompts.append(Prompt.model_validate(await read_json(path)))
            except FileNotFoundError:
                # Deleted between listdir and read
                continue
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable prompt file {path.name}: {e}")
        return prompts

    async def list_prompts(self, options: Union[ListPromptsOptions, dict, None] = None) -> list[Prompt]:
        self._require_connected()
        return apply_list_options(await self._load_all(), options)

    async def clear_all(self) -> None:
        self._require_connected()
        for path in await list_json_files(self.prompts_dir):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise StorageError(f"Failed to remove {path.name}: {e}") from e

    async def backup(self) -> str:
        self._require_connected()
        return await self.backups.write(await self._load_all())

    async def restore(self, backup_id: str) -> None:
        """Replace the current record set with a snapshot, preserving ids and versions."""
        self._require_connected()
        prompts = await self.backups.read(backup_id)
        await self.clear_all()
        for prompt in prompts:
            await self._write(prompt)
        logger.info(f"Restored {len(prompts)} prompts from backup {backup_id}")

    async def list_backups(self) -> list[str]:
        self._require_connected()
        return await self.backups.list_ids()
