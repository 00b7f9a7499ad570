"""In-memory storage backend. Nothing survives a process restart."""
import logging
from typing import Union

from mcp_prompts.errors import BackupNotFoundError, PromptNotFoundError
from mcp_prompts.schemas.prompt import ListPromptsOptions, Prompt, PromptCreate, PromptUpdate
from mcp_prompts.services.storage.base import StorageAdapter, build_prompt, new_backup_id
from mcp_prompts.services.storage.query import apply_list_options

logger = logging.getLogger(__name__)


class MemoryStorageAdapter(StorageAdapter):
    """Records live in a dict keyed by id; every read returns a copy."""

    backend_name = "memory"

    def __init__(self):
        super().__init__()
        self._prompts: dict[str, Prompt] = {}
        self._backup_ids: list[str] = []

    async def connect(self) -> None:
        self._connected = True
        logger.info("Memory storage connected")

    async def disconnect(self) -> None:
        self._connected = False
        logger.info("Memory storage disconnected")

    async def save_prompt(self, data: Union[PromptCreate, Prompt, dict]) -> Prompt:
        self._require_connected()
        prompt = build_prompt(data)
        self._prompts[prompt.id] = prompt.clone()
        return prompt

    async def get_prompt(self, prompt_id: str) -> Prompt:
        self._require_connected()
        prompt = self._prompts.get(prompt_id)
        if prompt is None:
            raise PromptNotFoundError(prompt_id)
        return prompt.clone()

    async def update_prompt(self, prompt_id: str, changes: Union[PromptUpdate, dict]) -> Prompt:
        self._require_connected()
        async with self._lock_for(prompt_id):
            existing = self._prompts.get(prompt_id)
            if existing is None:
                raise PromptNotFoundError(prompt_id)
            updated = existing.create_version(changes)
            self._prompts[prompt_id] = updated
            return updated.clone()

    async def delete_prompt(self, prompt_id: str) -> None:
        self._require_connected()
        async with self._lock_for(prompt_id):
            self._prompts.pop(prompt_id, None)

    async def list_prompts(self, options: Union[ListPromptsOptions, dict, None] = None) -> list[Prompt]:
        self._require_connected()
        snapshot = list(self._prompts.values())
        return [p.clone() for p in apply_list_options(snapshot, options)]

    async def clear_all(self) -> None:
        self._require_connected()
        self._prompts.clear()

    async def backup(self) -> str:
        """Returns an id only; there is nothing durable to copy."""
        self._require_connected()
        backup_id = new_backup_id(self.backend_name)
        self._backup_ids.append(backup_id)
        logger.info(f"Created memory backup {backup_id}")
        return backup_id

    async def restore(self, backup_id: str) -> None:
        self._require_connected()
        if backup_id not in self._backup_ids:
            raise BackupNotFoundError(backup_id)
        logger.warning(f"Memory backup {backup_id} holds no data; current prompts kept")

    async def list_backups(self) -> list[str]:
        self._require_connected()
        return list(self._backup_ids)
