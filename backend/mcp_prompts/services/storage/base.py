"""Storage adapter contract shared by the memory, file and postgres backends."""
import asyncio
import secrets
from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional, Union

from mcp_prompts.errors import NotConnectedError
from mcp_prompts.schemas.prompt import (
    ListPromptsOptions,
    Prompt,
    PromptCreate,
    PromptUpdate,
    generate_prompt_id,
    utcnow,
)


def new_backup_id(prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    stamp = now.strftime("%Y-%m-%dT%H-%M-%S-") + f"{now.microsecond // 1000:03d}Z"
    return f"{prefix}_backup_{stamp}_{secrets.token_hex(2)}"


def build_prompt(data: Union[PromptCreate, Prompt, dict]) -> Prompt:
    """New entity from create data: id filled in if absent, fresh timestamps, version 1.

    A Prompt (e.g. from the format converter) is accepted; its timestamps and
    version are discarded.
    """
    if isinstance(data, Prompt):
        data = data.model_dump()
    if not isinstance(data, PromptCreate):
        data = PromptCreate.model_validate(data)
    now = utcnow()
    fields = data.model_dump()
    fields["id"] = data.id or generate_prompt_id(data.name)
    fields.update(created_at=now, updated_at=now, version=1)
    return Prompt.model_validate(fields)


class StorageAdapter(ABC):
    """Async CRUD + query + versioning over prompts.

    Every returned Prompt is a fresh copy; callers never hold references into
    adapter state. Operations other than connect() raise NotConnectedError
    outside the connect/disconnect window.
    """

    backend_name = "base"

    def __init__(self):
        self._connected = False
        self._id_locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _require_connected(self) -> None:
        if not self._connected:
            raise NotConnectedError(self.backend_name)

    def _lock_for(self, prompt_id: str) -> asyncio.Lock:
        """Per-id lock serializing mutations of one record within this process.

        Locks are never dropped, not even on delete: a woken waiter does not
        yet hold its lock, so removing it could hand a later caller a second one.
        """
        return self._id_locks[prompt_id]

    async def __aenter__(self) -> "StorageAdapter":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # ── Lifecycle ────────────────────────────────────────────────

    @abstractmethod
    async def connect(self) -> None:
        """Acquire resources. Idempotent."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Release resources. Safe to call when already disconnected."""

    # ── CRUD ─────────────────────────────────────────────────────

    @abstractmethod
    async def save_prompt(self, data: Union[PromptCreate, Prompt, dict]) -> Prompt:
        """Create a record. Create-only: mutation goes through update_prompt."""

    @abstractmethod
    async def get_prompt(self, prompt_id: str) -> Prompt:
        """Return the record or raise PromptNotFoundError."""

    @abstractmethod
    async def update_prompt(self, prompt_id: str, changes: Union[PromptUpdate, dict]) -> Prompt:
        """Shallow-merge changes, bump version by one, refresh updated_at."""

    @abstractmethod
    async def delete_prompt(self, prompt_id: str) -> None:
        """Remove the record. Missing ids are ignored."""

    @abstractmethod
    async def list_prompts(self, options: Union[ListPromptsOptions, dict, None] = None) -> list[Prompt]:
        """Filter (AND), stable sort, then offset/limit."""

    async def get_all_prompts(self) -> list[Prompt]:
        return await self.list_prompts()

    @abstractmethod
    async def clear_all(self) -> None:
        """Remove every record."""

    # ── Backups ──────────────────────────────────────────────────

    async def backup(self) -> str:
        raise NotImplementedError(f"{self.backend_name} storage does not support backups")

    async def restore(self, backup_id: str) -> None:
        raise NotImplementedError(f"{self.backend_name} storage does not support backups")

    async def list_backups(self) -> list[str]:
        raise NotImplementedError(f"{self.backend_name} storage does not support backups")
