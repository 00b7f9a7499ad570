"""Storage adapters and the factory that picks one from configuration."""
import logging
from pathlib import Path
from typing import Optional

from mcp_prompts.config import PostgresConfig, StorageConfig, settings
from mcp_prompts.services.storage.base import StorageAdapter, generate_prompt_id
from mcp_prompts.services.storage.file import FileStorageAdapter
from mcp_prompts.services.storage.memory import MemoryStorageAdapter
from mcp_prompts.services.storage.postgres import PostgresStorageAdapter

logger = logging.getLogger(__name__)


def create_storage_adapter(config: Optional[StorageConfig] = None) -> StorageAdapter:
    """Build the adapter named by `config.type` (defaults to env settings).

    The adapter is returned unconnected; callers await connect() themselves.
    """
    config = config or settings.storage_config()

    if config.type == "file":
        prompts_dir = config.prompts_dir or Path(settings.PROMPTS_DIR)
        logger.info(f"Creating file storage adapter with directory: {prompts_dir}")
        return FileStorageAdapter(prompts_dir, config.backups_dir)

    if config.type == "postgres":
        pg = config.postgres or PostgresConfig()
        logger.info(f"Creating PostgreSQL storage adapter with host: {pg.host}")
        return PostgresStorageAdapter(pg, config.backups_dir)

    if config.type == "memory":
        logger.info("Creating in-memory storage adapter")
        return MemoryStorageAdapter()

    raise ValueError(f"Unknown storage type: {config.type}")


__all__ = [
    "StorageAdapter",
    "FileStorageAdapter",
    "MemoryStorageAdapter",
    "PostgresStorageAdapter",
    "create_storage_adapter",
    "generate_prompt_id",
]
