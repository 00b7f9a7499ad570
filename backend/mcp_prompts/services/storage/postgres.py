"""PostgreSQL storage backend.

One row per prompt in the `prompts` table (see models/prompt.py). Unlike the
memory and file backends, filtering, sorting and pagination are pushed into
SQL: tags use the array containment operator backed by a GIN index.
"""
import asyncio
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

from sqlalchemy import delete, or_, select, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession
from sqlalchemy.sql import Select

from mcp_prompts.config import PostgresConfig
from mcp_prompts.database import create_engine, create_session_factory
from mcp_prompts.errors import (
    ConflictError,
    NotConnectedError,
    PromptNotFoundError,
    StorageError,
    StorageUnavailableError,
)
from mcp_prompts.models import Base, PromptRecord
from mcp_prompts.schemas.prompt import (
    ListPromptsOptions,
    Prompt,
    PromptCreate,
    PromptUpdate,
    TemplateVariable,
)
from mcp_prompts.services.storage.backups import JsonBackupStore
from mcp_prompts.services.storage.base import StorageAdapter, build_prompt
from mcp_prompts.services.storage.query import as_list_options, resolve_sort_field

logger = logging.getLogger(__name__)

DEFAULT_BACKUPS_DIR = "./data/backups"


@contextmanager
def _translate_errors(action: str):
    """Re-raise driver errors as storage errors."""
    try:
        yield
    except IntegrityError as e:
        raise ConflictError(f"{action}: {e.orig}") from e
    except (OperationalError, InterfaceError, OSError, asyncio.TimeoutError) as e:
        raise StorageUnavailableError(f"{action}: database unreachable: {e}") from e
    except SQLAlchemyError as e:
        raise StorageError(f"{action}: {e}") from e


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def build_list_query(options: Union[ListPromptsOptions, dict, None] = None) -> Select:
    """SELECT for list_prompts with every filter, ordering and page applied."""
    options = as_list_options(options)
    query = select(PromptRecord)

    if options.is_template is not None:
        query = query.where(PromptRecord.is_template == options.is_template)
    if options.category is not None:
        query = query.where(PromptRecord.category == options.category)
    if options.tags:
        query = query.where(PromptRecord.tags.contains(options.tags))
    if options.search:
        pattern = f"%{_escape_like(options.search)}%"
        query = query.where(or_(
            PromptRecord.name.ilike(pattern, escape="\\"),
            PromptRecord.description.ilike(pattern, escape="\\"),
            PromptRecord.content.ilike(pattern, escape="\\"),
        ))

    column = getattr(PromptRecord, resolve_sort_field(options.sort))
    ordering = column.desc() if options.order == "desc" else column.asc()
    # Ties keep insertion order
    query = query.order_by(ordering.nulls_last(), PromptRecord.created_at.asc(), PromptRecord.id.asc())

    if options.offset:
        query = query.offset(options.offset)
    if options.limit is not None:
        query = query.limit(options.limit)
    return query


def record_to_prompt(record: PromptRecord) -> Prompt:
    return Prompt.model_validate({
        "id": record.id,
        "name": record.name,
        "description": record.description,
        "content": record.content,
        "is_template": bool(record.is_template),
        "variables": record.variables or [],
        "tags": record.tags or [],
        "category": record.category,
        "created_at": record.created_at,
        "updated_at": record.updated_at,
        "version": record.version or 1,
        "metadata": record.metadata_ or {},
    })


def copy_into_record(prompt: Prompt, record: PromptRecord) -> PromptRecord:
    """Write every entity field onto an ORM row (new or loaded)."""
    dumped = prompt.model_dump(mode="json")
    record.id = prompt.id
    record.name = prompt.name
    record.description = prompt.description
    record.content = prompt.content
    record.is_template = prompt.is_template
    record.variables = [
        v.model_dump(exclude_none=True) if isinstance(v, TemplateVariable) else v
        for v in prompt.variables
    ]
    record.tags = list(prompt.tags)
    record.category = prompt.category
    record.created_at = prompt.created_at
    record.updated_at = prompt.updated_at
    record.version = prompt.version
    record.metadata_ = dumped["metadata"]
    return record


class PostgresStorageAdapter(StorageAdapter):
    """Async SQLAlchemy over asyncpg; one engine (and pool) per adapter."""

    backend_name = "postgres"

    def __init__(self, config: PostgresConfig, backups_dir: Union[str, Path, None] = None):
        super().__init__()
        self.config = config
        self.backups = JsonBackupStore(Path(backups_dir or DEFAULT_BACKUPS_DIR), prefix="pg")
        self._engine: Optional[AsyncEngine] = None
        self._session_factory = None

    async def connect(self) -> None:
        if self._connected:
            return
        engine = create_engine(self.config)
        try:
            # engine.begin() wraps the DDL in one transaction; any failure rolls it all back
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
                await conn.execute(text(
                    "CREATE INDEX IF NOT EXISTS idx_prompts_tags ON prompts USING GIN (tags)"
                ))
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            await engine.dispose()
            raise StorageUnavailableError(f"Failed to connect to PostgreSQL: {e}") from e

        self._engine = engine
        self._session_factory = create_session_factory(engine)
        self._connected = True
        logger.info(f"PostgreSQL storage connected: {self.config.host}:{self.config.port}/{self.config.database}")

    async def disconnect(self) -> None:
        engine = self._engine
        self._connected = False
        self._engine = None
        self._session_factory = None
        if engine is not None:
            await engine.dispose()
            logger.info("PostgreSQL storage disconnected")

    def _session(self) -> AsyncSession:
        factory = self._session_factory
        if not self._connected or factory is None:
            raise NotConnectedError(self.backend_name)
        return factory()

    async def save_prompt(self, data: Union[PromptCreate, Prompt, dict]) -> Prompt:
        prompt = build_prompt(data)
        async with self._session() as session:
            with _translate_errors(f"Saving prompt {prompt.id}"):
                session.add(copy_into_record(prompt, PromptRecord()))
                await session.commit()
        return prompt

    async def get_prompt(self, prompt_id: str) -> Prompt:
        async with self._session() as session:
            with _translate_errors(f"Loading prompt {prompt_id}"):
                record = await session.get(PromptRecord, prompt_id)
            if record is None:
                raise PromptNotFoundError(prompt_id)
            return record_to_prompt(record)

    async def update_prompt(self, prompt_id: str, changes: Union[PromptUpdate, dict]) -> Prompt:
        async with self._lock_for(prompt_id):
            async with self._session() as session:
                with _translate_errors(f"Updating prompt {prompt_id}"):
                    async with session.begin():
                        result = await session.execute(
                            select(PromptRecord)
                            .where(PromptRecord.id == prompt_id)
                            .with_for_update()
                        )
                        record = result.scalar_one_or_none()
                        if record is None:
                            raise PromptNotFoundError(prompt_id)
                        updated = record_to_prompt(record).create_version(changes)
                        copy_into_record(updated, record)
        return updated

    async def delete_prompt(self, prompt_id: str) -> None:
        async with self._session() as session:
            with _translate_errors(f"Deleting prompt {prompt_id}"):
                await session.execute(delete(PromptRecord).where(PromptRecord.id == prompt_id))
                await session.commit()

    async def list_prompts(self, options: Union[ListPromptsOptions, dict, None] = None) -> list[Prompt]:
        async with self._session() as session:
            with _translate_errors("Listing prompts"):
                result = await session.execute(build_list_query(options))
                records = result.scalars().all()
        prompts = []
        for record in records:
            try:
                prompts.append(record_to_prompt(record))
            except ValueError as e:
                logger.warning(f"Skipping unreadable prompt row {record.id}: {e}")
        return prompts

    async def clear_all(self) -> None:
        async with self._session() as session:
            with _translate_errors("Clearing prompts"):
                await session.execute(delete(PromptRecord))
                await session.commit()

    async def backup(self) -> str:
        prompts = await self.get_all_prompts()
        return await self.backups.write(prompts)

    async def restore(self, backup_id: str) -> None:
        """Replace the table contents with a snapshot in a single transaction."""
        prompts = await self.backups.read(backup_id)
        async with self._session() as session:
            with _translate_errors(f"Restoring backup {backup_id}"):
                async with session.begin():
                    await session.execute(delete(PromptRecord))
                    session.add_all([copy_into_record(p, PromptRecord()) for p in prompts])
        logger.info(f"Restored {len(prompts)} prompts from backup {backup_id}")

    async def list_backups(self) -> list[str]:
        self._require_connected()
        return await self.backups.list_ids()
