"""Async SQLAlchemy engine and session factory for the postgres backend.

Usage:
    from mcp_prompts.database import create_engine, create_session_factory

    engine = create_engine(config)
    async_session = create_session_factory(engine)
    async with async_session() as session:
        result = await session.execute(select(PromptRecord))
"""
from typing import Union

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from mcp_prompts.config import PostgresConfig

ASYNC_DRIVER = "postgresql+asyncpg"


def build_database_url(config: PostgresConfig) -> Union[URL, str]:
    """Connection string if given (driver forced to asyncpg), else URL from parts."""
    if config.connection_string:
        url = make_url(config.connection_string)
        if url.drivername in ("postgres", "postgresql", "postgresql+psycopg2"):
            url = url.set(drivername=ASYNC_DRIVER)
        return url
    return URL.create(
        ASYNC_DRIVER,
        username=config.user,
        password=config.password or None,
        host=config.host,
        port=config.port,
        database=config.database,
    )


def create_engine(config: PostgresConfig) -> AsyncEngine:
    connect_args = {"ssl": "require"} if config.ssl else {}
    return create_async_engine(
        build_database_url(config),
        echo=False,
        pool_size=config.pool_size,
        max_overflow=config.max_overflow,
        pool_pre_ping=True,
        connect_args=connect_args,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
