"""Application configuration from environment variables."""
from pathlib import Path
from typing import Optional

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All config comes from env vars or .env file."""

    STORAGE_TYPE: str = "file"  # "file", "memory" or "postgres"
    PROMPTS_DIR: str = "./data/prompts"
    BACKUPS_DIR: str = "./data/backups"

    # PostgreSQL. DATABASE_URL wins over the individual PG_* values when set.
    DATABASE_URL: str = ""
    PG_HOST: str = "localhost"
    PG_PORT: int = 5432
    PG_DATABASE: str = "mcp_prompts"
    PG_USER: str = "postgres"
    PG_PASSWORD: str = ""
    PG_SSL: bool = False
    PG_POOL_SIZE: int = 10
    PG_MAX_OVERFLOW: int = 20

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def storage_config(self) -> "StorageConfig":
        return StorageConfig.from_settings(self)


class PostgresConfig(BaseModel):
    """Connection parameters for the relational backend."""

    host: str = "localhost"
    port: int = 5432
    database: str = "mcp_prompts"
    user: str = "postgres"
    password: str = ""
    ssl: bool = False
    connection_string: Optional[str] = None
    pool_size: int = 10
    max_overflow: int = 20


class StorageConfig(BaseModel):
    """Selects a storage backend and carries the parameters it needs."""

    type: str = "file"  # "file", "memory" or "postgres"
    prompts_dir: Optional[Path] = None
    backups_dir: Optional[Path] = None
    postgres: Optional[PostgresConfig] = None

    @classmethod
    def from_settings(cls, s: Settings) -> "StorageConfig":
        return cls(
            type=s.STORAGE_TYPE,
            prompts_dir=Path(s.PROMPTS_DIR),
            backups_dir=Path(s.BACKUPS_DIR),
            postgres=PostgresConfig(
                host=s.PG_HOST,
                port=s.PG_PORT,
                database=s.PG_DATABASE,
                user=s.PG_USER,
                password=s.PG_PASSWORD,
                ssl=s.PG_SSL,
                connection_string=s.DATABASE_URL or None,
                pool_size=s.PG_POOL_SIZE,
                max_overflow=s.PG_MAX_OVERFLOW,
            ),
        )


settings = Settings()
