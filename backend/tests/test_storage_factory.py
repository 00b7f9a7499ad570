"""Unit tests for configuration and the storage factory."""
from pathlib import Path

import pytest

from mcp_prompts.config import PostgresConfig, Settings, StorageConfig
from mcp_prompts.services.storage import (
    FileStorageAdapter,
    MemoryStorageAdapter,
    PostgresStorageAdapter,
    create_storage_adapter,
)


class TestStorageFactory:
    """Test cases for create_storage_adapter."""

    def test_memory(self):
        """Test memory type builds a memory adapter."""
        adapter = create_storage_adapter(StorageConfig(type="memory"))
        assert isinstance(adapter, MemoryStorageAdapter)
        assert adapter.is_connected is False

    def test_file(self, tmp_path):
        """Test file type uses the configured directories."""
        adapter = create_storage_adapter(StorageConfig(
            type="file",
            prompts_dir=tmp_path / "p",
            backups_dir=tmp_path / "b",
        ))
        assert isinstance(adapter, FileStorageAdapter)
        assert adapter.prompts_dir == tmp_path / "p"
        assert adapter.backups.backups_dir == tmp_path / "b"

    def test_postgres(self):
        """Test postgres type builds an unconnected postgres adapter."""
        adapter = create_storage_adapter(StorageConfig(
            type="postgres",
            postgres=PostgresConfig(host="db.internal", database="prompts"),
        ))
        assert isinstance(adapter, PostgresStorageAdapter)
        assert adapter.config.host == "db.internal"
        assert adapter.is_connected is False

    def test_unknown_type(self):
        """Test unknown types raise ValueError naming the type."""
        with pytest.raises(ValueError, match="Unknown storage type: redis"):
            create_storage_adapter(StorageConfig(type="redis"))


class TestSettings:
    """Test cases for environment-driven settings."""

    def test_from_environment(self, monkeypatch):
        """Test env vars map onto the storage config."""
        monkeypatch.setenv("STORAGE_TYPE", "postgres")
        monkeypatch.setenv("PROMPTS_DIR", "/srv/prompts")
        monkeypatch.setenv("PG_HOST", "pg.example")
        monkeypatch.setenv("PG_PORT", "6543")
        monkeypatch.setenv("PG_SSL", "true")
        monkeypatch.setenv("DATABASE_URL", "")

        config = Settings(_env_file=None).storage_config()

        assert config.type == "postgres"
        assert config.prompts_dir == Path("/srv/prompts")
        assert config.postgres.host == "pg.example"
        assert config.postgres.port == 6543
        assert config.postgres.ssl is True
        assert config.postgres.connection_string is None

    def test_database_url_carried(self, monkeypatch):
        """Test DATABASE_URL becomes the connection string."""
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@h/db")
        config = Settings(_env_file=None).storage_config()
        assert config.postgres.connection_string == "postgresql://u:p@h/db"
