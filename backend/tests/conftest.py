"""Pytest configuration and shared fixtures."""
import pytest
import pytest_asyncio

from mcp_prompts.services.storage import FileStorageAdapter, MemoryStorageAdapter


@pytest.fixture
def code_review_data():
    """Create data for a typical template prompt."""
    return {
        "name": "Code Review",
        "content": "Review {{code}}",
        "isTemplate": True,
        "variables": ["code"],
    }


@pytest_asyncio.fixture
async def memory_storage():
    """Connected in-memory adapter."""
    adapter = MemoryStorageAdapter()
    await adapter.connect()
    yield adapter
    await adapter.disconnect()


@pytest_asyncio.fixture
async def file_storage(tmp_path):
    """Connected file adapter rooted in a temp directory."""
    adapter = FileStorageAdapter(tmp_path / "prompts", tmp_path / "backups")
    await adapter.connect()
    yield adapter
    await adapter.disconnect()


@pytest_asyncio.fixture(params=["memory", "file"])
async def storage(request, tmp_path):
    """Each local backend in turn, connected."""
    if request.param == "memory":
        adapter = MemoryStorageAdapter()
    else:
        adapter = FileStorageAdapter(tmp_path / "prompts", tmp_path / "backups")
    await adapter.connect()
    yield adapter
    await adapter.disconnect()
