"""
deskvfs Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v

Every engine fixture gets its own in-memory SQLite database, so tests
never share VFS state.
"""

from __future__ import annotations

import pytest
import pytest_asyncio

from deskvfs.engine.config import (
    LoggingConfig,
    MetadataConfig,
    StoreConfig,
    VFSConfig,
)
from deskvfs.engine.logging import FileLogger
from deskvfs.vfs.service import VirtualFileSystem

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def _isolate_config():
    """Reset the global config singleton between tests."""
    import deskvfs.engine.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


@pytest.fixture
def config(tmp_path):
    """In-memory store, journal off."""
    return VFSConfig(
        store=StoreConfig(url=MEMORY_URL),
        logging=LoggingConfig(directory=str(tmp_path / "logs"), journal=False),
    )


@pytest.fixture
def file_config(tmp_path):
    """On-disk store so a second engine can reopen the same data."""
    return VFSConfig(
        store=StoreConfig(url=f"sqlite+aiosqlite:///{tmp_path / 'vfs.db'}"),
        logging=LoggingConfig(directory=str(tmp_path / "logs"), journal=True),
        metadata=MetadataConfig(recent_limit=20),
    )


@pytest_asyncio.fixture
async def bare_vfs(config):
    """Started engine with an empty store (not even a root folder)."""
    vfs = VirtualFileSystem(config)
    await vfs.start()
    yield vfs
    await vfs.close()


@pytest_asyncio.fixture
async def vfs(config):
    """Started, bootstrapped engine."""
    engine = VirtualFileSystem(config)
    await engine.start()
    await engine.initialize_file_system()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def journaled_vfs(config, tmp_path):
    """Bootstrapped engine writing to a journal under tmp_path/journal."""
    journal = FileLogger(str(tmp_path / "journal"))
    engine = VirtualFileSystem(config, journal=journal)
    await engine.start()
    await engine.initialize_file_system()
    yield engine
    await engine.close()


@pytest_asyncio.fixture
async def workspace(vfs):
    """
    A small tree under /Users/Admin/Documents:

        /Users/Admin/Documents/A/notes.txt   ("alpha")
        /Users/Admin/Documents/B/notes.txt   ("bravo")
        /Users/Admin/Documents/B/sub/deep.md ("deep")
    """
    docs = "/Users/Admin/Documents"
    await vfs.create_folder(docs, "A")
    await vfs.create_folder(docs, "B")
    await vfs.create_file(f"{docs}/A", "notes.txt", "alpha")
    await vfs.create_file(f"{docs}/B", "notes.txt", "bravo")
    await vfs.create_folder(f"{docs}/B", "sub")
    await vfs.create_file(f"{docs}/B/sub", "deep.md", "deep")
    return docs
