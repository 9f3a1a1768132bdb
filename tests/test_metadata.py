"""Unit tests for deskvfs.vfs.metadata — favorites and recent files."""

import pytest

from deskvfs.vfs.metadata import RECENT_KEY
from deskvfs.vfs.service import VirtualFileSystem

DOCS = "/Users/Admin/Documents"


class TestFavorites:
    @pytest.mark.asyncio
    async def test_add_and_remove(self, vfs):
        await vfs.add_favorite(f"{DOCS}/readme.txt")
        await vfs.add_favorite("/Users/Admin/Desktop")
        assert vfs.favorites == ["/Users/Admin/Desktop", f"{DOCS}/readme.txt"]
        assert vfs.is_favorite(f"{DOCS}/readme.txt/")

        await vfs.remove_favorite("/Users/Admin/Desktop")
        assert vfs.favorites == [f"{DOCS}/readme.txt"]

    @pytest.mark.asyncio
    async def test_set_semantics(self, vfs):
        await vfs.add_favorite(DOCS)
        await vfs.add_favorite(DOCS)
        assert vfs.favorites == [DOCS]
        await vfs.remove_favorite("/not/a/favorite")
        assert vfs.favorites == [DOCS]

    @pytest.mark.asyncio
    async def test_persist_across_engines(self, file_config):
        async with VirtualFileSystem(file_config) as first:
            await first.initialize_file_system()
            await first.add_favorite(DOCS)
            await first.open_file(f"{DOCS}/readme.txt")

        async with VirtualFileSystem(file_config) as second:
            assert second.favorites == [DOCS]
            assert [r.path for r in second.recent_files] == [f"{DOCS}/readme.txt"]
            assert second.recent_files[0].opened.tzinfo is not None


class TestRecentFiles:
    @pytest.mark.asyncio
    async def test_bounded_and_newest_first(self, vfs):
        for i in range(25):
            await vfs.create_file(DOCS, f"file{i:02d}.txt", str(i))
        recent = vfs.recent_files
        assert len(recent) == 20
        assert recent[0].name == "file24.txt"
        assert recent[-1].name == "file05.txt"

    @pytest.mark.asyncio
    async def test_deduplicated(self, vfs):
        a = await vfs.create_file(DOCS, "a.txt")
        await vfs.create_file(DOCS, "b.txt")
        await vfs.add_to_recent(a)
        assert [r.name for r in vfs.recent_files] == ["a.txt", "b.txt"]

    @pytest.mark.asyncio
    async def test_summary_has_no_content(self, vfs):
        await vfs.create_file(DOCS, "a.txt", "secret")
        item = vfs.recent_files[0]
        assert item.size == 6
        assert not hasattr(item, "content")

    @pytest.mark.asyncio
    async def test_configured_limit(self, config):
        config = config.model_copy(update={"metadata": config.metadata.model_copy(update={"recent_limit": 3})})
        async with VirtualFileSystem(config) as vfs:
            await vfs.initialize_file_system()
            for i in range(5):
                await vfs.create_file(DOCS, f"{i}.txt")
            assert [r.name for r in vfs.recent_files] == ["4.txt", "3.txt", "2.txt"]

    @pytest.mark.asyncio
    async def test_rename_updates_recent(self, vfs):
        await vfs.create_file(DOCS, "old.txt")
        await vfs.rename(f"{DOCS}/old.txt", "new.txt")
        assert vfs.recent_files[0].path == f"{DOCS}/new.txt"
        assert vfs.recent_files[0].name == "new.txt"

    @pytest.mark.asyncio
    async def test_malformed_records_dropped(self, file_config):
        async with VirtualFileSystem(file_config) as first:
            await first.initialize_file_system()
            await first.open_file(f"{DOCS}/readme.txt")
            good = first.recent_files[0].model_dump(mode="json")
            await first._store.put_meta(RECENT_KEY, [{"nonsense": True}, good])

        async with VirtualFileSystem(file_config) as second:
            assert [r.path for r in second.recent_files] == [f"{DOCS}/readme.txt"]
