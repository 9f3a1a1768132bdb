"""Unit tests for deskvfs.vfs.bootstrap — default skeleton seeding."""

import pytest

from deskvfs.engine.config import BootstrapConfig, UserConfig
from deskvfs.vfs.bootstrap import HOME_FOLDERS, WELCOME_TEXT, default_skeleton
from deskvfs.vfs.models import EntryType
from deskvfs.vfs.service import VirtualFileSystem


class TestDefaultSkeleton:
    def test_parents_come_first(self):
        seen = set()
        for path, parent, _owner in default_skeleton("Admin"):
            assert parent is None or parent in seen
            seen.add(path)

    def test_contents(self):
        paths = [p for p, _, _ in default_skeleton("Admin")]
        assert paths[:3] == ["/", "/Users", "/Users/Admin"]
        for name in HOME_FOLDERS:
            assert f"/Users/Admin/{name}" in paths
        assert "/System" in paths
        assert "/mnt" in paths

    def test_owners(self):
        owners = {p: o for p, _, o in default_skeleton("Admin", user_owner="alice")}
        assert owners["/"] == "root"
        assert owners["/System"] == "root"
        assert owners["/Users/Admin"] == "alice"
        assert owners["/Users/Admin/Documents"] == "alice"


class TestInitializeFileSystem:
    @pytest.mark.asyncio
    async def test_seeds_tree(self, bare_vfs):
        created = await bare_vfs.initialize_file_system()
        assert "/" in created
        assert "/Users/Admin/Documents/readme.txt" in created

        root = await bare_vfs.get("/")
        assert root.type == EntryType.FOLDER
        assert root.parent is None
        assert root.name == "/"
        assert [e.name for e in await bare_vfs.list("/")] == ["System", "Users", "mnt"]

    @pytest.mark.asyncio
    async def test_welcome_document(self, bare_vfs):
        await bare_vfs.initialize_file_system()
        readme = await bare_vfs.get("/Users/Admin/Documents/readme.txt")
        assert readme.content == WELCOME_TEXT
        assert readme.size == len(WELCOME_TEXT.encode("utf-8"))
        assert readme.owner == "admin"

    @pytest.mark.asyncio
    async def test_idempotent(self, bare_vfs):
        await bare_vfs.initialize_file_system()
        assert await bare_vfs.initialize_file_system() == []
        assert (await bare_vfs.status())["entries"] == 12

    @pytest.mark.asyncio
    async def test_user_data_survives_reinitialize(self, vfs):
        readme = "/Users/Admin/Documents/readme.txt"
        await vfs.update_file(readme, {"content": "my own notes"})
        await vfs.create_file("/Users/Admin/Desktop", "todo.txt", "milk")
        await vfs.initialize_file_system()
        assert (await vfs.get(readme)).content == "my own notes"
        assert (await vfs.get("/Users/Admin/Desktop/todo.txt")).content == "milk"

    @pytest.mark.asyncio
    async def test_deleted_readme_is_restored(self, vfs):
        readme = "/Users/Admin/Documents/readme.txt"
        await vfs.delete(readme)
        assert await vfs.initialize_file_system() == [readme]

    @pytest.mark.asyncio
    async def test_custom_user_without_welcome(self, config):
        config = config.model_copy(update={
            "user": UserConfig(name="Guest", owner="guest"),
            "bootstrap": BootstrapConfig(seed_welcome=False),
        })
        async with VirtualFileSystem(config) as vfs:
            created = await vfs.initialize_file_system()
            assert "/Users/Guest/Documents" in created
            assert not any(p.endswith("readme.txt") for p in created)
            home = await vfs.get("/Users/Guest")
            assert home.owner == "guest"
