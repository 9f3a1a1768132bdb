"""Unit tests for deskvfs.cli — command parsing and execution against an on-disk store."""

import zipfile

import pytest
import yaml

import deskvfs.cli as cli_mod
from deskvfs.cli import main

DOCS = "/Users/Admin/Documents"


@pytest.fixture
def cfg_path(tmp_path):
    path = tmp_path / "deskvfs.yaml"
    path.write_text(yaml.safe_dump({
        "store": {"url": f"sqlite+aiosqlite:///{tmp_path / 'vfs.db'}"},
        "logging": {"level": "WARNING", "directory": str(tmp_path / "logs"), "journal": True},
    }))
    return str(path)


@pytest.fixture
def run(cfg_path, capsys):
    """Run one CLI command; returns (exit_code, stdout)."""

    def _run(*argv):
        code = main(["--config", cfg_path, *argv])
        return code, capsys.readouterr().out

    _run("init")
    return _run


class TestCLIParsing:
    def test_module_has_expected_commands(self):
        for name in ("init", "ls", "cat", "write", "mkdir", "touch", "rm", "cp", "mv",
                     "rename", "find", "du", "export", "import", "fav", "recent", "status"):
            assert name in cli_mod.COMMANDS

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out.lower()

    def test_rename_flags(self):
        args = cli_mod.build_parser().parse_args(["rename", "/a", "b", "--no-cascade"])
        assert args.no_cascade is True

    def test_invalid_config(self, tmp_path, capsys):
        bad = tmp_path / "bad.yaml"
        bad.write_text("metadata: {recent_limit: 0}\n")
        assert main(["--config", str(bad), "status"]) == 1
        assert "[ERROR]" in capsys.readouterr().out


class TestCommands:
    def test_init_is_idempotent(self, run):
        code, out = run("init")
        assert code == 0
        assert "already initialized" in out

    def test_ls(self, run):
        code, out = run("ls", "/Users/Admin")
        assert code == 0
        assert "Documents/" in out
        assert "Desktop/" in out

    def test_write_and_cat(self, run):
        code, out = run("write", f"{DOCS}/todo.txt", "milk")
        assert code == 0
        assert "(4 bytes)" in out
        run("write", f"{DOCS}/todo.txt", "milk and eggs")
        code, out = run("cat", f"{DOCS}/todo.txt")
        assert code == 0
        assert out == "milk and eggs"

    def test_cat_missing(self, run):
        code, out = run("cat", f"{DOCS}/ghost.txt")
        assert code == 1
        assert out.startswith("[ERROR]")

    def test_cat_folder(self, run):
        code, out = run("cat", DOCS)
        assert code == 1
        assert "is a folder" in out

    def test_mkdir_touch_cp_mv(self, run):
        assert run("mkdir", f"{DOCS}/Work")[0] == 0
        assert run("touch", f"{DOCS}/Work/a.txt")[0] == 0

        code, out = run("cp", f"{DOCS}/Work/a.txt", f"{DOCS}/Work")
        assert code == 0
        assert out.strip().endswith(f"{DOCS}/Work/a (1).txt")

        code, out = run("mv", f"{DOCS}/Work/a.txt", "/mnt")
        assert code == 0
        _, listing = run("ls", "/mnt")
        assert "a.txt" in listing

    def test_mkdir_duplicate(self, run):
        code, out = run("mkdir", DOCS)
        assert code == 1
        assert "[ERROR]" in out

    def test_rename_and_find(self, run):
        run("mkdir", f"{DOCS}/Old")
        run("write", f"{DOCS}/Old/inner.txt", "x")
        assert run("rename", f"{DOCS}/Old", "New")[0] == 0
        _, out = run("find", "inner", "--root", DOCS)
        assert out.strip() == f"{DOCS}/New/inner.txt"

    def test_rm(self, run):
        run("mkdir", f"{DOCS}/Gone")
        assert run("rm", f"{DOCS}/Gone")[0] == 0
        _, out = run("find", "Gone")
        assert out == ""

    def test_du(self, run):
        run("mkdir", "/mnt/sized")
        run("write", "/mnt/sized/a.txt", "x" * 10)
        run("write", "/mnt/sized/b.txt", "y" * 20)
        _, out = run("du", "/mnt/sized")
        assert out.split("\t")[0] == "30"

    def test_export(self, run, tmp_path):
        code, out = run("export", DOCS, "--out", str(tmp_path / "out"))
        assert code == 0
        archive = tmp_path / "out" / "Documents.zip"
        with zipfile.ZipFile(archive) as zf:
            assert "readme.txt" in zf.namelist()

    def test_import(self, run, tmp_path):
        local = tmp_path / "local.txt"
        local.write_text("from disk")
        code, _ = run("import", str(local), "/mnt")
        assert code == 0
        assert run("cat", "/mnt/local.txt")[1] == "from disk"

    def test_import_missing_local(self, run, tmp_path):
        code, out = run("import", str(tmp_path / "absent.txt"), "/mnt")
        assert code == 1
        assert "Local file not found" in out

    def test_favorites(self, run):
        assert run("fav", "add", DOCS)[0] == 0
        assert run("fav", "list")[1].strip() == DOCS
        _, listing = run("ls", "/Users/Admin")
        assert any(line.startswith("*") and "Documents/" in line for line in listing.splitlines())
        run("fav", "remove", DOCS)
        assert run("fav", "list")[1] == ""

    def test_fav_needs_path(self, run):
        code, out = run("fav", "add")
        assert code == 1
        assert "needs a path" in out

    def test_recent(self, run):
        run("cat", f"{DOCS}/readme.txt")
        _, out = run("recent")
        assert f"{DOCS}/readme.txt" in out

    def test_status(self, run):
        code, out = run("status")
        assert code == 0
        assert "healthy" in out
        assert "True" in out

    def test_history(self, run):
        run("mkdir", "/mnt/logged")
        code, out = run("history")
        assert code == 0
        assert "vfs_create_folder" in out
        assert "/mnt/logged" in out

    def test_history_errors(self, run):
        run("rename", "/mnt/ghost", "x")
        _, out = run("history", "--category", "errors")
        assert "vfs_error" in out
