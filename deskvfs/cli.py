"""
deskvfs CLI — Inspect and manage a virtual file system from the shell.

Commands:
- deskvfs init      — Open the store and seed the default folder tree
- deskvfs ls        — List a folder
- deskvfs cat       — Print a file's content
- deskvfs write     — Replace a file's content (creates the file if missing)
- deskvfs mkdir     — Create a folder
- deskvfs touch     — Create an empty file
- deskvfs rm        — Recursively delete an entry
- deskvfs cp / mv   — Copy / move into a folder
- deskvfs rename    — Rename an entry in place
- deskvfs find      — Case-insensitive name search
- deskvfs du        — Subtree size
- deskvfs export    — Write a subtree to a .zip file
- deskvfs import    — Import a local file as a text file
- deskvfs fav       — Add / remove / list favorites
- deskvfs recent    — Show recently opened files
- deskvfs status    — Store health and counts
- deskvfs history   — Recent journal entries
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Tuple

from deskvfs.engine.config import VFSConfig, load_config
from deskvfs.engine.errors import VFSConfigError, VFSError
from deskvfs.engine.logging import FileLogger, configure_logging
from deskvfs.vfs.paths import basename, normalize_path, parent_of
from deskvfs.vfs.service import VirtualFileSystem

logger = logging.getLogger("deskvfs.cli")

Handler = Callable[[VirtualFileSystem, argparse.Namespace], Awaitable[int]]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deskvfs",
        description="deskvfs — Virtual file system for a simulated desktop",
    )
    parser.add_argument("--config", help="Path to deskvfs.yaml (default: auto-discover)")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("init", help="Seed the default folder tree")

    ls_parser = subparsers.add_parser("ls", help="List a folder")
    ls_parser.add_argument("path", nargs="?", default="/", help="Folder path (default: /)")

    cat_parser = subparsers.add_parser("cat", help="Print a file")
    cat_parser.add_argument("path")

    write_parser = subparsers.add_parser("write", help="Replace a file's content")
    write_parser.add_argument("path")
    write_parser.add_argument("content", nargs="?", help="New content (default: read stdin)")

    mkdir_parser = subparsers.add_parser("mkdir", help="Create a folder")
    mkdir_parser.add_argument("path")

    touch_parser = subparsers.add_parser("touch", help="Create an empty file")
    touch_parser.add_argument("path")

    rm_parser = subparsers.add_parser("rm", help="Delete an entry (recursive)")
    rm_parser.add_argument("path")

    for name, help_text in (("cp", "Copy into a folder"), ("mv", "Move into a folder")):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("source")
        p.add_argument("dest_parent")

    rename_parser = subparsers.add_parser("rename", help="Rename an entry")
    rename_parser.add_argument("path")
    rename_parser.add_argument("new_name")
    rename_parser.add_argument(
        "--no-cascade", action="store_true",
        help="Do not rewrite descendant paths (legacy behavior)",
    )

    find_parser = subparsers.add_parser("find", help="Search names")
    find_parser.add_argument("query")
    find_parser.add_argument("--root", default="/", help="Search root (default: /)")

    du_parser = subparsers.add_parser("du", help="Subtree size in bytes")
    du_parser.add_argument("path", nargs="?", default="/")

    export_parser = subparsers.add_parser("export", help="Export a subtree as .zip")
    export_parser.add_argument("path")
    export_parser.add_argument("--out", default=".", help="Output directory (default: .)")

    import_parser = subparsers.add_parser("import", help="Import a local file")
    import_parser.add_argument("local_file")
    import_parser.add_argument("dest_parent")

    fav_parser = subparsers.add_parser("fav", help="Manage favorites")
    fav_parser.add_argument("action", choices=["add", "remove", "list"])
    fav_parser.add_argument("path", nargs="?")

    subparsers.add_parser("recent", help="Show recently opened files")
    subparsers.add_parser("status", help="Store health and counts")

    history_parser = subparsers.add_parser("history", help="Show journal entries")
    history_parser.add_argument(
        "--category", choices=["operations", "errors", "system"], default="operations",
    )
    history_parser.add_argument("--limit", type=int, default=20)

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except VFSConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1
    configure_logging(config.logging.level)

    if args.command == "history":
        return cmd_history(config, args)

    return asyncio.run(_run(config, COMMANDS[args.command], args))


async def _run(config: VFSConfig, handler: Handler, args: argparse.Namespace) -> int:
    vfs = VirtualFileSystem.from_config(config)
    try:
        await vfs.start()
        return await handler(vfs, args)
    except VFSError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        await vfs.close()


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

def _split(path: str) -> Tuple[str, str]:
    """'/a/b/c/' -> ('/a/b', 'c')"""
    path = normalize_path(path)
    return parent_of(path) or "/", basename(path)


async def cmd_init(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    created = await vfs.initialize_file_system()
    if created:
        for path in created:
            print(f"[OK] created {path}")
    else:
        print("[OK] file system already initialized")
    return 0


async def cmd_ls(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    for entry in await vfs.list(args.path):
        marker = "/" if entry.is_folder else ""
        star = "*" if vfs.is_favorite(entry.path) else " "
        print(f"{star} {entry.permissions:<4} {entry.owner:<8} {entry.size:>8}  {entry.name}{marker}")
    return 0


async def cmd_cat(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.open_file(args.path)
    if entry.is_folder:
        print(f"[ERROR] {entry.path} is a folder")
        return 1
    sys.stdout.write(entry.content or "")
    return 0


async def cmd_write(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    content = args.content if args.content is not None else sys.stdin.read()
    if await vfs.get(args.path) is None:
        entry = await vfs.create_file(*_split(args.path), content)
    else:
        entry = await vfs.update_file(args.path, {"content": content})
    print(f"[OK] {entry.path} ({entry.size} bytes)")
    return 0


async def cmd_mkdir(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.create_folder(*_split(args.path))
    print(f"[OK] {entry.path}")
    return 0


async def cmd_touch(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.create_file(*_split(args.path))
    print(f"[OK] {entry.path}")
    return 0


async def cmd_rm(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    await vfs.delete(args.path)
    print(f"[OK] removed {args.path}")
    return 0


async def cmd_cp(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.copy(args.source, args.dest_parent)
    print(f"[OK] {args.source} -> {entry.path}")
    return 0


async def cmd_mv(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.move(args.source, args.dest_parent)
    print(f"[OK] {args.source} -> {entry.path}")
    return 0


async def cmd_rename(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    entry = await vfs.rename(args.path, args.new_name, cascade=not args.no_cascade)
    print(f"[OK] {args.path} -> {entry.path}")
    return 0


async def cmd_find(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    for entry in await vfs.search(args.query, args.root):
        print(entry.path + ("/" if entry.is_folder else ""))
    return 0


async def cmd_du(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    print(f"{await vfs.dir_size(args.path)}\t{args.path}")
    return 0


async def cmd_export(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    archive = await vfs.export_zip(args.path)
    target = archive.write_to(args.out)
    print(f"[OK] wrote {target} ({len(archive.data)} bytes)")
    return 0


async def cmd_import(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    local = Path(args.local_file)
    if not local.is_file():
        print(f"[ERROR] Local file not found: {local}")
        return 1
    entry = await vfs.upload(args.dest_parent, local.name, local.read_bytes())
    print(f"[OK] {local} -> {entry.path} ({entry.size} bytes)")
    return 0


async def cmd_fav(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    if args.action == "list":
        for path in vfs.favorites:
            print(path)
        return 0
    if not args.path:
        print(f"[ERROR] fav {args.action} needs a path")
        return 1
    if args.action == "add":
        await vfs.add_favorite(args.path)
    else:
        await vfs.remove_favorite(args.path)
    print(f"[OK] {args.action} {args.path}")
    return 0


async def cmd_recent(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    for item in vfs.recent_files:
        print(f"{item.opened.isoformat()}  {item.path}")
    return 0


async def cmd_status(vfs: VirtualFileSystem, args: argparse.Namespace) -> int:
    status = await vfs.status()
    for key, value in status.items():
        print(f"{key:<10} {value}")
    return 0 if status["healthy"] else 1


def cmd_history(config: VFSConfig, args: argparse.Namespace) -> int:
    """Read the journal without opening the store."""
    journal = FileLogger(config.logging.directory)
    for item in journal.query(args.category, limit=args.limit):
        target = f" -> {item['target']}" if "target" in item else ""
        print(f"{item['timestamp']}  {item['event']:<20} {item.get('path', '')}{target}")
    return 0


COMMANDS: Dict[str, Handler] = {
    "init": cmd_init,
    "ls": cmd_ls,
    "cat": cmd_cat,
    "write": cmd_write,
    "mkdir": cmd_mkdir,
    "touch": cmd_touch,
    "rm": cmd_rm,
    "cp": cmd_cp,
    "mv": cmd_mv,
    "rename": cmd_rename,
    "find": cmd_find,
    "du": cmd_du,
    "export": cmd_export,
    "import": cmd_import,
    "fav": cmd_fav,
    "recent": cmd_recent,
    "status": cmd_status,
}


if __name__ == "__main__":
    sys.exit(main())
