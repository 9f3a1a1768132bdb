"""Pure path helpers. Paths are absolute strings; '/' is the root."""

from __future__ import annotations

from typing import Optional, Tuple

from deskvfs.engine.errors import VFSInvalidOperationError

ROOT = "/"


def join_path(parent: str, name: str) -> str:
    return f"/{name}" if parent == ROOT else f"{parent}/{name}"


def parent_of(path: str) -> Optional[str]:
    if path == ROOT:
        return None
    head = path.rsplit("/", 1)[0]
    return head or ROOT


def basename(path: str) -> str:
    return ROOT if path == ROOT else path.rsplit("/", 1)[1]


def normalize_path(path: str) -> str:
    """Strip trailing slashes and collapse repeated ones; path must be absolute."""
    if not path or not path.startswith("/"):
        raise VFSInvalidOperationError(
            f"Path must be absolute, got '{path}'",
            path=path,
            operation="normalize_path",
        )
    parts = [p for p in path.split("/") if p]
    return "/" + "/".join(parts)


def validate_name(name: str, operation: str) -> str:
    if not name or name in (".", "..") or "/" in name:
        raise VFSInvalidOperationError(
            f"Invalid entry name '{name}'",
            path=name,
            operation=operation,
        )
    return name


def is_within(path: str, ancestor: str) -> bool:
    """True if ``path`` equals ``ancestor`` or lies in its subtree."""
    if ancestor == ROOT:
        return True
    return path == ancestor or path.startswith(ancestor + "/")


def rebase(path: str, old_prefix: str, new_prefix: str) -> str:
    """Rewrite ``old_prefix`` at the head of ``path`` into ``new_prefix``."""
    if path == old_prefix:
        return new_prefix
    return new_prefix + path[len(old_prefix):]


def split_extension(name: str) -> Tuple[str, str]:
    """
    ('notes', '.txt') for 'notes.txt'. Dotfiles and names without a dot
    have no extension: ('.bashrc', '').
    """
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return name, ""
    return stem, "." + ext


def numbered_name(name: str, counter: int, keep_extension: bool = True) -> str:
    """'notes.txt', 2 -> 'notes (2).txt'"""
    if not keep_extension:
        return f"{name} ({counter})"
    stem, ext = split_extension(name)
    return f"{stem} ({counter}){ext}"
