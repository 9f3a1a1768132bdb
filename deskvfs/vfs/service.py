"""
deskvfs Engine — filesystem semantics over the flat record store.

Handles:
- Listing and point lookup (parent index / primary key)
- Folder and file creation, file updates, uploads
- Recursive delete, copy (collision-resolving) and move
- Rename, cascading to descendants unless cascade=False
- Recursive name search and fresh subtree size computation
- Favorites / recent files, clipboard, zip export

Every composite operation is a sequence of single-record transactions and
is NOT atomic. Composite operations are fail-fast: the first failing
transaction stops the traversal. If something was already mutated the
failure is raised as VFSPartialFailureError listing the applied paths;
nothing is rolled back.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from deskvfs.db.session import RecordStore
from deskvfs.engine.config import VFSConfig
from deskvfs.engine.errors import (
    VFSDuplicatePathError,
    VFSError,
    VFSInvalidOperationError,
    VFSNotFoundError,
    VFSPartialFailureError,
)
from deskvfs.engine.logging import (
    FileLogger,
    LogEntry,
    log_system_event,
    log_vfs_failure,
    log_vfs_operation,
)
from deskvfs.vfs import bootstrap, export
from deskvfs.vfs.metadata import MetadataIndex
from deskvfs.vfs.models import Entry, EntryType, ExportArchive, RecentFile
from deskvfs.vfs.paths import (
    ROOT,
    is_within,
    join_path,
    normalize_path,
    numbered_name,
    rebase,
    validate_name,
)

logger = logging.getLogger("deskvfs.vfs.service")

T = TypeVar("T")

# Fields update_file() may change; "size" and "modified" are accepted but recomputed
MUTABLE_FIELDS = frozenset({"content", "permissions", "owner"})
DERIVED_FIELDS = frozenset({"size", "modified"})

CLIPBOARD_COPY = "copy"
CLIPBOARD_CUT = "cut"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _byte_size(content: Optional[str]) -> int:
    return len(content.encode("utf-8")) if content else 0


def journaled(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
    """Write VFSErrors escaping a public operation to the error journal."""

    @functools.wraps(fn)
    async def wrapper(self: "VirtualFileSystem", *args: Any, **kwargs: Any) -> T:
        try:
            return await fn(self, *args, **kwargs)
        except VFSError as e:
            logger.warning(f"{fn.__name__} failed: {e!r}")
            self._journal_write(log_vfs_failure(e))
            raise

    return wrapper


class VirtualFileSystem:
    """
    The VFS engine. One instance owns one record store, one metadata index
    and one clipboard; separate instances never share state.

    Usage:
        async with VirtualFileSystem(config) as vfs:
            await vfs.initialize_file_system()
            doc = await vfs.create_file("/Users/Admin/Documents", "todo.txt", "milk")
    """

    def __init__(
        self,
        config: Optional[VFSConfig] = None,
        store: Optional[RecordStore] = None,
        journal: Optional[FileLogger] = None,
    ):
        self._config = config or VFSConfig()
        self._store = store or RecordStore(self._config.store.url, echo=self._config.store.echo)
        self._metadata = MetadataIndex(self._store, recent_limit=self._config.metadata.recent_limit)
        self._journal = journal
        self._clipboard: List[str] = []
        self._clipboard_operation: Optional[str] = None

    @classmethod
    def from_config(cls, config: VFSConfig) -> "VirtualFileSystem":
        """Build an engine with the journal enabled as the config says."""
        journal = FileLogger(config.logging.directory) if config.logging.journal else None
        return cls(config=config, journal=journal)

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------

    async def start(self) -> None:
        """Open the record store and load favorites / recents into memory."""
        await self._store.start()
        await self._metadata.load()
        self._journal_write(log_system_event("vfs_started", {"store": self._store.url}))
        logger.info(f"VFS started on {self._store.url}")

    async def close(self) -> None:
        await self._store.close()
        self._journal_write(log_system_event("vfs_stopped", {"store": self._store.url}))

    async def __aenter__(self) -> "VirtualFileSystem":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    @property
    def config(self) -> VFSConfig:
        return self._config

    @property
    def journal(self) -> Optional[FileLogger]:
        return self._journal

    async def initialize_file_system(self) -> List[str]:
        """Seed the default skeleton + welcome document (idempotent)."""
        created = await bootstrap.initialize_file_system(
            self._store,
            user_name=self._config.user.name,
            owner=self._config.user.owner,
            seed_welcome=self._config.bootstrap.seed_welcome,
        )
        self._journal_write(log_system_event("bootstrap", {"created": created}))
        return created

    # -------------------------------------------------------------------
    # Listing and lookup
    # -------------------------------------------------------------------

    async def get(self, path: str) -> Optional[Entry]:
        row = await self._store.get(normalize_path(path))
        return Entry.model_validate(row) if row is not None else None

    async def list(self, parent_path: str) -> List[Entry]:
        """Direct children of ``parent_path``; empty for a missing path."""
        rows = await self._store.children(normalize_path(parent_path))
        return [Entry.model_validate(r) for r in rows]

    # -------------------------------------------------------------------
    # Creation and update
    # -------------------------------------------------------------------

    @journaled
    async def create_folder(self, parent: str, name: str) -> Entry:
        entry = await self._create(parent, name, EntryType.FOLDER, None, "create_folder")
        logger.info(f"Created folder {entry.path}")
        return entry

    @journaled
    async def create_file(self, parent: str, name: str, content: str = "") -> Entry:
        entry = await self._create(parent, name, EntryType.FILE, content, "create_file")
        await self._guarded("create_file", entry.path, [entry.path], self._metadata.push_recent(entry))
        logger.info(f"Created file {entry.path} ({entry.size} bytes)")
        return entry

    async def upload(self, parent: str, name: str, data: Union[bytes, str]) -> Entry:
        """Import an external payload as a text file."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        return await self.create_file(parent, name, data)

    @journaled
    async def update_file(self, path: str, updates: Dict[str, Any]) -> Entry:
        """
        Merge ``updates`` into the entry at ``path`` and persist it.

        Only content, permissions and owner can change. ``size`` is always
        recomputed from the content and ``modified`` is always refreshed,
        whatever the caller passes for them.
        """
        path = normalize_path(path)
        item = await self.get(path)
        if item is None:
            raise VFSNotFoundError(f"No entry at '{path}'", path=path, operation="update_file")

        illegal = set(updates) - MUTABLE_FIELDS - DERIVED_FIELDS
        if illegal:
            raise VFSInvalidOperationError(
                f"Cannot update {sorted(illegal)} of '{path}'",
                path=path,
                operation="update_file",
            )

        changes = {k: v for k, v in updates.items() if k in MUTABLE_FIELDS}
        if "content" in changes:
            if item.is_folder:
                raise VFSInvalidOperationError(
                    f"'{path}' is a folder and has no content",
                    path=path,
                    operation="update_file",
                )
            if not isinstance(changes["content"], str):
                raise VFSInvalidOperationError(
                    "content must be text", path=path, operation="update_file"
                )
            changes["size"] = _byte_size(changes["content"])
        changes["modified"] = _utcnow()

        try:
            updated = Entry.model_validate({**item.model_dump(), **changes})
        except ValidationError as e:
            raise VFSInvalidOperationError(
                f"Invalid update for '{path}': {e.error_count()} error(s)",
                path=path,
                operation="update_file",
                validation_errors=e.errors(),
            ) from e
        await self._store.put(updated.to_row())
        self._record("update_file", path)
        return updated

    async def _create(
        self,
        parent: str,
        name: str,
        entry_type: EntryType,
        content: Optional[str],
        operation: str,
    ) -> Entry:
        parent = normalize_path(parent)
        validate_name(name, operation)
        await self._require_folder(parent, operation)
        await self._reject_orphans(join_path(parent, name), operation)

        now = _utcnow()
        entry = Entry(
            path=join_path(parent, name),
            name=name,
            type=entry_type,
            parent=parent,
            content=content,
            size=_byte_size(content),
            created=now,
            modified=now,
            permissions="rwx" if entry_type == EntryType.FOLDER else "rw-",
            owner=self._config.user.owner,
        )
        try:
            await self._store.add(entry.to_row())
        except VFSDuplicatePathError as e:
            raise VFSDuplicatePathError(
                f"An entry already exists at '{entry.path}'",
                path=entry.path,
                operation=operation,
            ) from e
        self._record(operation, entry.path)
        return entry

    # -------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------

    @journaled
    async def delete(self, path: str) -> None:
        """
        Delete ``path`` and, for folders, everything below it (children
        before parents). Deleting a missing path is a no-op.
        """
        path = normalize_path(path)
        if path == ROOT:
            raise VFSInvalidOperationError("The root folder cannot be deleted", path=path, operation="delete")

        item = await self.get(path)
        if item is None:
            logger.debug(f"delete: nothing at {path}")
            return

        done: List[str] = []
        await self._guarded("delete", path, done, self._delete_tree(item, done))
        await self._metadata.forget(path)
        self._record("delete", path, affected=len(done))
        logger.info(f"Deleted {path} ({len(done)} entries)")

    async def _delete_tree(self, item: Entry, done: List[str]) -> None:
        if item.is_folder:
            for row in await self._store.children(item.path):
                await self._delete_tree(Entry.model_validate(row), done)
        await self._store.delete(item.path)
        done.append(item.path)

    # -------------------------------------------------------------------
    # Rename
    # -------------------------------------------------------------------

    @journaled
    async def rename(self, old_path: str, new_name: str, cascade: bool = True) -> Entry:
        """
        Give the entry at ``old_path`` a new last segment.

        With ``cascade=True`` every descendant of a renamed folder gets its
        path and parent rewritten: new records are inserted first
        (pre-order), then the old ones are removed (post-order).

        ``cascade=False`` keeps the legacy behavior: only the folder's own
        record is moved, its children keep pointing at the old path and are
        no longer listed under the renamed folder.
        """
        old_path = normalize_path(old_path)
        validate_name(new_name, "rename")
        if old_path == ROOT:
            raise VFSInvalidOperationError("The root folder cannot be renamed", path=old_path, operation="rename")

        item = await self.get(old_path)
        if item is None:
            raise VFSNotFoundError(f"No entry at '{old_path}'", path=old_path, operation="rename")

        new_path = join_path(item.parent or ROOT, new_name)
        if new_path == old_path:
            return item
        if await self._store.get(new_path) is not None:
            raise VFSDuplicatePathError(
                f"An entry already exists at '{new_path}'",
                path=new_path,
                operation="rename",
            )
        await self._reject_orphans(new_path, "rename")

        renamed = item.model_copy(update={"path": new_path, "name": new_name, "modified": _utcnow()})
        done: List[str] = []
        if cascade and item.is_folder:
            await self._guarded("rename", old_path, done, self._rename_cascading(item, renamed, done))
        else:
            await self._guarded("rename", old_path, done, self._rename_single(item, renamed, done))

        await self._metadata.relocate(old_path, new_path, include_descendants=cascade)
        self._record("rename", old_path, target=new_path, affected=len(done))
        logger.info(f"Renamed {old_path} -> {new_path}")
        return renamed

    async def _rename_single(self, item: Entry, renamed: Entry, done: List[str]) -> None:
        await self._store.add(renamed.to_row())
        done.append(renamed.path)
        await self._store.delete(item.path)
        done.append(item.path)

    async def _rename_cascading(self, item: Entry, renamed: Entry, done: List[str]) -> None:
        descendants = await self._collect_subtree(item.path)

        await self._store.add(renamed.to_row())
        done.append(renamed.path)
        for d in descendants:
            moved = d.model_copy(update={
                "path": rebase(d.path, item.path, renamed.path),
                "parent": rebase(d.parent or ROOT, item.path, renamed.path),
            })
            await self._store.add(moved.to_row())
            done.append(moved.path)

        for d in reversed(descendants):
            await self._store.delete(d.path)
            done.append(d.path)
        await self._store.delete(item.path)
        done.append(item.path)

    async def _collect_subtree(self, path: str) -> List[Entry]:
        """Every entry strictly below ``path``, parents before children, via an explicit worklist."""
        collected: List[Entry] = []
        stack: List[str] = [path]
        while stack:
            current = stack.pop()
            children = [Entry.model_validate(r) for r in await self._store.children(current)]
            for child in children:
                collected.append(child)
            # Reversed so the first child's subtree is expanded next
            stack.extend(c.path for c in reversed(children) if c.is_folder)
        return collected

    # -------------------------------------------------------------------
    # Copy / Move
    # -------------------------------------------------------------------

    @journaled
    async def copy(self, source_path: str, dest_parent: str) -> Entry:
        """
        Copy ``source_path`` (recursively for folders) into ``dest_parent``.

        A taken name gets a counter before the extension:
        "notes.txt" -> "notes (1).txt" -> "notes (2).txt".
        """
        src, dest_parent = await self._check_transfer(source_path, dest_parent, "copy")
        done: List[str] = []
        copied = await self._guarded("copy", src.path, done, self._copy_tree(src, dest_parent, done))
        self._record("copy", src.path, target=copied.path, affected=len(done))
        logger.info(f"Copied {src.path} -> {copied.path} ({len(done)} entries)")
        return copied

    @journaled
    async def move(self, source_path: str, dest_parent: str) -> Entry:
        """
        Copy then delete the original. Not atomic: an interruption between
        the two halves leaves the entry in both places.
        """
        src, dest_parent = await self._check_transfer(source_path, dest_parent, "move")
        if src.parent == dest_parent:
            return src

        done: List[str] = []

        async def _copy_then_delete() -> Entry:
            copied = await self._copy_tree(src, dest_parent, done)
            await self._delete_tree(src, done)
            return copied

        moved = await self._guarded("move", src.path, done, _copy_then_delete())
        await self._metadata.relocate(src.path, moved.path)
        self._record("move", src.path, target=moved.path, affected=len(done))
        logger.info(f"Moved {src.path} -> {moved.path}")
        return moved

    async def _check_transfer(self, source_path: str, dest_parent: str, operation: str) -> Tuple[Entry, str]:
        source_path = normalize_path(source_path)
        dest_parent = normalize_path(dest_parent)

        src = await self.get(source_path)
        if src is None:
            raise VFSNotFoundError(f"No entry at '{source_path}'", path=source_path, operation=operation)
        await self._require_folder(dest_parent, operation)
        if src.is_folder and is_within(dest_parent, src.path):
            raise VFSInvalidOperationError(
                f"Cannot {operation} '{src.path}' into its own subtree '{dest_parent}'",
                path=src.path,
                operation=operation,
            )
        return src, dest_parent

    async def _copy_tree(self, src: Entry, dest_parent: str, done: List[str]) -> Entry:
        name = await self._free_name(dest_parent, src)
        # Snapshot before inserting, so the copy never sees itself
        children = await self._store.children(src.path) if src.is_folder else []

        now = _utcnow()
        new = src.model_copy(update={
            "path": join_path(dest_parent, name),
            "name": name,
            "parent": dest_parent,
            "created": now,
            "modified": now,
        })
        await self._store.add(new.to_row())
        done.append(new.path)

        for row in children:
            await self._copy_tree(Entry.model_validate(row), new.path, done)
        return new

    async def _free_name(self, dest_parent: str, src: Entry) -> str:
        name = src.name
        counter = 1
        while not await self._is_free(join_path(dest_parent, name)):
            name = numbered_name(src.name, counter, keep_extension=src.is_file)
            counter += 1
        return name

    # -------------------------------------------------------------------
    # Search / size
    # -------------------------------------------------------------------

    async def search(self, query: str, root: str = ROOT) -> List[Entry]:
        """
        Case-insensitive substring match on names below ``root``.
        Results follow traversal order: a folder's children in listing
        order, each folder's subtree right after the folder itself.
        """
        needle = query.lower()
        results: List[Entry] = []

        async def walk(path: str) -> None:
            for row in await self._store.children(path):
                entry = Entry.model_validate(row)
                if needle in entry.name.lower():
                    results.append(entry)
                if entry.is_folder:
                    await walk(entry.path)

        await walk(normalize_path(root))
        return results

    async def dir_size(self, path: str) -> int:
        """Fresh sum of file sizes under ``path``; 0 for a missing path."""
        item = await self.get(path)
        if item is None:
            return 0
        if item.is_file:
            return item.size
        total = 0
        for row in await self._store.children(item.path):
            child = Entry.model_validate(row)
            total += child.size if child.is_file else await self.dir_size(child.path)
        return total

    # -------------------------------------------------------------------
    # Favorites & recents
    # -------------------------------------------------------------------

    @property
    def favorites(self) -> List[str]:
        return self._metadata.favorites

    @property
    def recent_files(self) -> List[RecentFile]:
        return self._metadata.recent

    def is_favorite(self, path: str) -> bool:
        return self._metadata.is_favorite(normalize_path(path))

    async def add_favorite(self, path: str) -> None:
        await self._metadata.add_favorite(normalize_path(path))

    async def remove_favorite(self, path: str) -> None:
        await self._metadata.remove_favorite(normalize_path(path))

    async def add_to_recent(self, entry: Entry) -> RecentFile:
        return await self._metadata.push_recent(entry)

    @journaled
    async def open_file(self, path: str) -> Entry:
        """Fetch an entry for an application and mark it recently opened."""
        item = await self.get(path)
        if item is None:
            raise VFSNotFoundError(f"No entry at '{path}'", path=path, operation="open_file")
        await self._metadata.push_recent(item)
        return item

    # -------------------------------------------------------------------
    # Clipboard
    # -------------------------------------------------------------------

    @property
    def clipboard(self) -> Tuple[Optional[str], List[str]]:
        return self._clipboard_operation, list(self._clipboard)

    def clipboard_copy(self, paths: List[str]) -> None:
        self._clipboard = [normalize_path(p) for p in paths]
        self._clipboard_operation = CLIPBOARD_COPY

    def clipboard_cut(self, paths: List[str]) -> None:
        self._clipboard = [normalize_path(p) for p in paths]
        self._clipboard_operation = CLIPBOARD_CUT

    def clear_clipboard(self) -> None:
        self._clipboard = []
        self._clipboard_operation = None

    async def paste(self, dest_parent: str) -> List[Entry]:
        """Copy or move every clipboard path into ``dest_parent``."""
        pasted: List[Entry] = []
        if self._clipboard_operation != CLIPBOARD_CUT:
            for path in self._clipboard:
                pasted.append(await self.copy(path, dest_parent))
            return pasted

        # A moved path leaves the clipboard as soon as its move completes
        for path in list(self._clipboard):
            pasted.append(await self.move(path, dest_parent))
            self._clipboard.remove(path)
        self.clear_clipboard()
        return pasted

    # -------------------------------------------------------------------
    # Export / status
    # -------------------------------------------------------------------

    @journaled
    async def export_zip(self, path: str) -> ExportArchive:
        return await export.export_zip(self, normalize_path(path))

    async def status(self) -> Dict[str, Any]:
        healthy = await self._store.ping()
        return {
            "store": self._store.url,
            "healthy": healthy,
            "entries": await self._store.count() if healthy else None,
            "favorites": len(self._metadata.favorites),
            "recent": len(self._metadata.recent),
        }

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------

    async def _require_folder(self, path: str, operation: str) -> Entry:
        folder = await self.get(path)
        if folder is None:
            raise VFSNotFoundError(f"Folder '{path}' does not exist", path=path, operation=operation)
        if not folder.is_folder:
            raise VFSInvalidOperationError(f"'{path}' is not a folder", path=path, operation=operation)
        return folder

    async def _is_free(self, path: str) -> bool:
        """No record at ``path`` and no orphaned children still naming it as parent."""
        if await self._store.get(path) is not None:
            return False
        return not await self._store.children(path)

    async def _reject_orphans(self, path: str, operation: str) -> None:
        orphans = await self._store.children(path)
        if orphans:
            raise VFSDuplicatePathError(
                f"'{path}' is still the parent of {len(orphans)} orphaned entries",
                path=path,
                operation=operation,
                orphans=[r["path"] for r in orphans],
            )

    @staticmethod
    async def _guarded(operation: str, path: str, done: List[str], work: Awaitable[T]) -> T:
        try:
            return await work
        except VFSError as e:
            if not done:
                raise
            raise VFSPartialFailureError(
                f"{operation} of '{path}' stopped after {len(done)} change(s): {e.message}",
                path=path,
                operation=operation,
                completed=done,
                failed_path=e.path,
            ) from e

    def _record(self, operation: str, path: str, target: Optional[str] = None, affected: Optional[int] = None) -> None:
        self._journal_write(log_vfs_operation(operation, path, target=target, affected=affected))

    def _journal_write(self, entry: LogEntry) -> None:
        if self._journal is None:
            return
        try:
            self._journal.write(entry)
        except OSError as e:
            logger.warning(f"Journal write failed: {e}")

    def __repr__(self) -> str:
        return f"<VirtualFileSystem store={self._store!r}>"
