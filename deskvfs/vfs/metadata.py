"""
deskvfs Metadata Index — favorites and recently-opened files.

Both structures live in memory on one MetadataIndex (owned by one
VirtualFileSystem) and are re-persisted wholesale to the ``meta`` table on
every change. Memory is mutated first, so a crash before the write loses
that one mutation.
"""

from __future__ import annotations

import logging
from typing import List, Set

from pydantic import ValidationError

from deskvfs.db.session import RecordStore
from deskvfs.vfs.models import Entry, RecentFile
from deskvfs.vfs.paths import is_within, rebase

logger = logging.getLogger("deskvfs.vfs.metadata")

FAVORITES_KEY = "favorites"
RECENT_KEY = "recent"
DEFAULT_RECENT_LIMIT = 20


class MetadataIndex:
    """In-memory favorites set + capped, de-duplicated recent list."""

    def __init__(self, store: RecordStore, recent_limit: int = DEFAULT_RECENT_LIMIT):
        self._store = store
        self._recent_limit = recent_limit
        self._favorites: Set[str] = set()
        self._recent: List[RecentFile] = []

    async def load(self) -> None:
        """Rebuild both indexes from their persisted form (empty if absent)."""
        favorites = await self._store.get_meta(FAVORITES_KEY)
        self._favorites = set(favorites or [])

        recent: List[RecentFile] = []
        for item in await self._store.get_meta(RECENT_KEY) or []:
            try:
                recent.append(RecentFile.model_validate(item))
            except ValidationError:
                logger.warning(f"Dropping malformed recent-file record: {item!r}")
        self._recent = recent[: self._recent_limit]

    @property
    def favorites(self) -> List[str]:
        return sorted(self._favorites)

    @property
    def recent(self) -> List[RecentFile]:
        return list(self._recent)

    def is_favorite(self, path: str) -> bool:
        return path in self._favorites

    async def add_favorite(self, path: str) -> None:
        self._favorites.add(path)
        await self._save_favorites()

    async def remove_favorite(self, path: str) -> None:
        self._favorites.discard(path)
        await self._save_favorites()

    async def push_recent(self, entry: Entry) -> RecentFile:
        """Prepend ``entry``, drop older records for the same path, cap the length."""
        item = RecentFile.from_entry(entry)
        rest = [r for r in self._recent if r.path != entry.path]
        self._recent = [item, *rest][: self._recent_limit]
        await self._save_recent()
        return item

    async def forget(self, path: str) -> None:
        """Drop every favorite / recent record at or below ``path``."""
        favorites = {p for p in self._favorites if not is_within(p, path)}
        recent = [r for r in self._recent if not is_within(r.path, path)]
        if favorites != self._favorites:
            self._favorites = favorites
            await self._save_favorites()
        if len(recent) != len(self._recent):
            self._recent = recent
            await self._save_recent()

    async def relocate(self, old_path: str, new_path: str, include_descendants: bool = True) -> None:
        """Rewrite references to ``old_path`` (and below it) to ``new_path``."""

        def affected(p: str) -> bool:
            return is_within(p, old_path) if include_descendants else p == old_path

        touched_fav = False
        favorites: Set[str] = set()
        for p in self._favorites:
            if affected(p):
                favorites.add(rebase(p, old_path, new_path))
                touched_fav = True
            else:
                favorites.add(p)

        touched_recent = False
        recent: List[RecentFile] = []
        for r in self._recent:
            if affected(r.path):
                new = rebase(r.path, old_path, new_path)
                r = r.model_copy(update={"path": new, "name": new.rsplit("/", 1)[1]})
                touched_recent = True
            recent.append(r)

        if touched_fav:
            self._favorites = favorites
            await self._save_favorites()
        if touched_recent:
            self._recent = recent
            await self._save_recent()

    async def _save_favorites(self) -> None:
        await self._store.put_meta(FAVORITES_KEY, sorted(self._favorites))

    async def _save_recent(self) -> None:
        await self._store.put_meta(
            RECENT_KEY, [r.model_dump(mode="json") for r in self._recent]
        )
