"""
deskvfs Record Store — async SQLAlchemy session management over the two tables.

Every public coroutine is exactly one transaction against one record (or
one parent-index query). The store has no notion of trees: recursion,
containment checks and composite operations live in the VFS engine.

Rows cross the store boundary as plain dicts with the EntryRecord columns.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import select, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from deskvfs.db.base import Base
from deskvfs.db.models import SCHEMA_VERSION, EntryRecord, MetaRecord
from deskvfs.engine.errors import VFSDuplicatePathError, VFSStoreUnavailableError

logger = logging.getLogger("deskvfs.db.session")

ENTRY_COLUMNS = (
    "path", "name", "type", "parent", "content", "size",
    "created", "modified", "permissions", "owner",
)

SCHEMA_VERSION_KEY = "schema_version"


def _record_to_row(record: EntryRecord) -> Dict[str, Any]:
    return {col: getattr(record, col) for col in ENTRY_COLUMNS}


class RecordStore:
    """
    Embedded asynchronous record database backing the VFS.

    Usage:
        store = RecordStore("sqlite+aiosqlite:///vfs.db")
        await store.start()
        row = await store.get("/Users")
        await store.close()
    """

    def __init__(self, url: str, echo: bool = False):
        self._url = url
        self._echo = echo
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker] = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_started(self) -> bool:
        return self._engine is not None

    async def start(self) -> None:
        """
        Open the database and apply the schema.

        ``create_all`` only creates missing tables and indexes, so upgrades
        are additive and never touch existing rows.
        """
        if self._engine is not None:
            return

        kwargs: Dict[str, Any] = {"echo": self._echo}
        url = make_url(self._url)
        if url.get_backend_name() == "sqlite":
            if not url.database or url.database == ":memory:":
                # One shared connection, otherwise each checkout sees a blank database
                kwargs["poolclass"] = StaticPool
                kwargs["connect_args"] = {"check_same_thread": False}
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_async_engine(self._url, **kwargs)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            await engine.dispose()
            raise VFSStoreUnavailableError(
                f"Cannot open record store: {e}",
                operation="start",
                store_url=self._url,
            ) from e

        self._engine = engine
        self._session_factory = async_sessionmaker(engine, expire_on_commit=False)

        previous = await self.get_meta(SCHEMA_VERSION_KEY)
        if previous != SCHEMA_VERSION:
            await self.put_meta(SCHEMA_VERSION_KEY, SCHEMA_VERSION)
            logger.info(f"Record store schema set to v{SCHEMA_VERSION} (was {previous})")

    async def close(self) -> None:
        """Dispose the engine (close the connection pool)."""
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None

    @asynccontextmanager
    async def session_scope(self, operation: str, path: Optional[str] = None) -> AsyncGenerator[AsyncSession, None]:
        """
        One transaction with auto-commit/rollback.

        Driver errors surface as VFSStoreUnavailableError carrying the
        operation and path; IntegrityError is re-raised untouched so callers
        can map it to a more precise error.
        """
        if self._session_factory is None:
            raise VFSStoreUnavailableError(
                "Record store not initialized. Call start() first.",
                operation=operation,
                path=path,
                store_url=self._url,
            )
        session = self._session_factory()
        try:
            yield session
            await session.commit()
        except IntegrityError:
            await session.rollback()
            raise
        except SQLAlchemyError as e:
            await session.rollback()
            raise VFSStoreUnavailableError(
                f"Transaction failed during {operation}: {e}",
                operation=operation,
                path=path,
                store_url=self._url,
            ) from e
        finally:
            await session.close()

    # -------------------------------------------------------------------
    # files table
    # -------------------------------------------------------------------

    async def get(self, path: str) -> Optional[Dict[str, Any]]:
        async with self.session_scope("get", path) as session:
            record = await session.get(EntryRecord, path)
            return _record_to_row(record) if record is not None else None

    async def children(self, parent: str) -> List[Dict[str, Any]]:
        """All rows whose parent equals ``parent``, ordered by path."""
        async with self.session_scope("list", parent) as session:
            result = await session.execute(
                select(EntryRecord)
                .where(EntryRecord.parent == parent)
                .order_by(EntryRecord.path)
            )
            return [_record_to_row(r) for r in result.scalars().all()]

    async def add(self, row: Dict[str, Any]) -> None:
        """Insert-or-fail on the primary key."""
        path = row["path"]
        try:
            async with self.session_scope("add", path) as session:
                session.add(EntryRecord(**row))
        except IntegrityError as e:
            raise VFSDuplicatePathError(
                f"An entry already exists at '{path}'",
                operation="add",
                path=path,
            ) from e

    async def add_if_absent(self, row: Dict[str, Any]) -> bool:
        """Probe for ``row['path']`` and insert only if missing. Returns True if inserted."""
        path = row["path"]
        async with self.session_scope("add_if_absent", path) as session:
            if await session.get(EntryRecord, path) is not None:
                return False
            session.add(EntryRecord(**row))
            return True

    async def put(self, row: Dict[str, Any]) -> None:
        """Insert or overwrite the row at ``row['path']``."""
        async with self.session_scope("put", row["path"]) as session:
            await session.merge(EntryRecord(**row))

    async def delete(self, path: str) -> bool:
        """Remove one row. Returns False if nothing was stored at ``path``."""
        async with self.session_scope("delete", path) as session:
            record = await session.get(EntryRecord, path)
            if record is None:
                return False
            await session.delete(record)
            return True

    # -------------------------------------------------------------------
    # meta table
    # -------------------------------------------------------------------

    async def get_meta(self, key: str) -> Any:
        async with self.session_scope("get_meta", key) as session:
            record = await session.get(MetaRecord, key)
            return record.value if record is not None else None

    async def put_meta(self, key: str, value: Any) -> None:
        async with self.session_scope("put_meta", key) as session:
            await session.merge(MetaRecord(key=key, value=value))

    # -------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------

    async def ping(self) -> bool:
        """Check that the store can run a trivial query."""
        if self._engine is None:
            return False
        try:
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            return False

    async def count(self) -> int:
        async with self.session_scope("count") as session:
            result = await session.execute(text("SELECT COUNT(*) FROM files"))
            return int(result.scalar_one())

    def __repr__(self) -> str:
        state = "started" if self.is_started else "stopped"
        return f"<RecordStore url='{self._url}' {state}>"
