"""
deskvfs Store Models — the two tables of the embedded record store.

1. files — one row per Entry, keyed by absolute path, indexed by parent path
2. meta  — small named JSON blobs (favorites, recent files, schema version)

There is no children column: a folder's children are the rows whose
``parent`` equals its path.
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Index, Integer, JSON, String, Text

from deskvfs.db.base import Base, TimestampMixin

SCHEMA_VERSION = 2


class EntryRecord(Base, TimestampMixin):
    __tablename__ = "files"

    path = Column(String(1024), primary_key=True)
    name = Column(String(255), nullable=False)
    type = Column(String(10), nullable=False, index=True)
    parent = Column(String(1024), nullable=True)
    content = Column(Text, nullable=True)
    size = Column(Integer, default=0, nullable=False)
    permissions = Column(String(10), default="rw-", nullable=False)
    owner = Column(String(100), default="admin", nullable=False)

    __table_args__ = (
        CheckConstraint("type IN ('folder', 'file')", name="ck_files_type"),
        Index("idx_files_parent", "parent"),
    )

    def __repr__(self) -> str:
        return f"<EntryRecord(path='{self.path}', type='{self.type}')>"


class MetaRecord(Base):
    __tablename__ = "meta"

    key = Column(String(100), primary_key=True)
    value = Column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<MetaRecord(key='{self.key}')>"
