"""
deskvfs Entry Models — Pydantic definitions shared by every caller.

Entry: one file or folder, addressed by its unique absolute path.
RecentFile: summary kept in the recent-files index.
ExportArchive: zip artifact produced by subtree export.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator


def utc_aware(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class EntryType(str, Enum):
    FOLDER = "folder"
    FILE = "file"


class Entry(BaseModel):
    """
    A file or folder record.

    ``size`` for a file is the UTF-8 byte length of ``content`` at the
    last write. For folders it is informational only and never aggregated;
    use VirtualFileSystem.dir_size() for a subtree total.
    """

    path: str = Field(description="Absolute, '/'-delimited, unique")
    name: str = Field(description="Last path segment ('/' for the root)")
    type: EntryType
    parent: Optional[str] = Field(default=None, description="Containing folder; None only for '/'")
    content: Optional[str] = Field(default=None, description="Text payload (files only)")
    size: int = Field(default=0, ge=0)
    created: datetime
    modified: datetime
    permissions: str = "rw-"
    owner: str = "admin"

    @field_validator("created", "modified")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        return utc_aware(v)

    @property
    def is_folder(self) -> bool:
        return self.type == EntryType.FOLDER

    @property
    def is_file(self) -> bool:
        return self.type == EntryType.FILE

    def to_row(self) -> Dict[str, Any]:
        """Column dict for the record store."""
        row = self.model_dump()
        row["type"] = self.type.value
        return row


class RecentFile(BaseModel):
    """Entry summary stored in the recent-files index (content is not kept)."""

    path: str
    name: str
    type: EntryType
    size: int = 0
    opened: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_entry(cls, entry: Entry) -> "RecentFile":
        return cls(path=entry.path, name=entry.name, type=entry.type, size=entry.size)


class ExportArchive(BaseModel):
    """A zip byte stream named after the exported entry."""

    filename: str
    data: bytes

    def write_to(self, directory: str) -> Path:
        """Save the archive into ``directory`` and return the file path."""
        target = Path(directory) / self.filename
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(self.data)
        return target
