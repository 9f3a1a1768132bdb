"""
deskvfs Export — serialize a subtree into a zip archive.

Read-only: walks the tree through the engine's list()/get() and never
mutates the store. A folder export puts the folder's children at the
archive root; a file export holds just that file.
"""

from __future__ import annotations

import io
import logging
import zipfile
from typing import TYPE_CHECKING

from deskvfs.engine.errors import VFSNotFoundError
from deskvfs.vfs.models import Entry, ExportArchive

if TYPE_CHECKING:
    from deskvfs.vfs.service import VirtualFileSystem

logger = logging.getLogger("deskvfs.vfs.export")


async def export_zip(vfs: "VirtualFileSystem", path: str) -> ExportArchive:
    item = await vfs.get(path)
    if item is None:
        raise VFSNotFoundError(f"Nothing to export at '{path}'", path=path, operation="export")

    buffer = io.BytesIO()
    members = 0
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        if item.is_folder:
            for child in await vfs.list(item.path):
                members += await _add(vfs, zf, child, "")
        else:
            zf.writestr(item.name, item.content or "")
            members = 1

    logger.info(f"Exported {path} ({members} members)")
    return ExportArchive(filename=f"{_archive_stem(item)}.zip", data=buffer.getvalue())


async def _add(vfs: "VirtualFileSystem", zf: zipfile.ZipFile, entry: Entry, prefix: str) -> int:
    arcname = prefix + entry.name
    if entry.is_file:
        zf.writestr(arcname, entry.content or "")
        return 1
    zf.writestr(arcname + "/", "")
    count = 1
    for child in await vfs.list(entry.path):
        count += await _add(vfs, zf, child, arcname + "/")
    return count


def _archive_stem(item: Entry) -> str:
    return "root" if item.name == "/" else item.name
