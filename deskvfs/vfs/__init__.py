"""
deskvfs Virtual File System.

Flat store emulating a tree: one record per path, children found through
the parent index, every recursion done by the engine.
"""

from deskvfs.vfs.models import Entry, EntryType, ExportArchive, RecentFile
from deskvfs.vfs.service import VirtualFileSystem

__all__ = [
    "Entry",
    "EntryType",
    "ExportArchive",
    "RecentFile",
    "VirtualFileSystem",
]
