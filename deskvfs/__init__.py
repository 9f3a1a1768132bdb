"""
deskvfs — Virtual File System for a simulated desktop.

A hierarchical, path-addressed document store on an embedded async record
database. Applications (file manager, editors, viewers) use it as their
only persistence layer.

    from deskvfs import VirtualFileSystem
"""

from deskvfs.vfs import Entry, EntryType, VirtualFileSystem

__version__ = "1.0.0"
__all__ = ["Entry", "EntryType", "VirtualFileSystem", "engine", "db", "vfs"]
