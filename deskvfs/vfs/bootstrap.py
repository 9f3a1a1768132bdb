"""
deskvfs Bootstrap — seed the default directory skeleton and welcome document.

Safe to run on every start: each entry is probed by path and inserted only
when absent, so user data (including an edited readme) is never touched.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from deskvfs.db.session import RecordStore
from deskvfs.vfs.models import Entry, EntryType
from deskvfs.vfs.paths import ROOT, basename, join_path

logger = logging.getLogger("deskvfs.vfs.bootstrap")

HOME_FOLDERS = ("Desktop", "Documents", "Downloads", "Pictures", "Music", "Videos")

WELCOME_FILE_NAME = "readme.txt"

WELCOME_TEXT = """Welcome!

This folder tree is your virtual disk. Everything the desktop apps save
ends up here, and it survives restarts.

  Documents   notes, drafts and anything the text editor saves
  Desktop     items shown on the desktop
  Downloads   imported files
  System      reserved for the system

File manager tips:
  Copying into a folder that already has an item with the same name keeps
  both: the copy is renamed "name (1).ext", "name (2).ext" and so on.
  Deleting a folder deletes everything inside it.
  Any folder can be exported as a .zip archive.
"""


def default_skeleton(user_name: str, root_owner: str = "root", user_owner: str = "admin") -> List[Tuple[str, Optional[str], str]]:
    """(path, parent, owner) for every default folder, parents first."""
    users = join_path(ROOT, "Users")
    home = join_path(users, user_name)
    skeleton: List[Tuple[str, Optional[str], str]] = [
        (ROOT, None, root_owner),
        (users, ROOT, root_owner),
        (home, users, user_owner),
    ]
    skeleton.extend((join_path(home, name), home, user_owner) for name in HOME_FOLDERS)
    skeleton.append((join_path(ROOT, "System"), ROOT, root_owner))
    skeleton.append((join_path(ROOT, "mnt"), ROOT, root_owner))
    return skeleton


async def initialize_file_system(
    store: RecordStore,
    user_name: str = "Admin",
    owner: str = "admin",
    seed_welcome: bool = True,
) -> List[str]:
    """
    Ensure the skeleton (and optionally the welcome document) exists.

    Returns:
        Paths inserted by this call; empty when everything already existed.
    """
    now = datetime.now(timezone.utc)
    created: List[str] = []

    for path, parent, entry_owner in default_skeleton(user_name, user_owner=owner):
        folder = Entry(
            path=path,
            name=basename(path),
            type=EntryType.FOLDER,
            parent=parent,
            size=0,
            created=now,
            modified=now,
            permissions="rwx",
            owner=entry_owner,
        )
        if await store.add_if_absent(folder.to_row()):
            created.append(path)

    if seed_welcome:
        documents = join_path(join_path(join_path(ROOT, "Users"), user_name), "Documents")
        readme = Entry(
            path=join_path(documents, WELCOME_FILE_NAME),
            name=WELCOME_FILE_NAME,
            type=EntryType.FILE,
            parent=documents,
            content=WELCOME_TEXT,
            size=len(WELCOME_TEXT.encode("utf-8")),
            created=now,
            modified=now,
            permissions="rw-",
            owner=owner,
        )
        if await store.add_if_absent(readme.to_row()):
            created.append(readme.path)

    if created:
        logger.info(f"Bootstrap created {len(created)} entries")
    else:
        logger.debug("Bootstrap: skeleton already present")
    return created
