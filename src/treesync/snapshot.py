"""Build a tree from a flat local directory."""

from __future__ import annotations

import asyncio
import logging
import os
import stat
from pathlib import Path
from typing import TYPE_CHECKING

from .objects import (
    GIT_FILEMODE_BLOB,
    GIT_FILEMODE_BLOB_EXECUTABLE,
    GIT_FILEMODE_LINK,
    Tree,
    TreeEntry,
)

if TYPE_CHECKING:
    from .gateway import ObjectStoreGateway

logger = logging.getLogger(__name__)


def _mode_from_disk(st: os.stat_result) -> int:
    """Return git filemode based on the file's executable bit."""
    if st.st_mode & 0o111:
        return GIT_FILEMODE_BLOB_EXECUTABLE
    return GIT_FILEMODE_BLOB


def _read_entry(full: Path) -> tuple[bytes, int] | None:
    """Return (content, mode) for one directory entry, or None for a directory.

    Symlinks are stored as links (content is the target), never followed.
    """
    st = full.lstat()
    if stat.S_ISLNK(st.st_mode):
        return os.readlink(full).encode(), GIT_FILEMODE_LINK
    if stat.S_ISDIR(st.st_mode):
        return None
    return full.read_bytes(), _mode_from_disk(st)


async def _entry_for(
    gateway: ObjectStoreGateway, full: Path, log: logging.Logger,
) -> TreeEntry | None:
    read = await asyncio.to_thread(_read_entry, full)
    if read is None:
        log.warning("Directory encountered, will not recurse into: %s", full)
        return None
    content, mode = read
    sha = await gateway.create_blob(content)
    return TreeEntry.blob(full.name, sha, mode)


async def build_dir_tree(
    gateway: ObjectStoreGateway,
    local_path: str | os.PathLike[str],
    *,
    existing: Tree | None = None,
    preserve: bool = False,
    log: logging.Logger | None = None,
) -> Tree:
    """Create the tree that *local_path* should become in the store.

    Only the top level of *local_path* is read; subdirectories are skipped
    with a warning.  With *preserve*, entries of *existing* whose names do
    not occur locally are carried over unchanged (additive sync); a local
    file always wins over a same-named existing entry.  Without it the new
    tree holds exactly the local files.

    Local read errors propagate unchanged.
    """
    log = log or logger
    base = Path(local_path)
    with os.scandir(base) as it:
        names = sorted(e.name for e in it)
    results = await asyncio.gather(*(_entry_for(gateway, base / n, log) for n in names))
    entries = [e for e in results if e is not None]

    if preserve and existing is not None:
        local_names = {e.path for e in entries}
        entries.extend(e for e in existing.entries if e.path not in local_names)

    return await gateway.create_tree(entries)
