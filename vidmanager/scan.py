"""Turn a granted folder into a flat batch of :class:`FileEntry` objects."""
from __future__ import annotations

import os
from pathlib import Path
from typing import List

from .log import log
from .models import FileEntry


def _is_hidden(name: str) -> bool:
    # AppleDouble files ("._movie.mp4") start with a dot as well
    return name.startswith(".")


def scan_folder(root: Path) -> List[FileEntry]:
    """
    Walk ``root`` and return one entry per visible file.

    Relative paths are prefixed with the folder's own name, the way a
    directory picker reports them (``Movies/Action/film.mkv``), so indexes
    built from different mount points still share path identity.
    """
    root = Path(root)
    if not root.is_dir():
        raise NotADirectoryError(str(root))
    entries: List[FileEntry] = []
    for dirpath, dirnames, filenames in os.walk(root, topdown=True):
        dirnames[:] = sorted(d for d in dirnames if not _is_hidden(d))
        for filename in sorted(filenames):
            if _is_hidden(filename):
                continue
            full = Path(dirpath) / filename
            rel = full.relative_to(root).as_posix()
            entries.append(FileEntry.from_path(full, f"{root.name}/{rel}"))
    log("scan", f"scan done root={root} files={len(entries)}")
    return entries
