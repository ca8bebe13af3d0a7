from __future__ import annotations

import os
from typing import Iterable

from presetc.core import Entry, FileSystem, NodeKind


class LocalFileSystem(FileSystem):
    """
    Adapter for the local filesystem.
    """

    def __repr__(self) -> str:
        return "LocalFileSystem()"

    def list_directory(self, dir_path) -> Iterable[Entry]:
        entries: list[Entry] = []
        with os.scandir(str(dir_path)) as dir_iterator:
            for entry in dir_iterator:
                try:
                    is_symlink = entry.is_symlink()
                    # Follows links, so a symlink reports its target's kind.
                    if entry.is_dir():
                        kind = NodeKind.DIRECTORY
                    elif entry.is_file():
                        kind = NodeKind.FILE
                    else:
                        kind = NodeKind.OTHER
                except OSError:
                    is_symlink, kind = False, NodeKind.OTHER
                entries.append(
                    Entry(
                        path=entry.path,
                        name=entry.name,
                        kind=kind,
                        is_symlink=is_symlink,
                    )
                )
        return entries

    def real_path(self, path) -> str:
        return os.path.realpath(str(path))

    def exists(self, path) -> bool:
        return os.path.exists(str(path))

    def is_file(self, path) -> bool:
        return os.path.isfile(str(path))

    def is_dir(self, path) -> bool:
        return os.path.isdir(str(path))
