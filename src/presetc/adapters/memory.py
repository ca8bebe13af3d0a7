from __future__ import annotations

import posixpath
from pathlib import PurePosixPath
from typing import Iterable, Mapping

from presetc.core import Entry, FileSystem, NodeKind

_MAX_LINK_HOPS = 40


class MemoryFileSystem(FileSystem):
    """
    In-memory filesystem used to exercise scanning and expansion without touching disk.

    Paths are absolute POSIX strings. Supports regular files, directories, symbolic
    links (absolute or relative targets, possibly dangling), special entries such as
    sockets, and directories that refuse to be listed.
    """

    def __init__(self, files: Mapping[str, str] | Iterable[str] | None = None, *, root: str = "/project") -> None:
        self.root = posixpath.normpath(root)
        self._files: dict[str, str] = {}
        self._dirs: set[str] = {"/"}
        self._links: dict[str, str] = {}
        self._specials: set[str] = set()
        self._unreadable: set[str] = set()
        self._add_dir(self.root)
        if files is not None:
            items = files.items() if isinstance(files, Mapping) else ((f, "") for f in files)
            for rel, content in items:
                self.add_file(rel, content)

    def __repr__(self) -> str:
        return f"MemoryFileSystem(root={self.root!r}, files={len(self._files)})"

    # ---[ Fixture construction ]---

    def _abs(self, path: str) -> str:
        if path.startswith("/"):
            return posixpath.normpath(path)
        return posixpath.normpath(posixpath.join(self.root, path))

    def _add_dir(self, abs_path: str) -> None:
        while abs_path not in self._dirs:
            self._dirs.add(abs_path)
            abs_path = posixpath.dirname(abs_path)

    def add_file(self, path: str, content: str = "") -> str:
        abs_path = self._abs(path)
        self._add_dir(posixpath.dirname(abs_path))
        self._files[abs_path] = content
        return abs_path

    def add_dir(self, path: str) -> str:
        abs_path = self._abs(path)
        self._add_dir(abs_path)
        return abs_path

    def add_symlink(self, path: str, target: str) -> str:
        abs_path = self._abs(path)
        self._add_dir(posixpath.dirname(abs_path))
        self._links[abs_path] = target
        return abs_path

    def add_special(self, path: str) -> str:
        abs_path = self._abs(path)
        self._add_dir(posixpath.dirname(abs_path))
        self._specials.add(abs_path)
        return abs_path

    def make_unreadable(self, path: str) -> None:
        abs_path = self._abs(path)
        self._add_dir(abs_path)
        self._unreadable.add(abs_path)

    def read_text(self, path: str) -> str:
        return self._files[self.real_path(self._abs(path))]

    # ---[ FileSystem ]---

    def real_path(self, path: str) -> str:
        pending = list(PurePosixPath(self._abs(path)).parts[1:])
        current = "/"
        hops = 0
        while pending:
            part = pending.pop(0)
            candidate = posixpath.normpath(posixpath.join(current, part))
            target = self._links.get(candidate)
            if target is None:
                current = candidate
                continue
            hops += 1
            if hops > _MAX_LINK_HOPS:
                # Link loop: report the unresolvable path as-is, like a dangling link.
                return posixpath.join(candidate, *pending) if pending else candidate
            resolved = posixpath.normpath(posixpath.join(current, target))
            pending = list(PurePosixPath(resolved).parts[1:]) + pending
            current = "/"
        return current

    def _kind(self, path: str) -> NodeKind | None:
        real = self.real_path(path)
        if real in self._files:
            return NodeKind.FILE
        if real in self._dirs:
            return NodeKind.DIRECTORY
        if real in self._specials:
            return NodeKind.OTHER
        return None

    def list_directory(self, dir_path: str) -> Iterable[Entry]:
        logical = self._abs(dir_path)
        real = self.real_path(logical)
        if real in self._unreadable:
            raise PermissionError(f"Permission denied: {logical!r}")
        if real not in self._dirs:
            if self._kind(logical) is None:
                raise FileNotFoundError(f"No such directory: {logical!r}")
            raise NotADirectoryError(f"Not a directory: {logical!r}")

        names: set[str] = set()
        for pool in (self._files, self._dirs, self._links, self._specials):
            for candidate in pool:
                if candidate != "/" and posixpath.dirname(candidate) == real:
                    names.add(posixpath.basename(candidate))

        entries: list[Entry] = []
        for name in sorted(names):
            physical = posixpath.join(real, name)
            kind = self._kind(physical) or NodeKind.OTHER
            entries.append(
                Entry(
                    path=posixpath.join(logical, name),
                    name=name,
                    kind=kind,
                    is_symlink=physical in self._links,
                )
            )
        return entries

    def exists(self, path: str) -> bool:
        return self._kind(path) is not None

    def is_file(self, path: str) -> bool:
        return self._kind(path) is NodeKind.FILE

    def is_dir(self, path: str) -> bool:
        return self._kind(path) is NodeKind.DIRECTORY
