from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import PureWindowsPath
from typing import Iterable, Protocol, Self

from presetc.util import to_posix


class NodeKind(Enum):
    DIRECTORY = auto()
    FILE = auto()
    OTHER = auto()


@dataclass(frozen=True)
class Entry:
    path: str
    name: str
    # Kind of the link target when is_symlink is True; OTHER for broken links.
    kind: NodeKind
    is_symlink: bool = False


class FileSystem(Protocol):
    """
    Minimal filesystem capability consumed by the scanner and the expander.

    - Responsibilities: list a directory, resolve real paths, answer existence/kind queries.
    - Non-responsibilities: ignore rules, pattern matching, coverage decisions.
    """

    def list_directory(self: Self, dir_path: str) -> Iterable[Entry]: ...
    def real_path(self: Self, path: str) -> str: ...
    def exists(self: Self, path: str) -> bool: ...
    def is_file(self: Self, path: str) -> bool: ...
    def is_dir(self: Self, path: str) -> bool: ...


class UnsafePathError(ValueError):
    """Raised for absolute paths, '..' segments or NUL bytes in a selection or a pattern."""


@dataclass(frozen=True, slots=True)
class PathPolicy:
    """
    Case-sensitivity policy for path comparison.

    Injected by the caller; never inferred from the host platform.
    """

    case_sensitive: bool = True

    def key(self, path: str) -> str:
        return path if self.case_sensitive else path.casefold()


def is_absolute_path(path: str) -> bool:
    if path.startswith("/"):
        return True
    # Drive letters ("C:/x", "C:x") and UNC shares count as absolute on every platform.
    return bool(PureWindowsPath(path).drive)


def has_parent_segment(path: str) -> bool:
    return any(segment == ".." for segment in path.split("/"))


def check_safe_path(path: str, *, what: str = "path") -> None:
    if "\x00" in path:
        raise UnsafePathError(f"Unsafe {what} {path!r}: contains a NUL byte")
    if is_absolute_path(path):
        raise UnsafePathError(
            f"Unsafe {what} {path!r}: must be relative to the project root"
        )
    if has_parent_segment(to_posix(path)):
        raise UnsafePathError(f"Unsafe {what} {path!r}: contains a '..' segment")


def normalize_selection(paths: Iterable[str]) -> list[str]:
    """
    Validate and normalize a selection into sorted, deduplicated POSIX paths.

    Backslashes become '/', a leading './' and trailing '/' are dropped, empty entries are skipped.
    >>> normalize_selection(["b.ts", "./a.ts", "win\\\\c.ts", "a.ts"])
    ['a.ts', 'b.ts', 'win/c.ts']
    """
    seen: set[str] = set()
    for raw in paths:
        check_safe_path(raw, what="selection path")
        path = to_posix(raw)
        while path.startswith("./"):
            path = path[2:]
        path = path.rstrip("/")
        while "//" in path:
            path = path.replace("//", "/")
        if not path or path == ".":
            continue
        seen.add(path)
    return sorted(seen)
