from __future__ import annotations

import logging
import os
from collections import defaultdict
from typing import Container

from presetc.core import FileSystem, NodeKind, PathPolicy
from presetc.filters import IgnoreRules
from presetc.types import DirectoryScan
from presetc.util import ext_of, is_within, join

logger = logging.getLogger(__name__)


class DirectoryScanner:
    """
    Scans directory subtrees of one project for coverage analysis.

    A scan is either a complete `DirectoryScan` or None ("unknown"), never a partial
    listing: symlinks escaping the project, symlinked directories, special entries
    and unreadable directories make the whole subtree (and every ancestor) unknown,
    so callers fall back to literal patterns there. A directory reached through a
    symlinked directory is unknown too. Ignored entries are skipped before any of
    these checks.

    Instances live for a single compilation; results are cached per relative directory.
    """

    def __init__(
        self,
        fs: FileSystem,
        project_root: str,
        *,
        selected: Container[str],
        ignore: IgnoreRules,
        policy: PathPolicy | None = None,
    ) -> None:
        self.fs = fs
        self.project_root = str(project_root)
        self.real_root = fs.real_path(self.project_root)
        self.selected = selected
        self.ignore = ignore
        self.policy = policy or PathPolicy()
        self._cache: dict[str, DirectoryScan | None] = {}

    def __repr__(self) -> str:
        return f"DirectoryScanner(project_root={self.project_root!r})"

    def scan(self, rel_dir: str) -> DirectoryScan | None:
        if rel_dir in ("", "."):
            raise ValueError(
                "The project root is never generalized into a directory glob; use scan_project()"
            )
        return self._scan(rel_dir.strip("/"))

    def scan_project(self) -> DirectoryScan | None:
        return self._scan("")

    def _abs(self, rel: str) -> str:
        return os.path.join(self.project_root, *rel.split("/")) if rel else self.project_root

    def _is_selected(self, rel: str) -> bool:
        return self.policy.key(rel) in self.selected

    def _scan(self, rel_dir: str) -> DirectoryScan | None:
        if rel_dir not in self._cache:
            self._cache[rel_dir] = self._build(rel_dir)
        return self._cache[rel_dir]

    def _resolves_in_place(self, rel_dir: str, abs_dir: str) -> bool:
        """False when rel_dir is reached through a symlinked directory (itself or an ancestor)."""
        sep = _sep_of(self.real_root)
        real = self.fs.real_path(abs_dir)
        if not is_within(real, self.real_root, sep=sep):
            logger.warning(
                f"[WARNING][scanner.scan] {rel_dir!r} resolves outside the project ({real!r}); "
                f"it will not be generalized"
            )
            return False
        expected = self.real_root.rstrip(sep) + sep + sep.join(rel_dir.split("/"))
        if self.policy.key(real) != self.policy.key(expected):
            logger.debug(f"[scanner.scan] {rel_dir!r} lies behind a symlinked directory ({real!r}); it is unknown")
            return False
        return True

    def _build(self, rel_dir: str) -> DirectoryScan | None:
        abs_dir = self._abs(rel_dir)
        try:
            if not self.fs.is_dir(abs_dir):
                return None
            if rel_dir and not self._resolves_in_place(rel_dir, abs_dir):
                return None
            entries = sorted(self.fs.list_directory(abs_dir), key=lambda e: e.name)
        except OSError as e:
            logger.warning(f"[WARNING][scanner.scan] Cannot list {rel_dir or '.'!r}: {e}")
            return None

        files: list[str] = []
        direct: dict[str, list[str]] = defaultdict(list)
        has_subdirectories = False

        for entry in entries:
            rel = join(rel_dir, entry.name)
            # Ignored entries are invisible, whatever they point at.
            if entry.kind is NodeKind.DIRECTORY and self.ignore.is_ignored_dir(entry.name):
                continue
            if entry.kind is NodeKind.FILE and self.ignore.is_ignored_file(entry.name):
                continue
            if entry.is_symlink:
                real = self.fs.real_path(entry.path)
                if not is_within(real, self.real_root, sep=_sep_of(self.real_root)):
                    logger.warning(
                        f"[WARNING][scanner.scan] {rel!r} resolves outside the project ({real!r}); "
                        f"{rel_dir or '.'!r} will not be generalized"
                    )
                    return None
                if entry.kind is NodeKind.DIRECTORY:
                    logger.debug(f"[scanner.scan] {rel!r} is a symlinked directory; {rel_dir or '.'!r} is unknown")
                    return None

            if entry.kind is NodeKind.DIRECTORY:
                child = self._scan(rel)
                if child is None:
                    return None
                has_subdirectories = True
                files.extend(child.files)
            elif entry.kind is NodeKind.FILE:
                files.append(rel)
                direct[ext_of(entry.name)].append(rel)
            else:
                logger.warning(
                    f"[WARNING][scanner.scan] {rel!r} is neither a file nor a directory; "
                    f"{rel_dir or '.'!r} will not be generalized"
                )
                return None

        files.sort()
        return DirectoryScan(
            directory=rel_dir,
            files=tuple(files),
            direct_by_extension={ext: tuple(paths) for ext, paths in direct.items()},
            direct_coverage_by_extension={
                ext: all(self._is_selected(p) for p in paths) for ext, paths in direct.items()
            },
            has_subdirectories=has_subdirectories,
            fully_selected=bool(files) and all(self._is_selected(p) for p in files),
        )


def _sep_of(path: str) -> str:
    return "\\" if "\\" in path and "/" not in path else "/"
