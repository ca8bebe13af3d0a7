from __future__ import annotations

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Iterator

from presetc.adapters.filesystem import LocalFileSystem
from presetc.context import Context
from presetc.core import FileSystem, NodeKind, check_safe_path
from presetc.defaults import MATCH_EVERYTHING
from presetc.filters import IgnoreRules, PatternMatcher, expand_braces, walk_base
from presetc.types import ParsedPatterns
from presetc.util import join

logger = logging.getLogger(__name__)


def _strip_line(raw: str) -> str:
    line = raw.strip()
    # An odd run of trailing backslashes escapes the space after it, which is part of the pattern.
    rest = raw.lstrip()
    backslashes = len(line) - len(line.rstrip("\\"))
    if backslashes % 2 and len(rest) > len(line) and rest[len(line)] == " ":
        line += " "
    return line


def parse_patterns(text: str) -> ParsedPatterns:
    """
    Parse stored pattern text.

    Blank lines and `#` comments are skipped, `!` lines are excludes. When only excludes
    are present, everything is included (`**/*`). Unknown lines are kept as includes.
    """
    includes: list[str] = []
    excludes: list[str] = []
    for raw in text.splitlines():
        line = _strip_line(raw)
        if not line or line.startswith("#"):
            continue
        if line.startswith("!"):
            body = _strip_line(line[1:])
            if body:
                excludes.append(_drop_dot_slash(body))
            continue
        includes.append(_drop_dot_slash(line))
    if excludes and not includes:
        includes.append(MATCH_EVERYTHING)
    return ParsedPatterns(include_patterns=includes, exclude_patterns=excludes)


def _drop_dot_slash(pattern: str) -> str:
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern


def check_pattern_safety(pattern: str) -> None:
    """
    Reject absolute patterns and '..' segments, in the pattern itself and in every brace alternative.

    Raises:
        UnsafePathError
    """
    check_safe_path(pattern, what="pattern")
    for alternative in expand_braces(pattern):
        check_safe_path(alternative, what="pattern")
        # Escapes must not smuggle in a '..' segment either.
        check_safe_path(walk_base(alternative), what="pattern")


def validate(parsed: ParsedPatterns) -> None:
    for pattern in parsed.include_patterns + parsed.exclude_patterns:
        check_pattern_safety(pattern)


def walk_files(fs: FileSystem, project_root: str, base: str, ignore: IgnoreRules) -> Iterator[str]:
    """
    Yield project-relative files below `base`.

    A base that is itself a file yields only itself. Ignored names are pruned below the base,
    symlinked directories are followed unless they lead back into one of their ancestors.
    """
    abs_base = os.path.join(project_root, *base.split("/")) if base else project_root
    if base and fs.is_file(abs_base):
        yield base
        return
    if not fs.is_dir(abs_base):
        return
    yield from _walk_dir(fs, base, abs_base, ignore, frozenset())


def _walk_dir(
    fs: FileSystem, rel_dir: str, abs_dir: str, ignore: IgnoreRules, ancestors: frozenset[str]
) -> Iterator[str]:
    real = fs.real_path(abs_dir)
    if real in ancestors:
        logger.warning(f"[WARNING][patterns.walk_files] Symlink cycle at {rel_dir!r}; not descending")
        return
    ancestors = ancestors | {real}
    try:
        entries = sorted(fs.list_directory(abs_dir), key=lambda e: e.name)
    except OSError as e:
        logger.warning(f"[WARNING][patterns.walk_files] Cannot list {rel_dir or '.'!r}: {e}")
        return
    for entry in entries:
        rel = join(rel_dir, entry.name)
        if entry.kind is NodeKind.DIRECTORY:
            if not ignore.is_ignored_dir(entry.name):
                yield from _walk_dir(fs, rel, entry.path, ignore, ancestors)
        elif entry.kind is NodeKind.FILE:
            if not ignore.is_ignored_file(entry.name):
                yield rel


def expand_parsed(
    parsed: ParsedPatterns,
    project_root,
    *,
    fs: FileSystem | None = None,
    context: Context | None = None,
) -> list[str]:
    """
    Expand parsed patterns into the sorted list of matching project-relative files.

    Raises:
        UnsafePathError: before touching the filesystem.
    """
    validate(parsed)
    if not parsed.include_patterns:
        return []
    context = context or Context()
    fs = fs or LocalFileSystem()
    root = os.fspath(project_root)
    ignore = context.ignore_rules()
    case_sensitive = context.case_sensitive

    by_base: dict[str, list[str]] = defaultdict(list)
    for pattern in parsed.include_patterns:
        for alternative in expand_braces(pattern):
            by_base[walk_base(alternative)].append(alternative)

    found: set[str] = set()
    for base, alternatives in by_base.items():
        matcher = PatternMatcher(alternatives, case_sensitive=case_sensitive)
        found.update(matcher.match_many(walk_files(fs, root, base, ignore)))

    exclude_alternatives = [alt for p in parsed.exclude_patterns for alt in expand_braces(p)]
    if exclude_alternatives:
        excluded = PatternMatcher(exclude_alternatives, case_sensitive=case_sensitive)
        found = {f for f in found if not excluded.match(f)}
    return sorted(found)


def expand_patterns(
    pattern_text: str,
    project_root,
    *,
    fs: FileSystem | None = None,
    context: Context | None = None,
) -> list[str]:
    """Inverse of `compile_selection`: stored pattern text to concrete files."""
    return expand_parsed(parse_patterns(pattern_text), project_root, fs=fs, context=context)


def list_files_by_pattern(
    pattern: str,
    project_root,
    *,
    fs: FileSystem | None = None,
    context: Context | None = None,
) -> list[str]:
    return expand_patterns(pattern, project_root, fs=fs, context=context)


def list_files_by_patterns_file(
    patterns_file,
    project_root,
    *,
    fs: FileSystem | None = None,
    context: Context | None = None,
) -> list[str]:
    text = Path(patterns_file).read_text(encoding="utf-8")
    return expand_patterns(text, project_root, fs=fs, context=context)


