from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from re import Pattern
from typing import TYPE_CHECKING, Iterable, Literal

if TYPE_CHECKING:
    from typing import TypeIs

from presetc.adapters.filesystem import LocalFileSystem
from presetc.core import FileSystem
from presetc.filters import escape_literal
from presetc.patterns import check_pattern_safety
from presetc.types import Glob
from presetc.util import to_posix

InputKind = Literal["pattern", "directory", "file"]

_BRACE_LIST: Pattern[str] = re.compile(r"\{.*,.*\}")
_BRACE_RANGE: Pattern[str] = re.compile(r"\{.*\.\..*\}")
_EXTGLOB_OPENERS = ("?(", "*(", "+(", "@(", "!(")
# Unescaped bracket expression; its content decides whether it is a character class.
_BRACKET: Pattern[str] = re.compile(r"(?<!\\)\[([^\]]+)\]")
_POSIX_CLASS: Pattern[str] = re.compile(r":\w+:")


def is_glob_pattern(text) -> TypeIs[Glob]:
    """
    Return True if the input reads as a glob rather than a literal path.

    Bracket expressions only count when they look like a real class (a range, a POSIX class or
    several characters), so a literal name like `file[1].ts` stays a path.
    >>> is_glob_pattern("src/**/*.ts"), is_glob_pattern("file[1].ts"), is_glob_pattern("[a-z].md")
    (True, False, True)
    """
    if isinstance(text, Glob):
        return True
    if not isinstance(text, str):
        return False
    if text.startswith("!"):
        return True
    if "*" in text or "?" in text:
        return True
    if _BRACE_LIST.search(text) or _BRACE_RANGE.search(text):
        return True
    if any(opener in text for opener in _EXTGLOB_OPENERS):
        return True
    for match in _BRACKET.finditer(text):
        content = match.group(1)
        if "-" in content or _POSIX_CLASS.search(content) or len(content) >= 2:
            return True
    return False


def normalize_pattern(pattern: str) -> str:
    """Convert Windows separators to '/'."""
    return to_posix(pattern)


def classify_input(text: str, base_path=None, *, fs: FileSystem | None = None) -> InputKind:
    """
    Classify a command-line style input as a glob pattern, an existing directory, or a file.
    Inputs that do not exist are treated as files.
    """
    normalized = normalize_pattern(text).rstrip("/")
    if is_glob_pattern(normalized):
        return "pattern"
    fs = fs or LocalFileSystem()
    resolved = os.path.join(os.fspath(base_path), *normalized.split("/")) if base_path else normalized
    if fs.is_dir(resolved):
        return "directory"
    return "file"


@dataclass
class SeparatedInputs:
    patterns: list[str] = field(default_factory=list)
    directories: list[str] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    @property
    def mixed(self) -> bool:
        kinds = [bool(self.patterns), bool(self.directories), bool(self.files)]
        return sum(kinds) > 1


def separate_patterns_from_paths(
    inputs: Iterable[str], base_path=None, *, fs: FileSystem | None = None
) -> SeparatedInputs:
    separated = SeparatedInputs()
    for text in inputs:
        normalized = normalize_pattern(text)
        kind = classify_input(normalized, base_path, fs=fs)
        if kind == "pattern":
            separated.patterns.append(normalized)
        elif kind == "directory":
            separated.directories.append(normalized)
        else:
            separated.files.append(normalized)
    return separated


def validate_pattern_safety(patterns: Iterable[str]) -> None:
    """
    Raises:
        UnsafePathError: for absolute patterns or '..' segments, negations stripped first.
    """
    for pattern in patterns:
        check_pattern_safety(pattern.lstrip("!"))


def directory_to_pattern(dir_path: str) -> str:
    """
    >>> directory_to_pattern("src\\\\components/")
    'src/components/**'
    """
    cleaned = normalize_pattern(dir_path).rstrip("/")
    while cleaned.startswith("./"):
        cleaned = cleaned[2:]
    return f"{escape_literal(cleaned)}/**"
