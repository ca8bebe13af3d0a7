from __future__ import annotations

import functools
from typing import Iterable, Sequence

from pathspec.gitignore import GitIgnoreSpec

# Characters with glob meaning in a stored pattern. '{' and '}' only matter for brace alternation.
_WILDCARDS = "*?["
_BRACES = "{}"
_ESCAPED = "\\*?[]{}"


class IgnoreRules:
    """
    Name-based default ignore list.

    - Directory names are pruned wherever they appear below a scan or walk base.
    - File globs are matched against the file name only (Git wildmatch via pathspec).

    Being purely name-based, the verdict for a path below a base never depends on
    which ancestor the traversal started from.
    """

    def __init__(self, directories: Iterable[str], files: Iterable[str]) -> None:
        self.directories = frozenset(directories)
        self._file_spec = GitIgnoreSpec.from_lines(list(files))

    def __repr__(self) -> str:
        return f"IgnoreRules(directories={sorted(self.directories)!r})"

    def is_ignored_dir(self, name: str) -> bool:
        return name in self.directories

    def is_ignored_file(self, name: str) -> bool:
        return bool(self._file_spec.match_file(name))

    def crosses_ignored(self, rel_path: str, *, last_is_file: bool) -> bool:
        """Return True if a walk starting above rel_path would prune it."""
        if not rel_path:
            return False
        segments = rel_path.split("/")
        dirs = segments[:-1] if last_is_file else segments
        if any(self.is_ignored_dir(s) for s in dirs):
            return True
        return last_is_file and self.is_ignored_file(segments[-1])


# ---[ Escaping ]---


def escape_literal(path: str) -> str:
    """
    Escape a literal path so the matcher treats every character literally.
    >>> escape_literal("src/file[1].ts")
    'src/file\\\\[1\\\\].ts'
    >>> escape_literal("#notes.md")
    '\\\\#notes.md'
    """
    chars = ["\\" + c if c in _ESCAPED else c for c in path]
    if not chars:
        return ""
    # The parser strips unescaped edge whitespace and reads a leading '#' or '!' as syntax.
    if path[0] in "#!" or path[0].isspace():
        chars[0] = "\\" + chars[0]
    if path[-1] == " " and chars[-1] == " ":
        chars[-1] = "\\ "
    return "".join(chars)


def unescape(text: str) -> str:
    out: list[str] = []
    chars = iter(text)
    for c in chars:
        if c == "\\":
            out.append(next(chars, ""))
        else:
            out.append(c)
    return "".join(out)


def has_magic(text: str, *, braces: bool = False) -> bool:
    """Return True if text holds an unescaped wildcard (and, with braces=True, an unescaped brace)."""
    specials = _WILDCARDS + (_BRACES if braces else "")
    escaped = False
    for c in text:
        if escaped:
            escaped = False
        elif c == "\\":
            escaped = True
        elif c in specials:
            return True
    return False


def recursive_dir_of(pattern: str) -> str | None:
    """Return the unescaped directory of a plain 'dir/**' glob, else None."""
    if not pattern.endswith("/**"):
        return None
    head = pattern[:-3]
    if not head or has_magic(head, braces=True):
        return None
    return unescape(head)


# ---[ Brace alternation ]---


def _find_brace_group(pattern: str) -> tuple[int, int] | None:
    depth = 0
    open_at = -1
    has_comma = False
    i = 0
    while i < len(pattern):
        c = pattern[i]
        if c == "\\":
            i += 2
            continue
        if c == "{":
            if depth == 0:
                open_at = i
                has_comma = False
            depth += 1
        elif c == "}" and depth:
            depth -= 1
            if depth == 0 and has_comma:
                return open_at, i
        elif c == "," and depth == 1:
            has_comma = True
        i += 1
    return None


def _split_top_level(body: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    start = 0
    i = 0
    while i < len(body):
        c = body[i]
        if c == "\\":
            i += 2
            continue
        if c == "{":
            depth += 1
        elif c == "}" and depth:
            depth -= 1
        elif c == "," and depth == 0:
            parts.append(body[start:i])
            start = i + 1
        i += 1
    parts.append(body[start:])
    return parts


def expand_braces(pattern: str) -> list[str]:
    """
    Expand `{a,b}` alternations into plain patterns, preserving order and dropping duplicates.
    Groups without a top-level comma and escaped braces are kept literally.
    >>> expand_braces("src/{a,b}/**")
    ['src/a/**', 'src/b/**']
    >>> expand_braces("x.{ts,{js,jsx}}")
    ['x.ts', 'x.js', 'x.jsx']
    """
    group = _find_brace_group(pattern)
    if group is None:
        return [pattern]
    start, end = group
    prefix, body, suffix = pattern[:start], pattern[start + 1 : end], pattern[end + 1 :]
    expanded: list[str] = []
    for alternative in _split_top_level(body):
        for candidate in expand_braces(prefix + alternative + suffix):
            if candidate not in expanded:
                expanded.append(candidate)
    return expanded


# ---[ Matching ]---


def walk_base(pattern: str) -> str:
    """
    Longest leading run of literal segments of a brace-free pattern, unescaped.
    A fully literal pattern is its own base.
    >>> walk_base("src/api/*.ts")
    'src/api'
    >>> walk_base("**/*.md")
    ''
    >>> walk_base("docs/readme.md")
    'docs/readme.md'
    """
    segments = [s for s in pattern.strip("/").split("/") if s]
    literal: list[str] = []
    for segment in segments:
        if has_magic(segment):
            break
        literal.append(unescape(segment))
    return "/".join(literal)


def to_gitwildmatch(pattern: str) -> str:
    """
    Anchor a root-relative glob for Git wildmatch semantics.

    Git matches a slash-free pattern at any depth; stored patterns are always root-relative,
    so slash-free patterns get a leading '/'. Patterns starting with '**' stay floating.
    >>> to_gitwildmatch("lonely.ts")
    '/lonely.ts'
    >>> to_gitwildmatch("src/*.ts")
    'src/*.ts'
    """
    if pattern.startswith(("/", "**")):
        return pattern
    if "/" in pattern.rstrip("/"):
        return pattern
    return "/" + pattern


@functools.lru_cache(maxsize=4096)
def _compile(lines: tuple[str, ...]) -> GitIgnoreSpec:
    return GitIgnoreSpec.from_lines(list(lines))


class PatternMatcher:
    """
    Matches project-relative paths against brace-free stored patterns.

    The pattern list is compiled once into a pathspec GitIgnoreSpec. With a
    case-insensitive policy, patterns and paths are casefolded before matching.
    """

    def __init__(self, patterns: Sequence[str], *, case_sensitive: bool = True) -> None:
        self.patterns = tuple(patterns)
        self.case_sensitive = case_sensitive
        lines = tuple(to_gitwildmatch(self._fold(p)) for p in self.patterns)
        self._spec = _compile(lines)

    def __repr__(self) -> str:
        return f"PatternMatcher({list(self.patterns)!r})"

    def __bool__(self) -> bool:
        return bool(self.patterns)

    def _fold(self, text: str) -> str:
        return text if self.case_sensitive else text.casefold()

    def match(self, path: str) -> bool:
        if not self.patterns:
            return False
        return bool(self._spec.match_file(self._fold(path)))

    def match_many(self, paths: Iterable[str]) -> list[str]:
        return [p for p in paths if self.match(p)]


def matcher_for(pattern: str, *, case_sensitive: bool = True) -> PatternMatcher:
    """Matcher for one stored pattern, braces expanded."""
    return PatternMatcher(expand_braces(pattern), case_sensitive=case_sensitive)
