from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Iterable

from presetc.core import PathPolicy
from presetc.filters import (
    IgnoreRules,
    expand_braces,
    has_magic,
    recursive_dir_of,
    unescape,
    walk_base,
)
from presetc.types import RuleApplication
from presetc.util import depth

logger = logging.getLogger(__name__)

_PLAIN_SEGMENT_FORBIDDEN = set("\\*?[]{},")
_EXTENSION_SUFFIX = re.compile(r"^(.*)\.([A-Za-z0-9]+)$")


def dedupe(patterns: Iterable[str]) -> list[str]:
    """Drop exact duplicates, keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for p in patterns:
        if p not in seen:
            seen.add(p)
            out.append(p)
    return out


class _CoverageIndex:
    """Kept `X/**` directories, answering "would the walk of X/** reach this path"."""

    def __init__(self, ignore: IgnoreRules, policy: PathPolicy) -> None:
        self.ignore = ignore
        self.policy = policy
        self.dirs: list[str] = []

    def is_kept(self, directory: str) -> bool:
        key = self.policy.key(directory)
        return any(self.policy.key(d) == key for d in self.dirs)

    def covers(self, target: str, *, last_is_file: bool) -> bool:
        target_key = self.policy.key(target)
        for kept in self.dirs:
            prefix = self.policy.key(kept) + "/"
            if not target_key.startswith(prefix):
                continue
            rel = target[len(prefix) :]
            if not self.ignore.crosses_ignored(rel, last_is_file=last_is_file):
                return True
        return False

    def covers_pattern(self, pattern: str) -> bool:
        # Every brace alternative has to lie under a kept directory glob.
        for alternative in expand_braces(pattern):
            if has_magic(alternative):
                base = walk_base(alternative)
                if not base or not (self.is_kept(base) or self.covers(base, last_is_file=False)):
                    return False
            elif not self.covers(unescape(alternative), last_is_file=True):
                return False
        return True


def eliminate_redundant(
    includes: list[str],
    *,
    ignore: IgnoreRules,
    policy: PathPolicy | None = None,
) -> list[str]:
    """
    Drop includes already implied by a broader kept `X/**` glob.

    Directory globs are considered shallowest-first. A pattern only counts as covered when
    no path segment between X and it is an ignored name, since the walk of X/** prunes those.
    """
    index = _CoverageIndex(ignore, policy or PathPolicy())

    dir_globs = [(recursive_dir_of(p), p) for p in includes]
    dir_globs = [(d, p) for d, p in dir_globs if d is not None]
    kept_dir_globs: set[str] = set()
    for directory, pattern in sorted(dir_globs, key=lambda dp: (depth(dp[0]), dp[0])):
        if index.covers(directory, last_is_file=False) or index.is_kept(directory):
            logger.debug(f"[emitter.eliminate_redundant] Dropping {pattern!r}: inside a kept directory glob")
            continue
        index.dirs.append(directory)
        kept_dir_globs.add(pattern)

    kept: list[str] = []
    for pattern in includes:
        if recursive_dir_of(pattern) is not None:
            if pattern in kept_dir_globs:
                kept.append(pattern)
            continue
        if index.dirs and index.covers_pattern(pattern):
            logger.debug(f"[emitter.eliminate_redundant] Dropping {pattern!r}: inside a kept directory glob")
            continue
        kept.append(pattern)
    return kept


def merge_directory_braces(includes: list[str]) -> tuple[list[str], list[RuleApplication]]:
    """
    Merge sibling `parent/a/**`, `parent/b/**` into `parent/{a,b}/**`.
    Only brace-free globs with a non-empty parent and plain child names are eligible.
    >>> merge_directory_braces(["src/api/**", "src/auth/**", "lib/**"])[0]
    ['lib/**', 'src/{api,auth}/**']
    """
    groups: dict[str, list[str]] = defaultdict(list)
    for pattern in includes:
        if recursive_dir_of(pattern) is None:
            continue
        parent, _, child = pattern[:-3].rpartition("/")
        if not parent or not child or _PLAIN_SEGMENT_FORBIDDEN & set(child):
            continue
        groups[parent].append(child)

    merged_away: set[str] = set()
    merged: list[str] = []
    applied: list[RuleApplication] = []
    for parent, children in groups.items():
        if len(children) < 2:
            continue
        children = sorted(children)
        brace = f"{parent}/{{{','.join(children)}}}/**"
        merged_away.update(f"{parent}/{c}/**" for c in children)
        merged.append(brace)
        applied.append(
            RuleApplication(
                rule="brace-merge-dirs",
                details=f"{brace} (merged {len(children)} sibling directories)",
                before_count=len(children),
                after_count=1,
            )
        )
    if not merged:
        return includes, []
    return [p for p in includes if p not in merged_away] + merged, applied


def merge_extension_braces(includes: list[str]) -> tuple[list[str], list[RuleApplication]]:
    """
    Merge patterns differing only in a trailing alphanumeric extension into `prefix.{a,b}`.
    >>> merge_extension_braces(["src/*.ts", "src/*.tsx", "Button.ts", "Button.tsx"])[0]
    ['src/*.{ts,tsx}', 'Button.{ts,tsx}']
    """
    groups: dict[str, list[str]] = defaultdict(list)
    for pattern in includes:
        if set("{},\\") & set(pattern):
            continue
        match = _EXTENSION_SUFFIX.match(pattern)
        if match is None or not match.group(1) or match.group(1).endswith("/"):
            continue
        groups[match.group(1)].append(match.group(2))

    merged_away: set[str] = set()
    merged: list[str] = []
    applied: list[RuleApplication] = []
    for prefix, extensions in groups.items():
        extensions = sorted(set(extensions))
        if len(extensions) < 2:
            continue
        brace = f"{prefix}.{{{','.join(extensions)}}}"
        merged_away.update(f"{prefix}.{e}" for e in extensions)
        merged.append(brace)
        applied.append(
            RuleApplication(
                rule="brace-merge-extensions",
                details=f"{brace} (merged {len(extensions)} extensions)",
                before_count=len(extensions),
                after_count=1,
            )
        )
    if not merged:
        return includes, []
    return [p for p in includes if p not in merged_away] + merged, applied


def _group_of(pattern: str) -> int:
    if pattern.startswith("!"):
        return 3
    if pattern.endswith("/**"):
        return 0
    if has_magic(pattern, braces=True) and ("*." in pattern or ".{" in pattern):
        return 1
    return 2


def order_patterns(patterns: Iterable[str]) -> list[str]:
    """Directory globs, extension globs, literal files, excludes; each group sorted."""
    return sorted(patterns, key=lambda p: (_group_of(p), p))


def emit(
    patterns: Iterable[str],
    *,
    brace_merge: bool = False,
    ignore: IgnoreRules,
    policy: PathPolicy | None = None,
) -> tuple[list[str], list[RuleApplication]]:
    """
    Turn a raw rule-engine pattern list (excludes `!`-prefixed) into the final stored order.
    Returns the patterns and the brace merges applied.
    """
    unique = dedupe(patterns)
    includes = [p for p in unique if not p.startswith("!")]
    excludes = [p for p in unique if p.startswith("!")]

    includes = eliminate_redundant(includes, ignore=ignore, policy=policy)

    applied: list[RuleApplication] = []
    if brace_merge:
        includes, dir_merges = merge_directory_braces(includes)
        includes, ext_merges = merge_extension_braces(includes)
        applied = dir_merges + ext_merges

    return order_patterns(includes + excludes), applied
