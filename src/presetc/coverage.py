from __future__ import annotations

import logging
from typing import Iterable

from presetc.core import PathPolicy
from presetc.filters import PatternMatcher, expand_braces, matcher_for
from presetc.types import DirectoryScan
from presetc.util import ext_of

logger = logging.getLogger(__name__)


class CoverageAnalyzer:
    """
    Compares the files found by a scan against the selection.

    All collapsing decisions of the rule engine go through `verify`, which runs a candidate
    pattern through the same matcher the expander uses.
    """

    def __init__(self, selection: Iterable[str], policy: PathPolicy | None = None) -> None:
        self.policy = policy or PathPolicy()
        self.selected = frozenset(self.policy.key(p) for p in selection)

    def __repr__(self) -> str:
        return f"CoverageAnalyzer(selected={len(self.selected)})"

    def is_selected(self, path: str) -> bool:
        return self.policy.key(path) in self.selected

    def selected_files(self, scan: DirectoryScan) -> list[str]:
        return [f for f in scan.files if self.is_selected(f)]

    def missing(self, scan: DirectoryScan) -> list[str]:
        return [f for f in scan.files if not self.is_selected(f)]

    def full_coverage(self, scan: DirectoryScan) -> bool:
        return scan.fully_selected

    def near_full(self, scan: DirectoryScan, threshold: int) -> list[str] | None:
        """Return the unselected files if there are 1..threshold of them, else None."""
        missing = self.missing(scan)
        if 0 < len(missing) <= threshold:
            return missing
        return None

    def extension_coverage(self, scan: DirectoryScan, ext: str) -> bool:
        """Whether every file directly inside the scanned directory with this extension is selected."""
        return scan.direct_coverage_by_extension.get(ext, False)

    def recursive_extension_files(self, scan: DirectoryScan, ext: str) -> list[str]:
        return [f for f in scan.files if ext_of(f) == ext]

    def recursive_extension_coverage(self, scan: DirectoryScan, ext: str) -> bool:
        files = self.recursive_extension_files(scan, ext)
        return bool(files) and all(self.is_selected(f) for f in files)

    def verify(
        self,
        pattern: str,
        scan: DirectoryScan,
        expected: Iterable[str],
        *,
        excludes: Iterable[str] = (),
    ) -> bool:
        """
        Accept `pattern` only if, among the scanned files, it implies every expected file
        and nothing unselected. Files matched by `excludes` are subtracted first, as the
        expander does.
        """
        case_sensitive = self.policy.case_sensitive
        implied = matcher_for(pattern, case_sensitive=case_sensitive).match_many(scan.files)
        exclude_patterns = list(excludes)
        if exclude_patterns:
            excluded = PatternMatcher(
                [alt for p in exclude_patterns for alt in expand_braces(p)],
                case_sensitive=case_sensitive,
            )
            implied = [f for f in implied if not excluded.match(f)]
        implied_keys = {self.policy.key(f) for f in implied}
        for path in expected:
            if self.policy.key(path) not in implied_keys:
                logger.debug(f"[coverage.verify] {pattern!r} rejected: does not imply {path!r}")
                return False
        for path in implied:
            if not self.is_selected(path):
                logger.debug(f"[coverage.verify] {pattern!r} rejected: implies unselected {path!r}")
                return False
        return True
