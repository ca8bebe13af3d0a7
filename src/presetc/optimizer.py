from __future__ import annotations

import logging
import os
import re
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from presetc.adapters.filesystem import LocalFileSystem
from presetc.context import Context, coerce_level
from presetc.core import FileSystem, normalize_selection
from presetc.coverage import CoverageAnalyzer
from presetc.defaults import DEFAULT_LEVEL, OptimizationLevel
from presetc.emitter import emit
from presetc.filters import escape_literal
from presetc.scanner import DirectoryScanner
from presetc.tree import SelectionTree
from presetc.types import OptimizationResult, OptimizationStats, RuleApplication, RuleName
from presetc.util import depth, ext_of, parent_of

logger = logging.getLogger(__name__)

# Extensions that can be spliced into `*.ext` without escaping.
_GLOB_SAFE_EXTENSION = re.compile(r"^[A-Za-z0-9_+\-~]+$")


@dataclass(frozen=True)
class RulePlan:
    """An ordered sequence of collapsing rules, evaluated with one level's thresholds."""

    name: str
    threshold_level: OptimizationLevel
    rules: tuple[RuleName, ...]


MINIMAL_PLAN = RulePlan("minimal", "minimal", ("full-directory",))
BALANCED_PLAN = RulePlan(
    "balanced", "balanced", ("full-directory", "near-full-exclusion", "dir-extension")
)
BALANCED_EXTENSION_FIRST_PLAN = RulePlan(
    "balanced/extension-first", "balanced", ("full-directory", "dir-extension", "near-full-exclusion")
)
AGGRESSIVE_GLOBAL_FIRST_PLAN = RulePlan(
    "aggressive/global-first",
    "aggressive",
    ("global-extension", "full-directory", "near-full-exclusion", "dir-extension"),
)
AGGRESSIVE_PLAN = RulePlan(
    "aggressive",
    "aggressive",
    ("full-directory", "near-full-exclusion", "dir-extension", "global-extension"),
)
AGGRESSIVE_EXTENSION_FIRST_PLAN = RulePlan(
    "aggressive/extension-first",
    "aggressive",
    ("full-directory", "dir-extension", "near-full-exclusion", "global-extension"),
)

# Candidate plans per level, most aggressive first. Each level's list contains the lists of
# the levels below it, so a higher level can never produce more patterns than a lower one.
PLANS_BY_LEVEL: dict[OptimizationLevel, tuple[RulePlan, ...]] = {
    "minimal": (MINIMAL_PLAN,),
    "balanced": (BALANCED_PLAN, BALANCED_EXTENSION_FIRST_PLAN, MINIMAL_PLAN),
    "aggressive": (
        AGGRESSIVE_GLOBAL_FIRST_PLAN,
        AGGRESSIVE_PLAN,
        AGGRESSIVE_EXTENSION_FIRST_PLAN,
        BALANCED_PLAN,
        BALANCED_EXTENSION_FIRST_PLAN,
        MINIMAL_PLAN,
    ),
}


@dataclass
class PlanOutcome:
    plan: RulePlan
    patterns: list[str] = field(default_factory=list)
    applied: list[RuleApplication] = field(default_factory=list)


@dataclass
class _RunState:
    covered: set[str] = field(default_factory=set)
    patterns: list[str] = field(default_factory=list)
    applied: list[RuleApplication] = field(default_factory=list)
    recursive_dirs: set[str] = field(default_factory=set)


class RuleEngine:
    """
    Collapses a selection into directory, extension and exclusion patterns.

    Every rule only consumes files not covered by an earlier rule of the same run, and every
    collapse is checked with `CoverageAnalyzer.verify` before it is emitted. Files left over
    become escaped literal patterns.
    """

    def __init__(
        self,
        selection: Sequence[str],
        *,
        scanner: DirectoryScanner,
        coverage: CoverageAnalyzer,
        context: Context,
    ) -> None:
        self.selection = list(selection)
        self.scanner = scanner
        self.coverage = coverage
        self.context = context
        self.policy = context.policy
        self.tree = SelectionTree.from_paths(self.selection)
        # Root excluded: the project root is never collapsed into a single glob.
        self.candidate_dirs = self.tree.directories_deepest_first()

    def __repr__(self) -> str:
        return f"RuleEngine(selection={len(self.selection)}, candidate_dirs={len(self.candidate_dirs)})"

    @property
    def min_files(self) -> int:
        return self.context.min_files_to_generalize

    def _is_covered(self, state: _RunState, path: str) -> bool:
        return self.policy.key(path) in state.covered

    def _cover(self, state: _RunState, paths: Iterable[str]) -> None:
        state.covered.update(self.policy.key(p) for p in paths)

    # ---[ Rules ]---

    def full_directory(self, state: _RunState) -> None:
        for directory in self.candidate_dirs:
            scan = self.scanner.scan(directory)
            if scan is None or len(scan.files) < self.min_files:
                continue
            if not self.coverage.full_coverage(scan):
                continue
            uncovered = [f for f in scan.files if not self._is_covered(state, f)]
            if not uncovered:
                continue
            pattern = f"{escape_literal(directory)}/**"
            if not self.coverage.verify(pattern, scan, scan.files):
                continue
            state.patterns.append(pattern)
            state.recursive_dirs.add(directory)
            self._cover(state, scan.files)
            state.applied.append(
                RuleApplication(
                    rule="full-directory",
                    details=directory,
                    before_count=len(uncovered),
                    after_count=1,
                )
            )

    def near_full_exclusion(self, state: _RunState, threshold: int) -> None:
        if threshold <= 0:
            return
        for directory in self.candidate_dirs:
            if directory in state.recursive_dirs:
                continue
            scan = self.scanner.scan(directory)
            if scan is None:
                continue
            selected = self.coverage.selected_files(scan)
            if len(selected) < self.min_files:
                continue
            uncovered = [f for f in selected if not self._is_covered(state, f)]
            if not uncovered:
                continue
            missing = self.coverage.near_full(scan, threshold)
            if missing is None or 1 + len(missing) > len(uncovered):
                continue
            pattern = f"{escape_literal(directory)}/**"
            excludes = [escape_literal(m) for m in missing]
            if not self.coverage.verify(pattern, scan, selected, excludes=excludes):
                continue
            state.patterns.append(pattern)
            state.patterns.extend(f"!{e}" for e in excludes)
            state.recursive_dirs.add(directory)
            self._cover(state, selected)
            state.applied.append(
                RuleApplication(
                    rule="near-full-exclusion",
                    details=f"{directory} (exclude {len(missing)})",
                    before_count=len(uncovered),
                    after_count=1 + len(missing),
                )
            )

    def dir_extension(self, state: _RunState) -> None:
        direct_uncovered: dict[str, set[str]] = defaultdict(set)
        for path in self.selection:
            directory = parent_of(path)
            ext = ext_of(path)
            if directory and ext and not self._is_covered(state, path):
                direct_uncovered[directory].add(ext)

        for directory in sorted(direct_uncovered, key=lambda d: (-depth(d), d)):
            scan = self.scanner.scan(directory)
            if scan is None:
                continue
            for ext in sorted(direct_uncovered[directory]):
                if not _GLOB_SAFE_EXTENSION.match(ext):
                    continue
                if not self.coverage.extension_coverage(scan, ext):
                    continue
                escaped = escape_literal(directory)
                if (
                    self.context.recursive_extension_globs
                    and scan.has_subdirectories
                    and self.coverage.recursive_extension_coverage(scan, ext)
                ):
                    pattern = f"{escaped}/**/*.{ext}"
                    expected = self.coverage.recursive_extension_files(scan, ext)
                else:
                    pattern = f"{escaped}/*.{ext}"
                    expected = list(scan.direct_by_extension.get(ext, ()))
                newly_covered = [f for f in expected if not self._is_covered(state, f)]
                if len(expected) < self.min_files or not newly_covered:
                    continue
                if not self.coverage.verify(pattern, scan, expected):
                    continue
                state.patterns.append(pattern)
                self._cover(state, expected)
                state.applied.append(
                    RuleApplication(
                        rule="dir-extension",
                        details=f"{directory} *.{ext}",
                        before_count=len(newly_covered),
                        after_count=1,
                    )
                )

    def global_extension(self, state: _RunState) -> None:
        project = self.scanner.scan_project()
        if project is None:
            logger.debug("[optimizer.global_extension] Project scan is unknown; skipping")
            return
        by_extension: dict[str, list[str]] = defaultdict(list)
        for path in project.files:
            ext = ext_of(path)
            if ext and _GLOB_SAFE_EXTENSION.match(ext):
                by_extension[ext].append(path)

        for ext in sorted(by_extension):
            files = by_extension[ext]
            if len(files) < self.min_files:
                continue
            if not all(self.coverage.is_selected(f) for f in files):
                continue
            # Only when no narrower rule has claimed any of them; run first to supersede those.
            if any(self._is_covered(state, f) for f in files):
                continue
            pattern = f"**/*.{ext}"
            if not self.coverage.verify(pattern, project, files):
                continue
            state.patterns.append(pattern)
            self._cover(state, files)
            state.applied.append(
                RuleApplication(
                    rule="global-extension",
                    details=pattern,
                    before_count=len(files),
                    after_count=1,
                )
            )

    def literal_fallback(self, state: _RunState) -> None:
        for path in self.selection:
            if not self._is_covered(state, path):
                state.patterns.append(escape_literal(path))

    # ---[ Plans ]---

    def run(self, plan: RulePlan) -> PlanOutcome:
        state = _RunState()
        threshold = self.context.near_full_threshold(plan.threshold_level)
        for rule in plan.rules:
            if rule == "full-directory":
                self.full_directory(state)
            elif rule == "near-full-exclusion":
                self.near_full_exclusion(state, threshold)
            elif rule == "dir-extension":
                self.dir_extension(state)
            elif rule == "global-extension":
                self.global_extension(state)
            else:
                raise ValueError(f"Unknown rule {rule!r} in plan {plan.name!r}")
        self.literal_fallback(state)
        return PlanOutcome(plan=plan, patterns=state.patterns, applied=state.applied)

    def optimize(self, level: OptimizationLevel) -> OptimizationResult:
        ignore = self.context.ignore_rules()
        candidates: list[tuple[list[str], list[RuleApplication], str]] = []
        for plan in PLANS_BY_LEVEL[level]:
            outcome = self.run(plan)
            patterns, merges = emit(
                outcome.patterns,
                brace_merge=level == "aggressive",
                ignore=ignore,
                policy=self.policy,
            )
            logger.debug(f"[optimizer.optimize] Plan {plan.name!r} yields {len(patterns)} patterns")
            candidates.append((patterns, outcome.applied + merges, plan.name))

        # min() keeps the first of equally short candidates: on a tie the earlier, more aggressive plan wins.
        patterns, applied, plan_name = min(candidates, key=lambda candidate: len(candidate[0]))
        logger.debug(f"[optimizer.optimize] Chose plan {plan_name!r} for level {level!r}")
        for application in applied:
            logger.debug(
                f"[optimizer.optimize] {application.rule}: {application.details} "
                f"({application.before_count} -> {application.after_count})"
            )
        return OptimizationResult(
            level=level,
            patterns=patterns,
            applied=applied,
            stats=OptimizationStats(
                input_files=len(self.selection),
                final_patterns=len(patterns),
                saved_patterns=max(0, len(self.selection) - len(patterns)),
            ),
        )


def _dedupe_by_key(paths: list[str], context: Context) -> list[str]:
    if context.case_sensitive:
        return paths
    seen: set[str] = set()
    unique: list[str] = []
    for path in paths:
        key = context.policy.key(path)
        if key not in seen:
            seen.add(key)
            unique.append(path)
    return unique


def compile_selection(
    selection: Iterable[str],
    project_root,
    level: str = DEFAULT_LEVEL,
    *,
    fs: FileSystem | None = None,
    context: Context | None = None,
) -> OptimizationResult:
    """
    Compile a set of selected project-relative files into a compact pattern list.

    Expanding the returned patterns against the same tree reproduces the selection exactly.

    Raises:
        UnsafePathError: a selected path is absolute, contains '..' or a NUL byte.
        ValueError: unknown optimization level.
    """
    level = coerce_level(level)
    context = context or Context()
    paths = _dedupe_by_key(normalize_selection(selection), context)
    if not paths:
        return OptimizationResult(level=level, patterns=[], applied=[], stats=OptimizationStats(0, 0, 0))

    fs = fs or LocalFileSystem()
    root = os.fspath(project_root)
    coverage = CoverageAnalyzer(paths, context.policy)
    scanner = DirectoryScanner(
        fs,
        root,
        selected=coverage.selected,
        ignore=context.ignore_rules(),
        policy=context.policy,
    )
    engine = RuleEngine(paths, scanner=scanner, coverage=coverage, context=context)
    return engine.optimize(level)


optimize_selection = compile_selection
