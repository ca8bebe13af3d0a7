from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from presetc.defaults import OptimizationLevel


class Glob(str):
    """
    Purely nominal type marking a string as a glob pattern rather than a literal path.
    Helps disambiguate e.g. `Glob("*.log")` from a file literally named '*.log'."""

    __slots__ = ()


RuleName = Literal[
    "full-directory",
    "near-full-exclusion",
    "dir-extension",
    "global-extension",
    "brace-merge-dirs",
    "brace-merge-extensions",
]


@dataclass(frozen=True)
class DirectoryScan:
    """
    Memoized scan of one directory subtree, valid for a single compilation.

    `files` holds every non-ignored file below the directory (project-relative, sorted).
    `direct_by_extension` only holds files directly inside the directory.
    """

    directory: str
    files: tuple[str, ...]
    direct_by_extension: dict[str, tuple[str, ...]]
    direct_coverage_by_extension: dict[str, bool]
    has_subdirectories: bool
    fully_selected: bool


@dataclass(frozen=True)
class RuleApplication:
    rule: RuleName
    details: str
    before_count: int
    after_count: int


@dataclass(frozen=True)
class OptimizationStats:
    input_files: int
    final_patterns: int
    saved_patterns: int


@dataclass
class OptimizationResult:
    level: "OptimizationLevel"
    patterns: list[str]
    applied: list[RuleApplication] = field(default_factory=list)
    stats: OptimizationStats = field(default_factory=lambda: OptimizationStats(0, 0, 0))

    @property
    def includes(self) -> list[str]:
        return [p for p in self.patterns if not p.startswith("!")]

    @property
    def excludes(self) -> list[str]:
        return [p[1:] for p in self.patterns if p.startswith("!")]

    def as_text(self) -> str:
        """Stored-file body: one pattern per line with a trailing newline."""
        if not self.patterns:
            return ""
        return "\n".join(self.patterns) + "\n"


@dataclass
class ParsedPatterns:
    include_patterns: list[str] = field(default_factory=list)
    exclude_patterns: list[str] = field(default_factory=list)
