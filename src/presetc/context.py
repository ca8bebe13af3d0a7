from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field

from presetc.core import PathPolicy
from presetc.defaults import (
    DEFAULT_CASE_SENSITIVE,
    DEFAULT_IGNORED_DIRECTORIES,
    DEFAULT_IGNORED_FILES,
    DEFAULT_MIN_FILES_TO_GENERALIZE,
    DEFAULT_NEAR_FULL_THRESHOLDS,
    DEFAULT_RECURSIVE_EXTENSION_GLOBS,
    LEVELS,
    OptimizationLevel,
)
from presetc.filters import IgnoreRules


@dataclass(slots=True)
class Context:
    # Policy constants of the rule engine; every field has an overridable default.
    near_full_thresholds: dict[str, int] = field(
        default_factory=lambda: dict(DEFAULT_NEAR_FULL_THRESHOLDS)
    )
    min_files_to_generalize: int = DEFAULT_MIN_FILES_TO_GENERALIZE
    recursive_extension_globs: bool = DEFAULT_RECURSIVE_EXTENSION_GLOBS
    case_sensitive: bool = DEFAULT_CASE_SENSITIVE
    ignored_directories: tuple[str, ...] = DEFAULT_IGNORED_DIRECTORIES
    ignored_files: tuple[str, ...] = DEFAULT_IGNORED_FILES
    no_ignore: bool = False

    def __post_init__(self):
        """
        Validate policy values and resolve the effective ignore list.
        --no-ignore semantics: `no_ignore=True` empties both ignore lists.
        """
        for level, threshold in self.near_full_thresholds.items():
            if level not in LEVELS:
                raise ValueError(f"Unknown optimization level in near_full_thresholds: {level!r}")
            if threshold < 0:
                raise ValueError(f"near-full threshold for {level!r} must be >= 0, got {threshold}")
        if self.min_files_to_generalize < 1:
            raise ValueError(
                f"min_files_to_generalize must be >= 1, got {self.min_files_to_generalize}"
            )
        if self.no_ignore:
            self.ignored_directories = ()
            self.ignored_files = ()

    def replace(self, **kwargs) -> Context:
        """Creates a new copy of the context with the given kwargs updated."""
        return dataclasses.replace(self, **kwargs)

    def near_full_threshold(self, level: OptimizationLevel) -> int:
        return self.near_full_thresholds.get(level, 0)

    @property
    def policy(self) -> PathPolicy:
        return PathPolicy(case_sensitive=self.case_sensitive)

    def ignore_rules(self) -> IgnoreRules:
        return IgnoreRules(self.ignored_directories, self.ignored_files)


def coerce_level(level: str) -> OptimizationLevel:
    if level not in LEVELS:
        raise ValueError(f"Unknown optimization level {level!r}; expected one of {', '.join(LEVELS)}")
    return level  # type: ignore[return-value]
