# region ---[ Default Ignore List ]---

from typing import Literal

from presetc.types import Glob

# Directory names pruned wherever they appear below a scan or walk base.
DEFAULT_IGNORED_DIRECTORIES: tuple[str, ...] = (
    # Version control metadata
    ".git",
    ".hg",
    ".svn",
    # Dependency caches
    "node_modules",
    "bower_components",
    "__pycache__",
    ".venv",
    # Build output
    "dist",
    "out",
    "build",
    # Editor state
    ".vscode",
)

# File name globs skipped wherever they appear below a scan or walk base.
DEFAULT_IGNORED_FILES: tuple[Glob, ...] = (
    # OS metadata
    Glob(".DS_Store"),
    Glob("Thumbs.db"),
    Glob("desktop.ini"),
    # Logs
    Glob("*.log"),
)

# endregion ---[ Default Ignore List ]---
# region ---[ Optimization Policy ]---

OptimizationLevel = Literal["minimal", "balanced", "aggressive"]

LEVELS: tuple[OptimizationLevel, ...] = ("minimal", "balanced", "aggressive")
DEFAULT_LEVEL: OptimizationLevel = "balanced"

# Empirically tuned; overridable through Context.near_full_thresholds.
DEFAULT_NEAR_FULL_THRESHOLDS: dict[str, int] = {
    "balanced": 1,
    "aggressive": 2,
}

# A rule never collapses fewer files than this into one pattern.
DEFAULT_MIN_FILES_TO_GENERALIZE = 2

# Emit dir/**/*.ext instead of dir/*.ext when the directory has subdirectories
# and every .ext file below it is selected.
DEFAULT_RECURSIVE_EXTENSION_GLOBS = True

DEFAULT_CASE_SENSITIVE = True

# Synthesized include when a pattern list only carries excludes.
MATCH_EVERYTHING = Glob("**/*")

# endregion ---[ Optimization Policy ]---
# region ---[ Presets ]---

PRESET_FOLDER_NAME = ".presetc"
PRESETS_SUBDIR = "presets"
PRESET_SUFFIX = ".patterns"

DEFAULT_PRESET_TEMPLATE = """\
# {name} preset
# Use gitignore-style glob syntax
# Include patterns:
**/*.py
**/*.ts
**/*.tsx
**/*.js

# Exclude patterns (use ! prefix):
!**/*.test.*
!**/*.spec.*
"""

# endregion ---[ Presets ]---
