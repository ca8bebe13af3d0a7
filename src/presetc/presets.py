from __future__ import annotations

import difflib
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from presetc.context import Context, coerce_level
from presetc.core import check_safe_path
from presetc.defaults import (
    DEFAULT_LEVEL,
    DEFAULT_PRESET_TEMPLATE,
    PRESET_FOLDER_NAME,
    PRESET_SUFFIX,
    PRESETS_SUBDIR,
)
from presetc.emitter import dedupe
from presetc.optimizer import compile_selection
from presetc.path_classifier import directory_to_pattern, separate_patterns_from_paths, validate_pattern_safety
from presetc.patterns import list_files_by_patterns_file
from presetc.types import OptimizationResult

logger = logging.getLogger(__name__)

_INPUT_SEPARATORS = re.compile(r"\r?\n|,")


@dataclass
class PresetMetadata:
    """What went into a preset file; rendered as its comment header."""

    source: str = ""
    patterns_preserved: int = 0
    directories_converted: int = 0
    optimization: OptimizationResult | None = None


@dataclass
class PresetOptimization:
    name: str
    path: Path
    before: str
    after: str
    diff: str
    result: OptimizationResult
    written: bool = False
    input_files: list[str] = field(default_factory=list)


# ---[ Locations ]---


def find_preset_folder(start) -> Path | None:
    """Nearest existing preset folder in `start` or one of its ancestors."""
    current = Path(start).resolve()
    for candidate_dir in (current, *current.parents):
        candidate = candidate_dir / PRESET_FOLDER_NAME
        if candidate.is_dir():
            return candidate
    return None


def get_preset_dir(project_path) -> Path:
    existing = find_preset_folder(project_path)
    if existing is not None:
        return existing / PRESETS_SUBDIR
    return Path(project_path) / PRESET_FOLDER_NAME / PRESETS_SUBDIR


def _check_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or "\\" in name or "\x00" in name:
        raise ValueError(f"Invalid preset name {name!r}: must be a plain file name")


def get_preset_path(project_path, name: str) -> Path:
    _check_name(name)
    return get_preset_dir(project_path) / f"{name}{PRESET_SUFFIX}"


# ---[ Rendering ]---


def render_preset_file(
    name: str,
    patterns: Iterable[str],
    metadata: PresetMetadata | None = None,
    *,
    now: datetime | None = None,
) -> str:
    """Render a preset file: a comment header describing its origin, then one pattern per line."""
    now = now or datetime.now(timezone.utc)
    lines = [f"# {name} preset", f"# Generated: {now.isoformat(timespec='seconds')}"]
    if metadata is not None:
        if metadata.source:
            lines.append(f"# Source: {metadata.source}")
        if metadata.patterns_preserved:
            lines.append(f"# Patterns preserved as provided: {metadata.patterns_preserved}")
        if metadata.directories_converted:
            lines.append(f"# Directories converted to patterns: {metadata.directories_converted}")
        result = metadata.optimization
        if result is not None:
            stats = result.stats
            lines.append(f"# Optimization: {result.level}")
            lines.append(
                f"# Optimized: {stats.input_files} files → {stats.final_patterns} patterns "
                f"(saved {stats.saved_patterns})"
            )
            if result.applied:
                lines.append("# Applied rules:")
                lines.extend(f"#   - {a.rule}: {a.details}" for a in result.applied)
    lines.append("")
    lines.extend(patterns)
    return "\n".join(lines) + "\n"


# ---[ Storage ]---


def save_preset(
    name: str,
    patterns: Iterable[str],
    project_path,
    *,
    overwrite: bool = False,
    metadata: PresetMetadata | None = None,
) -> Path:
    path = get_preset_path(project_path, name)
    if path.exists() and not overwrite:
        raise FileExistsError(f"Preset {name!r} already exists at {path}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_preset_file(name, patterns, metadata), encoding="utf-8")
    return path


def _pattern_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith("#")]


def load_preset(name: str, project_path) -> list[str]:
    path = get_preset_path(project_path, name)
    if not path.is_file():
        raise FileNotFoundError(f"Preset not found: {name}")
    return _pattern_lines(path.read_text(encoding="utf-8"))


def list_presets(project_path) -> list[str]:
    preset_dir = get_preset_dir(project_path)
    if not preset_dir.is_dir():
        return []
    return sorted(p.name[: -len(PRESET_SUFFIX)] for p in preset_dir.iterdir() if p.name.endswith(PRESET_SUFFIX))


def delete_preset(name: str, project_path) -> None:
    path = get_preset_path(project_path, name)
    if not path.is_file():
        raise FileNotFoundError(f"Preset not found: {name}")
    path.unlink()


# ---[ Workflows ]---


def _split_inputs(inputs: Iterable[str]) -> list[str]:
    """Inputs may arrive as comma- or newline-separated chunks."""
    return [part.strip() for chunk in inputs for part in _INPUT_SEPARATORS.split(chunk) if part.strip()]


def create_preset(
    name: str,
    project_path,
    inputs: Iterable[str] | None = None,
    level: str = DEFAULT_LEVEL,
    *,
    context: Context | None = None,
) -> Path:
    """
    Create a preset from a mix of glob patterns, directories and files.

    - Glob patterns are preserved as provided.
    - Directories become `dir/**`.
    - Existing files are compiled with `compile_selection` at `level`.

    With no inputs, a starter template is written instead.

    Raises:
        FileExistsError: the preset already exists.
        UnsafePathError: an input is absolute or contains '..'.
    """
    level = coerce_level(level)
    path = get_preset_path(project_path, name)
    if path.exists():
        raise FileExistsError(f"Preset {name!r} already exists at {path}")

    items = _split_inputs(inputs or [])
    if not items:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(DEFAULT_PRESET_TEMPLATE.format(name=name), encoding="utf-8")
        return path

    root = os.fspath(project_path)
    separated = separate_patterns_from_paths(items, root)
    validate_pattern_safety([*separated.patterns, *separated.directories, *separated.files])

    final_patterns: list[str] = list(separated.patterns)
    metadata = PresetMetadata(
        patterns_preserved=len(separated.patterns),
        directories_converted=len(separated.directories),
    )
    final_patterns.extend(directory_to_pattern(d) for d in separated.directories)

    existing_files: list[str] = []
    for file in separated.files:
        check_safe_path(file, what="selection path")
        if Path(root, file).is_file():
            existing_files.append(file)
        else:
            logger.warning(f"[WARNING][presets.create_preset] Skipping {file!r}: not a file in {root!r}")
    if existing_files:
        result = compile_selection(existing_files, root, level, context=context)
        final_patterns.extend(result.patterns)
        metadata.optimization = result

    metadata.source = _describe_source(separated, len(existing_files), metadata.optimization)
    return save_preset(name, dedupe(final_patterns), project_path, metadata=metadata)


def _describe_source(separated, file_count: int, result: OptimizationResult | None) -> str:
    if separated.mixed:
        parts = []
        if separated.patterns:
            parts.append(f"{len(separated.patterns)} patterns preserved")
        if separated.directories:
            parts.append(f"{len(separated.directories)} directories")
        if result is not None:
            parts.append(f"{file_count} files → {result.stats.final_patterns} patterns")
        return f"mixed ({', '.join(parts)})"
    if separated.patterns:
        return f"patterns preserved ({len(separated.patterns)})"
    if separated.directories:
        return f"directories converted ({len(separated.directories)})"
    if result is not None:
        return f"files optimized ({file_count} → {result.stats.final_patterns} patterns)"
    return ""


def optimize_preset(
    name: str,
    project_path,
    level: str = DEFAULT_LEVEL,
    *,
    write: bool = False,
    context: Context | None = None,
) -> PresetOptimization:
    """
    Re-derive a preset: expand it to concrete files, compile those again, and diff the two files.
    The preset is only rewritten when `write` is True.
    """
    level = coerce_level(level)
    path = get_preset_path(project_path, name)
    if not path.is_file():
        raise FileNotFoundError(f"Preset not found: {name}")

    root = os.fspath(project_path)
    files = list_files_by_patterns_file(path, root, context=context)
    result = compile_selection(files, root, level, context=context)

    before = path.read_text(encoding="utf-8")
    after = render_preset_file(name, result.patterns, PresetMetadata(source=f"preset:{name}", optimization=result))
    diff = "".join(
        difflib.unified_diff(
            before.splitlines(keepends=True),
            after.splitlines(keepends=True),
            fromfile=f"{name}{PRESET_SUFFIX} (before)",
            tofile=f"{name}{PRESET_SUFFIX} (after)",
        )
    )
    if write:
        path.write_text(after, encoding="utf-8")
    return PresetOptimization(
        name=name,
        path=path,
        before=before,
        after=after,
        diff=diff,
        result=result,
        written=write,
        input_files=files,
    )
