from pathlib import Path

from presetc.optimizer import compile_selection
from presetc.patterns import expand_patterns


def write_file(path: Path, content: str | None) -> None:
    path = Path(path)
    if content is None:
        path.mkdir(parents=True, exist_ok=True)
        return
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def touch_file(path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch()


def round_trip(selection, root, level, **kwargs) -> tuple[list[str], list[str]]:
    """Compile then expand; returns (patterns, expanded files)."""
    result = compile_selection(selection, root, level, **kwargs)
    return result.patterns, expand_patterns(result.as_text(), root, **kwargs)
