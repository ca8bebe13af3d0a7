from __future__ import annotations

import pytest

from presetc.core import UnsafePathError
from presetc.path_classifier import (
    classify_input,
    directory_to_pattern,
    is_glob_pattern,
    normalize_pattern,
    separate_patterns_from_paths,
    validate_pattern_safety,
)
from presetc.types import Glob


@pytest.mark.parametrize(
    "text",
    [
        "*.py",
        "src/**/*.ts",
        "file?.md",
        "!**/*.test.ts",
        "src/{a,b}.ts",
        "file{1..3}.txt",
        "@(a|b).ts",
        "[a-z].md",
        "[[:alpha:]].md",
        "[abc].md",
        Glob("literal-looking"),
    ],
)
def test_is_glob_pattern(text):
    assert is_glob_pattern(text)


@pytest.mark.parametrize("text", ["src/index.ts", "file[1].ts", "README", "{braces}.ts", "comma,name.ts", 42, None])
def test_is_not_glob_pattern(text):
    assert not is_glob_pattern(text)


def test_normalize_pattern():
    assert normalize_pattern("src\\components\\*.ts") == "src/components/*.ts"


def test_classify_input(project_tree):
    root = project_tree.root

    assert classify_input("src/**/*.ts", root) == "pattern"
    assert classify_input("src/api", root) == "directory"
    assert classify_input("src\\api\\", root) == "directory"
    assert classify_input("src/index.ts", root) == "file"
    assert classify_input("does/not/exist.ts", root) == "file"


def test_separate_patterns_from_paths(project_tree):
    separated = separate_patterns_from_paths(
        ["**/*.md", "docs", "src/index.ts", "lib\\a.js", "!**/*.test.ts"], project_tree.root
    )

    assert separated.patterns == ["**/*.md", "!**/*.test.ts"]
    assert separated.directories == ["docs"]
    assert separated.files == ["src/index.ts", "lib/a.js"]
    assert separated.mixed


def test_separated_inputs_of_one_kind_are_not_mixed(project_tree):
    assert not separate_patterns_from_paths(["src/index.ts", "README.md"], project_tree.root).mixed


def test_validate_pattern_safety():
    validate_pattern_safety(["src/**", "!docs/**", "a.ts"])

    with pytest.raises(UnsafePathError):
        validate_pattern_safety(["src/**", "!../escape/**"])
    with pytest.raises(UnsafePathError):
        validate_pattern_safety(["/abs/**"])


def test_directory_to_pattern():
    assert directory_to_pattern("src\\components/") == "src/components/**"
    assert directory_to_pattern("./docs") == "docs/**"
    assert directory_to_pattern("weird/[x]") == "weird/\\[x\\]/**"
