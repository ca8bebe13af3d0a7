from __future__ import annotations

import pytest

from presetc.tree import SelectionTree


def test_render():
    tree = SelectionTree.from_paths(["src/b.ts", "src/a/x.ts", "README.md"])

    assert tree.render() == "\n".join(
        [
            "./",
            "├── src/",
            "│   ├── a/",
            "│   │   └── x.ts",
            "│   └── b.ts",
            "└── README.md",
        ]
    )


def test_render_custom_root_name():
    tree = SelectionTree.from_paths(["a.ts"])

    assert tree.render("project/") == "project/\n└── a.ts"


def test_files_and_directories():
    tree = SelectionTree.from_paths(["src/b.ts", "src/a/x.ts", "README.md", "src/a/y/z.ts"])

    assert tree.files() == ["src/a/y/z.ts", "src/a/x.ts", "src/b.ts", "README.md"]
    assert tree.directories() == ["src", "src/a", "src/a/y"]
    assert tree.directories_deepest_first() == ["src/a/y", "src/a", "src"]


def test_directories_deepest_first_breaks_ties_by_name():
    tree = SelectionTree.from_paths(["b/x/1.ts", "a/y/2.ts", "c.ts"])

    assert tree.directories_deepest_first() == ["a/y", "b/x", "a", "b"]


def test_empty_tree():
    tree = SelectionTree.from_paths([])

    assert tree.files() == []
    assert tree.render() == "./"


def test_adding_the_same_file_twice_is_harmless():
    tree = SelectionTree.from_paths(["a/b.ts", "a/b.ts"])

    assert tree.files() == ["a/b.ts"]


@pytest.mark.parametrize("paths", [["a", "a/b.ts"], ["a/b.ts", "a"], ["a/b", "a/b/c/d.ts"]])
def test_file_and_directory_conflict(paths):
    with pytest.raises(ValueError, match="both a file and a directory"):
        SelectionTree.from_paths(paths)
