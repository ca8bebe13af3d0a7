from __future__ import annotations

import logging

import pytest

from presetc.adapters.memory import MemoryFileSystem
from presetc.context import Context
from presetc.core import NodeKind
from presetc.optimizer import compile_selection
from presetc.patterns import expand_patterns

ROOT = "/project"


def _round_trip(fs: MemoryFileSystem, selection, level):
    result = compile_selection(selection, ROOT, level, fs=fs)
    return result.patterns, expand_patterns(result.as_text(), ROOT, fs=fs)


def test_memory_filesystem_collapses_like_disk():
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts", "pkg/c.ts", "other/x.md"])

    patterns, expanded = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts", "pkg/c.ts"], "minimal")

    assert patterns == ["pkg/**"]
    assert expanded == ["pkg/a.ts", "pkg/b.ts", "pkg/c.ts"]


@pytest.mark.parametrize("level", ["minimal", "balanced", "aggressive"])
def test_symlink_escaping_the_project_blocks_generalization(caplog, level):
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts"])
    fs.add_file("/outside/secret.ts", "secret")
    fs.add_symlink("pkg/link.ts", "/outside/secret.ts")
    selection = ["pkg/a.ts", "pkg/b.ts", "pkg/link.ts"]

    patterns, expanded = _round_trip(fs, selection, level)

    assert patterns == selection
    assert expanded == selection
    assert "resolves outside the project" in caplog.text


def test_special_entry_blocks_generalization(caplog):
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts"])
    fs.add_special("pkg/server.sock")

    patterns, expanded = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts"], "balanced")

    assert patterns == ["pkg/a.ts", "pkg/b.ts"]
    assert expanded == ["pkg/a.ts", "pkg/b.ts"]
    assert "neither a file nor a directory" in caplog.text


def test_dangling_symlink_blocks_generalization(caplog):
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts"])
    fs.add_symlink("pkg/gone.ts", "missing.ts")

    patterns, _ = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts"], "minimal")

    assert patterns == ["pkg/a.ts", "pkg/b.ts"]
    assert "[WARNING][scanner.scan]" in caplog.text


def test_unreadable_subdirectory_blocks_generalization_of_ancestors(caplog):
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts"])
    fs.make_unreadable("pkg/private")

    patterns, expanded = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts"], "aggressive")

    assert patterns == ["pkg/a.ts", "pkg/b.ts"]
    assert expanded == ["pkg/a.ts", "pkg/b.ts"]
    assert "Cannot list 'pkg/private'" in caplog.text


def test_symlinked_directory_blocks_generalization(caplog):
    caplog.set_level(logging.DEBUG, logger="presetc.scanner")
    fs = MemoryFileSystem(["pkg/a.ts", "pkg/b.ts", "other/c.ts"])
    fs.add_symlink("pkg/linked", "../other")

    patterns, expanded = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts"], "balanced")

    assert patterns == ["pkg/a.ts", "pkg/b.ts"]
    assert expanded == ["pkg/a.ts", "pkg/b.ts"]
    assert "is a symlinked directory" in caplog.text


def test_symlinked_file_inside_the_project_is_an_ordinary_file():
    fs = MemoryFileSystem(["pkg/a.ts", "shared/b.ts"])
    fs.add_symlink("pkg/b.ts", "../shared/b.ts")

    patterns, expanded = _round_trip(fs, ["pkg/a.ts", "pkg/b.ts"], "minimal")

    assert patterns == ["pkg/**"]
    assert expanded == ["pkg/a.ts", "pkg/b.ts"]


def test_blocked_subtree_does_not_block_its_siblings():
    fs = MemoryFileSystem(["pkg/good/a.ts", "pkg/good/b.ts", "pkg/bad/c.ts"])
    fs.add_special("pkg/bad/fifo")

    result = compile_selection(["pkg/good/a.ts", "pkg/good/b.ts"], ROOT, "minimal", fs=fs)

    assert result.patterns == ["pkg/good/**"]


def test_case_insensitive_policy_merges_differently_cased_selection():
    fs = MemoryFileSystem(["Pkg/A.ts", "Pkg/B.ts"])
    context = Context(case_sensitive=False)

    result = compile_selection(["Pkg/A.ts", "pkg/a.ts", "Pkg/B.ts"], ROOT, "minimal", fs=fs, context=context)

    assert result.stats.input_files == 2
    assert result.patterns == ["Pkg/**"]
    assert expand_patterns(result.as_text(), ROOT, fs=fs, context=context) == ["Pkg/A.ts", "Pkg/B.ts"]


# ---[ MemoryFileSystem ]---


def test_memory_filesystem_resolves_relative_and_chained_links():
    fs = MemoryFileSystem(["real/file.txt"])
    fs.add_symlink("alias", "real")
    fs.add_symlink("chain", "alias/file.txt")

    assert fs.real_path("/project/chain") == "/project/real/file.txt"
    assert fs.is_file("/project/chain")
    assert fs.is_dir("/project/alias")
    assert fs.read_text("chain") == ""


def test_memory_filesystem_lists_entries_with_kinds():
    fs = MemoryFileSystem({"d/file.txt": "x"})
    fs.add_dir("d/sub")
    fs.add_special("d/sock")
    fs.add_symlink("d/link", "file.txt")
    fs.add_symlink("d/broken", "nowhere")

    entries = {e.name: e for e in fs.list_directory("/project/d")}

    assert entries["file.txt"].kind is NodeKind.FILE
    assert entries["sub"].kind is NodeKind.DIRECTORY
    assert entries["sock"].kind is NodeKind.OTHER
    assert entries["link"].kind is NodeKind.FILE and entries["link"].is_symlink
    assert entries["broken"].kind is NodeKind.OTHER and entries["broken"].is_symlink
    assert entries["sub"].path == "/project/d/sub"


def test_memory_filesystem_listing_errors():
    fs = MemoryFileSystem(["f.txt"])
    fs.make_unreadable("locked")

    with pytest.raises(PermissionError):
        fs.list_directory("/project/locked")
    with pytest.raises(NotADirectoryError):
        fs.list_directory("/project/f.txt")
    with pytest.raises(FileNotFoundError):
        fs.list_directory("/project/missing")


def test_memory_filesystem_survives_link_loops():
    fs = MemoryFileSystem()
    fs.add_symlink("a", "b")
    fs.add_symlink("b", "a")

    assert not fs.exists("/project/a")
