from __future__ import annotations


def to_posix(path: str) -> str:
    return path.replace("\\", "/")


def depth(path: str) -> int:
    return len(path.split("/")) if path else 0


def join(rel_dir: str, name: str) -> str:
    return f"{rel_dir}/{name}" if rel_dir else name


def parent_of(path: str) -> str:
    """Return the parent of a relative POSIX path; '' for top-level entries."""
    head, _, _ = path.rpartition("/")
    return head


def basename(path: str) -> str:
    return path.rpartition("/")[2]


def ext_of(path: str) -> str:
    """
    Return the extension (without the dot) of the last path segment.

    Dotfiles without a further dot have no extension.
    >>> ext_of("src/a.test.ts")
    'ts'
    >>> ext_of(".env")
    ''
    >>> ext_of("Makefile")
    ''
    """
    name = basename(path)
    idx = name.rfind(".")
    if idx <= 0:
        return ""
    return name[idx + 1 :]


def is_within(path: str, root: str, sep: str = "/") -> bool:
    root = root.rstrip(sep) or sep
    if path == root:
        return True
    prefix = root if root.endswith(sep) else root + sep
    return path.startswith(prefix)
