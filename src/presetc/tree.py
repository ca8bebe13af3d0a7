from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator

from presetc.util import depth


@dataclass
class TreeNode:
    name: str
    # None marks a file leaf; a dict (possibly empty) marks a directory.
    children: dict[str, TreeNode] | None = field(default_factory=dict)

    @property
    def is_file(self) -> bool:
        return self.children is None

    def sorted_children(self) -> list[TreeNode]:
        """Directories before files, then lexicographic."""
        if self.children is None:
            return []
        return sorted(self.children.values(), key=lambda n: (n.is_file, n.name))


class SelectionTree:
    """
    Explicit tree of selected files.

    Used by the rule engine to enumerate candidate directories, and to render a
    selection as a POSIX-style tree.
    """

    def __init__(self) -> None:
        self.root = TreeNode("")

    @classmethod
    def from_paths(cls, paths: Iterable[str]) -> SelectionTree:
        tree = cls()
        for path in paths:
            tree.add(path)
        return tree

    def add(self, path: str) -> None:
        parts = [p for p in path.split("/") if p]
        if not parts:
            return
        children = self.root.children
        for part in parts[:-1]:
            child = children.get(part)
            if child is None:
                child = children[part] = TreeNode(part)
            if child.children is None:
                raise ValueError(f"{path!r}: {part!r} is both a file and a directory")
            children = child.children
        existing = children.get(parts[-1])
        if existing is not None and not existing.is_file:
            raise ValueError(f"{path!r} is both a file and a directory")
        children[parts[-1]] = TreeNode(parts[-1], children=None)

    def walk(self) -> Iterator[tuple[str, TreeNode]]:
        """Yield (relative path, node) pairs depth-first in sorted order, root excluded."""
        stack: list[tuple[str, TreeNode]] = [
            (child.name, child) for child in reversed(self.root.sorted_children())
        ]
        while stack:
            path, node = stack.pop()
            yield path, node
            for child in reversed(node.sorted_children()):
                stack.append((f"{path}/{child.name}", child))

    def files(self) -> list[str]:
        return [path for path, node in self.walk() if node.is_file]

    def directories(self) -> list[str]:
        return [path for path, node in self.walk() if not node.is_file]

    def directories_deepest_first(self) -> list[str]:
        return sorted(self.directories(), key=lambda d: (-depth(d), d))

    def render(self, root_name: str = ".") -> str:
        lines = [f"{root_name.rstrip('/')}/"]

        def render_node(node: TreeNode, indent: str) -> None:
            children = node.sorted_children()
            for index, child in enumerate(children):
                is_last = index == len(children) - 1
                connector = "└── " if is_last else "├── "
                lines.append(f"{indent}{connector}{child.name}{'' if child.is_file else '/'}")
                if not child.is_file:
                    render_node(child, indent + ("    " if is_last else "│   "))

        render_node(self.root, "")
        return "\n".join(lines)
