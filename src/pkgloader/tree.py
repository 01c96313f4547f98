"""Loaded module tree: the result of resolving a package and its dependencies."""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from types import ModuleType
from typing import Any, Dict, Iterator, List, Optional, Tuple

from rich.console import Console
from rich.text import Text
from rich.tree import Tree

# Wide enough that deep trees of long package ids never wrap.
_RENDER_WIDTH = 400


@dataclass(frozen=True)
class LoadedModule:
    """Handle to a module bound into the running interpreter.

    Identity is the (name, version) pair; the module object itself does not
    take part in equality.
    """

    name: str
    version: str
    module: Optional[ModuleType] = field(default=None, compare=False, hash=False, repr=False)

    @property
    def full_name(self) -> str:
        return f"{self.name}=={self.version}"


@dataclass(frozen=True)
class ModuleTreeNode:
    """One package in the loaded tree.

    ``is_managed`` is False for nodes that wrap a module the interpreter
    already had before the loader got involved. The root node returned for
    multi-package requests has no ``package_id``.
    """

    package_id: Optional[str] = None
    package_version: Optional[str] = None
    is_managed: bool = True
    own_modules: Tuple[LoadedModule, ...] = ()
    children: Tuple["ModuleTreeNode", ...] = ()

    @classmethod
    def for_existing_module(cls, module: LoadedModule) -> "ModuleTreeNode":
        """Leaf node wrapping a module the loader did not bind itself."""
        return cls(
            package_id=module.name,
            package_version=module.version,
            is_managed=False,
            own_modules=(module,),
        )

    @property
    def label(self) -> str:
        return f"{self.package_id}.{self.package_version or 'unknown'}"

    def walk(self, depth: int = 0) -> Iterator[Tuple[int, "ModuleTreeNode"]]:
        """Depth-first pre-order traversal yielding (depth, node)."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)

    def flatten(self) -> List[LoadedModule]:
        """Every module reachable from this node, deduplicated by identity."""
        seen = set()
        modules: List[LoadedModule] = []
        for _, node in self.walk():
            for module in node.own_modules:
                if module not in seen:
                    seen.add(module)
                    modules.append(module)
        return modules

    def find_module(self, requested: str) -> Optional[LoadedModule]:
        """Look up a module by ``name==version`` or, without a version, by name."""
        by_identity = "==" in requested
        for module in self.flatten():
            if by_identity and module.full_name == requested:
                return module
            if not by_identity and module.name == requested:
                return module
        return None

    def to_rich_tree(self) -> Tree:
        """Build a ``rich`` tree widget mirroring this node and its descendants."""
        widget = Tree(Text(self.label if self.package_id is not None else "Root"))

        def _attach(node: "ModuleTreeNode", branch: Tree) -> None:
            for child in node.children:
                name = child.label if child.package_id is not None else "unknown"
                _attach(child, branch.add(Text(name)))

        _attach(self, widget)
        return widget

    def format_tree(self) -> str:
        """Render the tree as plain text, one package per line."""
        buffer = io.StringIO()
        console = Console(file=buffer, width=_RENDER_WIDTH, color_system=None, highlight=False)
        console.print(self.to_rich_tree())
        return "\n".join(line.rstrip() for line in buffer.getvalue().splitlines())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package_id": self.package_id,
            "package_version": self.package_version,
            "is_managed": self.is_managed,
            "modules": [module.full_name for module in self.own_modules],
            "dependencies": [child.to_dict() for child in self.children],
        }
