# src/flowscope/core/nodes.py
"""Named, parented tree of cascades, flows, assemblies and branches.

Children are unique by name within their parent only at insertion time.
Lookups search the whole subtree and fail when a name is ambiguous anywhere
below, so duplicate names are tolerated deeper in the tree as long as no
lookup ever has to pick between them.
"""

from __future__ import annotations

from collections.abc import Iterator

from flowscope.contracts.errors import AmbiguousNodeName


class Node:
    """A node of the composition tree.

    Attributes:
        name: Name of this node, unique among its siblings
        parent: Enclosing node, or None for a root
        children: Direct children keyed by name, in insertion order
        last_child: Most recently added child
    """

    kind = "node"

    def __init__(self, name: str, parent: Node | None = None) -> None:
        self.name = name
        self.parent = parent
        self.children: dict[str, Node] = {}
        self.last_child: Node | None = None

    @property
    def child_names(self) -> list[str]:
        return list(self.children)

    @property
    def qualified_name(self) -> str:
        """Dot-joined path of names from the root to this node."""
        return f"{self.parent.qualified_name}.{self.name}" if self.parent else self.name

    @property
    def root(self) -> Node:
        node = self
        while node.parent is not None:
            node = node.parent
        return node

    def add_child[N: Node](self, node: N) -> N:
        """Insert a direct child.

        Raises:
            AmbiguousNodeName: If a direct child with the same name exists
        """
        if node.name in self.children:
            raise AmbiguousNodeName(
                f"Attempted to add '{node.qualified_name}', but node named '{node.name}' already exists",
                node=self.qualified_name,
            )
        self.children[node.name] = node
        self.last_child = node
        return node

    def find_child(self, name: str) -> Node | None:
        """Find the unique descendant with the given name.

        Returns:
            The matching node, or None when nothing below matches

        Raises:
            AmbiguousNodeName: If more than one descendant matches
        """
        matches = list(self._find_all(name))
        if len(matches) > 1:
            qualified = "', '".join(m.qualified_name for m in matches)
            raise AmbiguousNodeName(
                f"Ambiguous lookup of child by name '{name}'; found '{qualified}'",
                node=self.qualified_name,
            )
        return matches[0] if matches else None

    def _find_all(self, name: str) -> Iterator[Node]:
        # Direct children first, then each child's subtree in insertion order
        if name in self.children:
            yield self.children[name]
        for child in self.children.values():
            yield from child._find_all(name)

    def walk(self) -> Iterator[Node]:
        """Yield this node and every descendant, depth first."""
        yield self
        for child in self.children.values():
            yield from child.walk()

    def describe(self, offset: str = "") -> str:
        lines = [f"{offset}{self.name}:{self.kind}"]
        lines.extend(child.describe(f"{offset}  ") for child in self.children.values())
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.qualified_name!r})"
