# tests/unit/core/test_nodes.py
"""Tests for the named node tree."""

from __future__ import annotations

import pytest

from flowscope.contracts import AmbiguousNodeName
from flowscope.core import Node


@pytest.fixture
def tree() -> Node:
    """root -> (a -> x, b -> (x, y))."""
    root = Node("root")
    a = root.add_child(Node("a", root))
    b = root.add_child(Node("b", root))
    a.add_child(Node("x", a))
    b.add_child(Node("x", b))
    b.add_child(Node("y", b))
    return root


class TestNodeTree:
    def test_qualified_name(self, tree: Node) -> None:
        y = tree.children["b"].children["y"]
        assert y.qualified_name == "root.b.y"
        assert y.root is tree

    def test_last_child(self, tree: Node) -> None:
        assert tree.last_child is tree.children["b"]
        assert tree.child_names == ["a", "b"]

    def test_duplicate_sibling_rejected(self, tree: Node) -> None:
        with pytest.raises(AmbiguousNodeName, match="already exists"):
            tree.add_child(Node("a", tree))

    def test_duplicate_names_in_different_subtrees_are_allowed(self, tree: Node) -> None:
        assert tree.children["a"].find_child("x") is tree.children["a"].children["x"]

    def test_find_unique_descendant(self, tree: Node) -> None:
        assert tree.find_child("y") is tree.children["b"].children["y"]

    def test_find_missing(self, tree: Node) -> None:
        assert tree.find_child("nope") is None

    def test_ambiguous_lookup(self, tree: Node) -> None:
        with pytest.raises(AmbiguousNodeName) as exc_info:
            tree.find_child("x")
        assert "root.a.x" in str(exc_info.value)
        assert "root.b.x" in str(exc_info.value)

    def test_walk_is_depth_first(self, tree: Node) -> None:
        assert [n.qualified_name for n in tree.walk()] == [
            "root",
            "root.a",
            "root.a.x",
            "root.b",
            "root.b.x",
            "root.b.y",
        ]

    def test_describe(self, tree: Node) -> None:
        assert tree.describe() == "\n".join(
            [
                "root:node",
                "  a:node",
                "    x:node",
                "  b:node",
                "    x:node",
                "    y:node",
            ]
        )

    def test_repr(self, tree: Node) -> None:
        assert repr(tree.children["a"]) == "Node('root.a')"
