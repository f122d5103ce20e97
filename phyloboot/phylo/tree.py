"""
Rooted binary trees.

Trees are parsed from Newick strings. Node ids are assigned in preorder
(root = 0) so that the ids used in parameter descriptions are stable for
a given topology string.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from phyloboot.core.exceptions import ValidationError


class TreeNode:
    """
    A node of a rooted binary tree.

    Attributes:
        id: Preorder index (root is 0)
        name: Leaf name, or '' for unnamed internal nodes
        parent: Parent node, None at the root
        lchild, rchild: Children, both None at a leaf
        dparent: Length of the branch to the parent
    """

    __slots__ = ('id', 'name', 'parent', 'lchild', 'rchild', 'dparent')

    def __init__(self, name: str = '', dparent: float = 0.0):
        self.id = -1
        self.name = name
        self.parent: TreeNode | None = None
        self.lchild: TreeNode | None = None
        self.rchild: TreeNode | None = None
        self.dparent = dparent

    @property
    def is_leaf(self) -> bool:
        return self.lchild is None and self.rchild is None

    def children(self) -> tuple[TreeNode, ...]:
        return tuple(c for c in (self.lchild, self.rchild) if c is not None)

    def preorder(self) -> list[TreeNode]:
        """All nodes of the subtree, parents before children, left first."""
        order = []
        stack = [self]
        while stack:
            node = stack.pop()
            order.append(node)
            if node.rchild is not None:
                stack.append(node.rchild)
            if node.lchild is not None:
                stack.append(node.lchild)
        return order

    def postorder(self) -> list[TreeNode]:
        """All nodes of the subtree, children before parents."""
        order = []
        stack: list[tuple[TreeNode, bool]] = [(self, False)]
        while stack:
            node, expanded = stack.pop()
            if expanded or node.is_leaf:
                order.append(node)
                continue
            stack.append((node, True))
            if node.rchild is not None:
                stack.append((node.rchild, False))
            if node.lchild is not None:
                stack.append((node.lchild, False))
        return order

    def leaves(self) -> list[TreeNode]:
        return [n for n in self.preorder() if n.is_leaf]

    @property
    def n_nodes(self) -> int:
        return len(self.preorder())

    def iter_branches(self) -> Iterator[TreeNode]:
        """Non-root nodes in preorder; each stands for the branch above it."""
        for node in self.preorder():
            if node.parent is not None:
                yield node

    def copy(self) -> TreeNode:
        """Deep copy of the subtree; ids are preserved."""
        clone = TreeNode(self.name, self.dparent)
        clone.id = self.id
        for attr in ('lchild', 'rchild'):
            child = getattr(self, attr)
            if child is not None:
                child_copy = child.copy()
                child_copy.parent = clone
                setattr(clone, attr, child_copy)
        return clone

    def to_newick(self) -> str:
        return self._newick() + ';'

    def _newick(self) -> str:
        if self.is_leaf:
            text = self.name
        else:
            text = '(' + ','.join(c._newick() for c in self.children()) + ')' + self.name
        if self.parent is not None:
            text += f':{self.dparent:.10g}'
        return text

    def __repr__(self) -> str:
        return f"TreeNode(id={self.id}, name={self.name!r}, dparent={self.dparent:g})"


def parse_newick(text: str) -> TreeNode:
    """
    Parse a rooted binary Newick string.

    Internal nodes must have exactly two children. Branch lengths are
    optional and default to 0; the root's length is ignored.

    Raises:
        ValidationError: On malformed or non-binary input
    """
    s = ''.join(text.split())
    if not s:
        raise ValidationError("tree: empty Newick string")
    if s.endswith(';'):
        s = s[:-1]

    pos = 0

    def parse_label() -> str:
        nonlocal pos
        start = pos
        while pos < len(s) and s[pos] not in '(),:;':
            pos += 1
        return s[start:pos]

    def parse_length() -> float:
        nonlocal pos
        if pos < len(s) and s[pos] == ':':
            pos += 1
            start = pos
            while pos < len(s) and s[pos] not in '(),;':
                pos += 1
            try:
                return float(s[start:pos])
            except ValueError:
                raise ValidationError(
                    f"tree: bad branch length {s[start:pos]!r} at offset {start}"
                ) from None
        return 0.0

    def parse_subtree() -> TreeNode:
        nonlocal pos
        if pos < len(s) and s[pos] == '(':
            pos += 1
            children = [parse_subtree()]
            while pos < len(s) and s[pos] == ',':
                pos += 1
                children.append(parse_subtree())
            if pos >= len(s) or s[pos] != ')':
                raise ValidationError(f"tree: expected ')' at offset {pos}")
            pos += 1
            if len(children) != 2:
                raise ValidationError(
                    f"tree: internal nodes must have 2 children, got {len(children)}"
                )
            node = TreeNode(parse_label())
            node.lchild, node.rchild = children
            for child in children:
                child.parent = node
        else:
            name = parse_label()
            if not name:
                raise ValidationError(f"tree: missing leaf name at offset {pos}")
            node = TreeNode(name)
        node.dparent = parse_length()
        return node

    root = parse_subtree()
    if pos != len(s):
        raise ValidationError(f"tree: unexpected text {s[pos:]!r}")
    if root.is_leaf:
        raise ValidationError("tree: a tree needs at least two leaves")
    root.dparent = 0.0

    for i, node in enumerate(root.preorder()):
        node.id = i

    names = [leaf.name for leaf in root.leaves()]
    if len(set(names)) != len(names):
        raise ValidationError(f"tree: duplicate leaf names in {names}")
    return root


def read_tree(source: str | Path) -> TreeNode:
    """
    Read a tree from a literal Newick string or a file.

    A source starting with '(' is taken to be the tree itself.
    """
    text = str(source)
    if text.lstrip().startswith('('):
        return parse_newick(text)
    path = Path(source)
    try:
        return parse_newick(path.read_text())
    except OSError as e:
        raise ValidationError(f"tree: cannot read {path}: {e}") from e
