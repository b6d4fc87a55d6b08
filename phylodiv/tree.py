"""Rooted phylogenetic tree stored as an index-addressed node arena.

Each node is an integer ID. Topology lives in a parent-index array plus a
children list built once at construction; a post-order traversal is
computed at the same time so bottom-up sweeps are plain index iteration.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

import numpy as np

from .errors import EmptyTreeError, InputMismatchError


class Tree:
    """A rooted tree with non-negative branch lengths and labelled leaves.

    Attributes (read-only after construction):
        parent: int64 [n_nodes] parent ID, -1 for the root.
        branch_length: float64 [n_nodes] length of the branch to the parent;
            0.0 for the root.
        labels: Label per node. Leaves carry unique non-empty labels;
            internal labels are optional and ignored by the engine.
        children: Tuple of child IDs per node.
        postorder: int64 [n_nodes] node IDs, children before parents.
    """

    def __init__(
        self,
        parent: Sequence[int] | np.ndarray,
        branch_length: Sequence[float] | np.ndarray,
        labels: Sequence[str | None],
    ) -> None:
        parent_arr = np.array(parent, dtype=np.int64)
        length_arr = np.array(branch_length, dtype=np.float64)
        n = parent_arr.shape[0]
        if n == 0:
            raise EmptyTreeError("Tree has no nodes")
        if length_arr.shape != (n,) or len(labels) != n:
            raise ValueError(
                f"parent ({n}), branch_length ({length_arr.size}) and "
                f"labels ({len(labels)}) must have equal length"
            )

        roots = np.flatnonzero(parent_arr == -1)
        if roots.size != 1:
            raise ValueError(f"Tree must have exactly one root, found {roots.size}")
        root = int(roots[0])

        non_root = parent_arr != -1
        if np.any((parent_arr[non_root] < 0) | (parent_arr[non_root] >= n)):
            raise ValueError("Parent index out of range")
        if np.any(parent_arr == np.arange(n)):
            raise ValueError("Node cannot be its own parent")

        length_arr[root] = 0.0
        if not np.all(np.isfinite(length_arr)) or np.any(length_arr < 0):
            raise ValueError("Branch lengths must be finite and non-negative")

        kids: list[list[int]] = [[] for _ in range(n)]
        for node in np.flatnonzero(non_root):
            kids[int(parent_arr[node])].append(int(node))
        children = tuple(tuple(k) for k in kids)

        postorder = _postorder(root, children)
        if postorder.size != n:
            raise ValueError(
                f"{n - postorder.size} nodes unreachable from the root (cycle or forest)"
            )

        clean_labels = ["" if lab is None else str(lab) for lab in labels]
        is_leaf = np.array([len(c) == 0 for c in children], dtype=bool)
        seen: set[str] = set()
        for node in np.flatnonzero(is_leaf):
            lab = clean_labels[node]
            if not lab:
                raise ValueError(f"Leaf node {node} has no label")
            if lab in seen:
                raise ValueError(f"Duplicate leaf label {lab!r}")
            seen.add(lab)

        for arr in (parent_arr, length_arr, postorder, is_leaf):
            arr.setflags(write=False)

        self.parent = parent_arr
        self.branch_length = length_arr
        self.labels: tuple[str, ...] = tuple(clean_labels)
        self.children = children
        self.postorder = postorder
        self.is_leaf = is_leaf
        self.root = root
        self._leaf_index: dict[str, int] | None = None

    # ------------------------------------------------------------------
    # Alternate constructors
    # ------------------------------------------------------------------

    @classmethod
    def from_edges(cls, edges: Iterable[tuple[str, str, float]]) -> Tree:
        """Build a tree from ``(parent, child, length)`` triples.

        Node names double as labels, so leaf names must be the species
        labels used in the community matrix. The root is the only name that
        never appears as a child.
        """
        index: dict[str, int] = {}
        parent: list[int] = []
        lengths: list[float] = []

        def node_id(name: str) -> int:
            if name not in index:
                index[name] = len(parent)
                parent.append(-1)
                lengths.append(0.0)
            return index[name]

        for parent_name, child_name, length in edges:
            p = node_id(parent_name)
            c = node_id(child_name)
            if parent[c] != -1:
                raise ValueError(f"Node {child_name!r} has more than one parent")
            parent[c] = p
            lengths[c] = float(length)

        return cls(parent, lengths, list(index))

    @classmethod
    def star(cls, labels: Sequence[str], length: float = 1.0) -> Tree:
        """Star tree: every leaf hangs directly off the root."""
        n = len(labels)
        parent = [-1] + [0] * n
        lengths = [0.0] + [float(length)] * n
        return cls(parent, lengths, [""] + list(labels))

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def n_nodes(self) -> int:
        return int(self.parent.shape[0])

    @property
    def leaves(self) -> np.ndarray:
        """Leaf node IDs in ascending ID order."""
        return np.flatnonzero(self.is_leaf)

    @property
    def n_leaves(self) -> int:
        return int(self.is_leaf.sum())

    @property
    def leaf_labels(self) -> list[str]:
        return [self.labels[i] for i in self.leaves]

    @property
    def leaf_index(self) -> dict[str, int]:
        """Mapping leaf label -> node ID (built on first use)."""
        if self._leaf_index is None:
            self._leaf_index = {self.labels[i]: int(i) for i in self.leaves}
        return self._leaf_index

    @property
    def total_length(self) -> float:
        return float(self.branch_length.sum())

    def __repr__(self) -> str:
        return (
            f"Tree(n_nodes={self.n_nodes}, n_leaves={self.n_leaves}, "
            f"total_length={self.total_length:.6g})"
        )

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def prune(self, keep: Iterable[str]) -> Tree:
        """Return a new tree restricted to the leaves labelled in *keep*.

        Dropped leaves are removed, internal nodes left with a single child
        are collapsed into that child (their lengths are summed so path
        lengths between retained nodes are preserved), and a single-child
        chain at the root is removed so the new root is the most recent
        common ancestor of the retained leaves.

        Raises:
            InputMismatchError: if a label in *keep* is not a leaf label.
            EmptyTreeError: if no leaf is retained.
        """
        keep_set = set(keep)
        missing = sorted(keep_set.difference(self.leaf_index))
        if missing:
            raise InputMismatchError(missing)
        if not keep_set:
            raise EmptyTreeError("No leaves retained after pruning")

        retained = np.zeros(self.n_nodes, dtype=bool)
        for node in self.postorder:
            if self.is_leaf[node]:
                retained[node] = self.labels[node] in keep_set
            else:
                retained[node] = any(retained[c] for c in self.children[node])

        new_parent: list[int] = []
        new_length: list[float] = []
        new_labels: list[str] = []

        # (old node, new parent ID, length carried down from collapsed nodes)
        stack: list[tuple[int, int, float]] = [(self.root, -1, 0.0)]
        while stack:
            node, np_, carried = stack.pop()
            kids = [c for c in self.children[node] if retained[c]]
            own = float(self.branch_length[node]) + carried if np_ != -1 else 0.0
            if self.is_leaf[node] or len(kids) >= 2:
                new_id = len(new_parent)
                new_parent.append(np_)
                new_length.append(own)
                new_labels.append(self.labels[node])
                for c in reversed(kids):
                    stack.append((c, new_id, 0.0))
            else:
                stack.append((kids[0], np_, own))

        return Tree(new_parent, new_length, new_labels)


def _postorder(root: int, children: tuple[tuple[int, ...], ...]) -> np.ndarray:
    """Iterative post-order walk; children visited in stored order."""
    order: list[int] = []
    stack: list[tuple[int, bool]] = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        stack.append((node, True))
        for c in reversed(children[node]):
            stack.append((c, False))
    return np.array(order, dtype=np.int64)
