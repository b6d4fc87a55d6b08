"""Synthetic trees and community matrices for phylodiv tests."""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from phylodiv.community import CommunityMatrix
from phylodiv.tree import Tree


def three_leaf_tree() -> Tree:
    """((A:1,B:1)AB:1,C:1)root."""
    return Tree.from_edges(
        [
            ("root", "AB", 1.0),
            ("AB", "A", 1.0),
            ("AB", "B", 1.0),
            ("root", "C", 1.0),
        ]
    )


def matrix_from_sets(communities: dict[str, set[str]], species: list[str]) -> CommunityMatrix:
    """Presence/absence matrix from community -> species-set mapping."""
    records = [(c, s) for c, members in communities.items() for s in sorted(members)]
    return CommunityMatrix.from_records(
        records, community_ids=list(communities), species_ids=species
    )


def generate_random_tree(n_leaves: int = 30, seed: int = 42) -> Tree:
    """Random rooted binary tree built by joining random pairs of lineages.

    Leaves are nodes 0..n_leaves-1 labelled ``sp_000``...; the root is the
    last node. Branch lengths are exponential(1).
    """
    rng = np.random.default_rng(seed)
    n_nodes = 2 * n_leaves - 1
    parent = np.full(n_nodes, -1, dtype=np.int64)
    lengths = rng.exponential(1.0, size=n_nodes)
    active = list(range(n_leaves))
    next_id = n_leaves
    while len(active) > 1:
        i, j = sorted(rng.choice(len(active), size=2, replace=False), reverse=True)
        a, b = active.pop(i), active.pop(j)
        parent[a] = next_id
        parent[b] = next_id
        active.append(next_id)
        next_id += 1
    labels = [f"sp_{i:03d}" for i in range(n_leaves)] + [""] * (n_leaves - 1)
    return Tree(parent, lengths, labels)


def generate_synthetic_community_matrix(
    species: list[str],
    n_communities: int = 15,
    density: float = 0.2,
    seed: int = 42,
    abundances: bool = False,
) -> CommunityMatrix:
    """Random sparse community matrix; every community holds at least one species."""
    rng = np.random.default_rng(seed)
    n_species = len(species)
    present = rng.random((n_communities, n_species)) < density
    present[np.arange(n_communities), rng.integers(0, n_species, n_communities)] = True
    values = present.astype(np.float64)
    if abundances:
        values *= rng.poisson(20, size=values.shape) + 1
    return CommunityMatrix(
        community_ids=[f"site_{i:02d}" for i in range(n_communities)],
        species_ids=list(species),
        occurrences=sp.csr_matrix(values),
    )


def path_branches(tree: Tree, labels: set[str]) -> set[int]:
    """Non-root nodes on the root paths of *labels*, by parent-pointer walk."""
    nodes: set[int] = set()
    for lab in labels:
        node = tree.leaf_index[lab]
        while node != tree.root:
            nodes.add(node)
            node = int(tree.parent[node])
    return nodes


def community_sets(matrix: CommunityMatrix) -> dict[str, set[str]]:
    occ = matrix.occurrences
    return {
        cid: {matrix.species_ids[j] for j in occ.indices[occ.indptr[i] : occ.indptr[i + 1]]}
        for i, cid in enumerate(matrix.community_ids)
    }


def patristic_distance(tree: Tree, u: str, v: str) -> float:
    """Path length between two leaves by ancestor walk."""

    def ancestry(node: int) -> dict[int, float]:
        dist = {node: 0.0}
        acc = 0.0
        while node != tree.root:
            acc += float(tree.branch_length[node])
            node = int(tree.parent[node])
            dist[node] = acc
        return dist

    du = ancestry(tree.leaf_index[u])
    dv = ancestry(tree.leaf_index[v])
    return min(du[n] + dv[n] for n in du if n in dv)
