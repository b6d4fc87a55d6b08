"""Encode a tree and community matrix as a sparse branch incidence matrix.

Row ``r`` of the incidence matrix is the branch above node
``branch_nodes[r]`` of the pruned tree; column ``c`` is community ``c`` of
the input matrix. An entry is nonzero when at least one species of the
community descends from that branch. The matrix is filled in a single
post-order sweep: a leaf's occupied communities come straight from its
species column, and an internal node's are the union of its children's.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from .community import CommunityMatrix
from .config import WEIGHTINGS
from .errors import EmptyTreeError, InputMismatchError
from .sparse import row_sums
from .tree import Tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BranchIncidence:
    """Encoded (tree, matrix) pair; read-only after construction."""

    tree: Tree
    community_ids: list[str]
    branch_nodes: np.ndarray  # int64 [n_branches] node ID in ``tree``
    branch_lengths: np.ndarray  # float64 [n_branches]
    incidence: sp.csr_matrix  # 0/1, shape (n_branches, n_communities)
    weights: sp.csr_matrix | None  # relative abundance below each branch
    weighting: str = "presence"

    @property
    def n_branches(self) -> int:
        return int(self.branch_nodes.shape[0])

    @property
    def n_communities(self) -> int:
        return len(self.community_ids)

    @property
    def nnz(self) -> int:
        return int(self.incidence.nnz)

    def branch_range(self) -> np.ndarray:
        """Number of communities occupying each branch."""
        return row_sums(self.incidence)

    def community_branches(self) -> sp.csr_matrix:
        """Community-by-branch presence matrix (transpose of ``incidence``)."""
        return sp.csr_matrix(self.incidence.T)


def encode(
    tree: Tree, matrix: CommunityMatrix, weighting: str = "presence"
) -> BranchIncidence:
    """Prune *tree* to the species of *matrix* and build the incidence matrix.

    Args:
        tree: Input tree; not modified.
        matrix: Community occurrence matrix; not modified. Species with no
            occurrence anywhere are pruned from the tree along with leaves
            absent from the matrix.
        weighting: "presence" or "abundance". In abundance mode ``weights``
            holds, per branch and community, the fraction of the community's
            total abundance carried by species below the branch.

    Raises:
        EmptyCommunityError: the matrix has no communities or no occurrences.
        InputMismatchError: a species label has no matching tree leaf.
        EmptyTreeError: fewer than two leaves remain after pruning.
    """
    if weighting not in WEIGHTINGS:
        raise ValueError(f"weighting must be one of {WEIGHTINGS}, got {weighting!r}")
    matrix.check_not_empty()

    leaf_index = tree.leaf_index
    missing = [s for s in matrix.species_ids if s not in leaf_index]
    if missing:
        raise InputMismatchError(missing)

    present = matrix.present_species
    pruned = tree.prune(present)
    if pruned.n_leaves < 2:
        raise EmptyTreeError(
            f"Tree has {pruned.n_leaves} leaf after pruning to the occurring species; "
            "at least 2 are required"
        )
    logger.info(
        "Pruned tree: %d of %d leaves retained, %d nodes",
        pruned.n_leaves,
        tree.n_leaves,
        pruned.n_nodes,
    )

    n_comm = matrix.n_communities
    values = matrix.relative() if weighting == "abundance" else matrix.occurrences
    by_species = sp.csc_matrix(values)
    by_species.sort_indices()
    species_col = {s: j for j, s in enumerate(matrix.species_ids)}

    # Post-order sweep: occupied community indices (sorted) and their
    # weights for the subtree below each node.
    occ_idx: list[np.ndarray | None] = [None] * pruned.n_nodes
    occ_val: list[np.ndarray | None] = [None] * pruned.n_nodes
    for node in pruned.postorder:
        if pruned.is_leaf[node]:
            j = species_col[pruned.labels[node]]
            lo, hi = by_species.indptr[j], by_species.indptr[j + 1]
            occ_idx[node] = by_species.indices[lo:hi].astype(np.int64)
            occ_val[node] = by_species.data[lo:hi].astype(np.float64)
        else:
            kids = pruned.children[node]
            idx = np.concatenate([occ_idx[c] for c in kids])
            val = np.concatenate([occ_val[c] for c in kids])
            uniq, inverse = np.unique(idx, return_inverse=True)
            occ_idx[node] = uniq
            occ_val[node] = np.bincount(inverse.ravel(), weights=val, minlength=uniq.size)

    branch_nodes = np.array(
        [n for n in pruned.postorder if n != pruned.root], dtype=np.int64
    )
    counts = np.array([occ_idx[n].size for n in branch_nodes], dtype=np.int64)
    indptr = np.concatenate([[0], np.cumsum(counts)])
    indices = np.concatenate([occ_idx[n] for n in branch_nodes])
    shape = (branch_nodes.size, n_comm)

    incidence = sp.csr_matrix(
        (np.ones(indices.size, dtype=np.float64), indices, indptr), shape=shape
    )
    weights = None
    if weighting == "abundance":
        data = np.concatenate([occ_val[n] for n in branch_nodes])
        weights = sp.csr_matrix((data, indices.copy(), indptr.copy()), shape=shape)

    branch_lengths = pruned.branch_length[branch_nodes].copy()
    branch_nodes.setflags(write=False)
    branch_lengths.setflags(write=False)

    density = 100.0 * incidence.nnz / max(1, shape[0] * shape[1])
    logger.info(
        "Encoded incidence: %d branches x %d communities, %d nonzero (%.2f%% dense)",
        shape[0],
        shape[1],
        incidence.nnz,
        density,
    )

    return BranchIncidence(
        tree=pruned,
        community_ids=list(matrix.community_ids),
        branch_nodes=branch_nodes,
        branch_lengths=branch_lengths,
        incidence=incidence,
        weights=weights,
        weighting=weighting,
    )
